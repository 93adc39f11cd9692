"""Tests for configuration loading and inheritance resolution."""

from __future__ import annotations

import importlib
from unittest.mock import Mock, patch

import pytest

from drivestore.core.utils.config import (
    ConfigError,
    load_and_resolve_config,
    load_config_from_module,
    resolve_config_inheritance,
)


class TestConfigInheritance:
    """Test suite for configuration inheritance resolution."""

    def test_child_inherits_and_overrides(self):
        config = {
            "drive": {
                "type": "drive",
                "tokenType": "Bearer",
                "refreshToken": "primary",
                "timeout": 60,
            },
            "drive.backup": {
                "__inherits__": "drive",
                "refreshToken": "backup",
            },
        }

        resolved = resolve_config_inheritance(config)

        assert resolved["drive"]["refreshToken"] == "primary"
        assert resolved["drive.backup"]["type"] == "drive"
        assert resolved["drive.backup"]["tokenType"] == "Bearer"
        assert resolved["drive.backup"]["timeout"] == 60
        assert resolved["drive.backup"]["refreshToken"] == "backup"
        assert "__inherits__" not in resolved["drive.backup"]

    def test_multi_level(self):
        config = {
            "base": {"type": "drive", "timeout": 60, "cache_size": 1024},
            "child": {"__inherits__": "base", "timeout": 120},
            "grandchild": {"__inherits__": "child", "cache_size": 16},
        }

        resolved = resolve_config_inheritance(config)

        assert resolved["grandchild"] == {"type": "drive", "timeout": 120, "cache_size": 16}

    def test_child_declared_before_parent(self):
        config = {
            "child": {"__inherits__": "base", "timeout": 5},
            "base": {"type": "drive", "timeout": 60},
        }

        resolved = resolve_config_inheritance(config)

        assert resolved["child"] == {"type": "drive", "timeout": 5}

    def test_source_is_not_mutated(self):
        config = {
            "base": {"type": "drive"},
            "child": {"__inherits__": "base"},
        }

        resolve_config_inheritance(config)

        assert config["child"] == {"__inherits__": "base"}

    def test_circular_detection(self):
        config = {
            "a": {"__inherits__": "b"},
            "b": {"__inherits__": "a"},
        }

        with pytest.raises(ConfigError, match="Circular inheritance detected"):
            resolve_config_inheritance(config)

    def test_self_reference(self):
        with pytest.raises(ConfigError, match="Circular inheritance detected: a -> a"):
            resolve_config_inheritance({"a": {"__inherits__": "a"}})

    def test_missing_parent(self):
        config = {"child": {"__inherits__": "nonexistent"}}

        with pytest.raises(
            ConfigError, match="inherits from 'nonexistent', but 'nonexistent' not found"
        ):
            resolve_config_inheritance(config)


class TestLoadConfig:
    def test_load_from_module(self):
        module = Mock()
        module.CONFIGURATION = {"drive": {"type": "drive"}}

        with patch("importlib.import_module", return_value=module) as mock_import:
            config = load_config_from_module("myapp.storage_config")

        mock_import.assert_called_once_with("myapp.storage_config")
        assert config == {"drive": {"type": "drive"}}

    def test_missing_module_returns_default(self):
        config = load_config_from_module("drivestore_no_such_module", default={"x": {}})

        assert config == {"x": {}}

    def test_missing_attribute_returns_default(self):
        module = Mock(spec=[])

        with patch("importlib.import_module", return_value=module):
            assert load_config_from_module("myapp.storage_config", "SETTINGS") is None

    def test_load_and_resolve(self):
        module = Mock()
        module.CONFIGURATION = {
            "drive": {"type": "drive", "timeout": 60},
            "drive.bulk": {"__inherits__": "drive", "timeout": 300},
        }

        with patch("importlib.import_module", return_value=module):
            resolved = load_and_resolve_config("configs.storage_backends")

        assert resolved["drive.bulk"] == {"type": "drive", "timeout": 300}

    def test_load_and_resolve_non_dict(self):
        module = Mock()
        module.CONFIGURATION = ["not", "a", "dict"]

        with patch("importlib.import_module", return_value=module):
            assert load_and_resolve_config("configs.storage_backends") == {}

    def test_load_and_resolve_propagates_inheritance_errors(self):
        module = Mock()
        module.CONFIGURATION = {"a": {"__inherits__": "missing"}}

        with patch("importlib.import_module", return_value=module):
            with pytest.raises(ConfigError):
                load_and_resolve_config("configs.storage_backends")


class TestStorageBackendsModule:
    def test_drive_entry_reads_environment(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DRIVE_ACCESS_TOKEN", "access")
        monkeypatch.setenv("DRIVE_TOKEN_TYPE", "Bearer")
        monkeypatch.setenv("DRIVE_REFRESH_TOKEN", "refresh")
        monkeypatch.setenv("DRIVE_EXPIRY", "2026-10-18T12:00:00Z")

        module = importlib.reload(importlib.import_module("configs.storage_backends"))

        assert module.CONFIGURATION["drive"] == {
            "type": "drive",
            "accessToken": "access",
            "tokenType": "Bearer",
            "refreshToken": "refresh",
            "expiry": "2026-10-18T12:00:00Z",
        }
        assert module.CONFIGURATION["drive.bulk"]["__inherits__"] == "drive"
