from __future__ import annotations

import os
from pathlib import Path


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load KEY=VALUE pairs from a .env file into the process environment.

    Credentials for the Drive backend and the OAuth client usually live in
    `.env` next to the deployment; missing files are not an error.

    Returns the pairs read from the file. Existing variables are kept unless
    ``override`` is set. Blank lines, ``#`` comments and an optional
    ``export`` prefix are ignored; surrounding quotes are stripped.
    """
    env_path = Path(path)
    loaded: dict[str, str] = {}
    if not env_path.exists():
        return loaded

    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :]
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if override or key not in os.environ:
            os.environ[key] = value
        loaded[key] = value
    return loaded
