"""Set up Google Drive storage for a drivestore server installation.

Adds the Drive storage application to the user's Drive account via the OAuth2
consent page, then writes the obtained token to
$where/$domain/serverconfig.json as the server's store configuration:

    drivestore-setupstorage --domain example.com

Follow the on-screen instructions: open the printed URL, grant access, and
paste back the authorization code (or the whole URL the browser was
redirected to).
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, TextIO

from drivestore.core.auth.oauth2 import AuthError, OAuth2Config, OAuthToken, extract_auth_code

logger = logging.getLogger(__name__)

PROG = "drivestore-setupstorage"
SERVER_CONFIG_FILE = "serverconfig.json"
DEFAULT_WHERE = Path.home() / "drivestore" / "deploy"


class SetupError(RuntimeError):
    pass


def store_config_lines(token: OAuthToken) -> list[str]:
    """Return the StoreConfig lines selecting the Drive backend for ``token``."""
    return ["backend=Drive"] + [f"{key}={value}" for key, value in token.to_store_options().items()]


def read_server_config(config_dir: Path) -> dict[str, Any]:
    """Read serverconfig.json from ``config_dir``; a missing file yields {}."""
    path = config_dir / SERVER_CONFIG_FILE
    if not path.exists():
        logger.info(f"No {SERVER_CONFIG_FILE} in {config_dir}, starting a new one")
        return {}
    try:
        config = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SetupError(f"Cannot parse {path}: {e}") from e
    if not isinstance(config, dict):
        raise SetupError(f"Cannot parse {path}: expected a JSON object")
    return config


def write_server_config(config_dir: Path, config: dict[str, Any]) -> Path:
    """Write serverconfig.json into ``config_dir``, readable by the owner only."""
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / SERVER_CONFIG_FILE
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # An existing file keeps its old mode on open; tighten it before writing.
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(json.dumps(config, indent=2) + "\n")
    return path


def token_from_web(oauth2: OAuth2Config, stdin: TextIO, stdout: TextIO) -> OAuthToken:
    """Walk the user through the consent page and exchange the returned code."""
    print(
        f"Open this URL in your browser to obtain an authorization code:\n\t{oauth2.auth_code_url()}",
        file=stdout,
    )
    print("Auth code: ", end="", file=stdout, flush=True)
    line = stdin.readline()
    if not line:
        raise AuthError("unable to read authorization code: end of input")
    return oauth2.exchange(extract_auth_code(line))


def main(
    argv: list[str] | None = None,
    oauth2: OAuth2Config | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Run the setup flow; returns the process exit code."""
    logging.basicConfig(level=logging.INFO, format=f"{PROG}: %(message)s")
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--where",
        type=Path,
        default=DEFAULT_WHERE,
        help="directory to store private configuration files (default: %(default)s)",
    )
    parser.add_argument(
        "--domain",
        required=True,
        help="domain name for this installation",
    )
    args = parser.parse_args(argv)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    try:
        if oauth2 is None:
            oauth2 = OAuth2Config.from_env()
        token = token_from_web(oauth2, stdin, stdout)

        config_dir = args.where / args.domain
        config = read_server_config(config_dir)
        config["StoreConfig"] = store_config_lines(token)
        path = write_server_config(config_dir, config)
    except (AuthError, SetupError, OSError) as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 1

    logger.info(f"Wrote Drive store configuration to {path}")
    print("You should now deploy the server and start it with this configuration.", file=stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
