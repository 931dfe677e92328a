"""Session configuration and stored credentials.

Settings resolve in priority order: explicit CLI values, then credentials saved
by ``r2sql login`` in ``~/.r2sql-shell/config.json``, then environment
variables (which a ``.env`` file may populate).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from r2sql.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".r2sql-shell"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_HISTORY_FILE = "r2sql-history.txt"
DEFAULT_LOG_FILE = "r2sql-debug.log"

CATALOG_BASE_URL = "https://catalog.cloudflarestorage.com"
QUERY_BASE_URL = "https://api.sql.cloudflarestorage.com/api/v1/accounts"

# setting name -> (stored credential key, environment variable, CLI flag)
SETTINGS: Dict[str, Tuple[str, str, str]] = {
    "account_id": ("account_id", "CLOUDFLARE_ACCOUNT_ID", "--account-id"),
    "bucket_name": ("bucket_name", "R2_BUCKET_NAME", "--bucket"),
    "api_token": ("access_token", "CLOUDFLARE_API_TOKEN", "--token"),
}


@dataclass(frozen=True)
class SessionConfig:
    """Account, bucket and token for one shell session, with derived endpoints."""

    account_id: str
    bucket_name: str
    api_token: str

    @property
    def warehouse(self) -> str:
        return f"{self.account_id}_{self.bucket_name}"

    @property
    def catalog_endpoint(self) -> str:
        return f"{CATALOG_BASE_URL}/{self.account_id}/{self.bucket_name}"

    @property
    def query_endpoint(self) -> str:
        return f"{QUERY_BASE_URL}/{self.account_id}/r2-sql/query/{self.bucket_name}"


@dataclass(frozen=True)
class ShellOptions:
    """Behaviour switches for the interactive shell."""

    execute_on_start: Optional[str] = None
    history_enabled: bool = False
    history_path: Path = Path(DEFAULT_HISTORY_FILE)
    debug: bool = False
    log_path: Path = Path(DEFAULT_LOG_FILE)


class CredentialStore:
    """JSON file holding the credentials saved by ``r2sql login``."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else CONFIG_FILE

    def load(self) -> Optional[Dict[str, str]]:
        """Return stored credentials, or None when missing or unreadable."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable credential file %s: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            return None
        return {k: str(v) for k, v in data.items() if isinstance(v, (str, int)) and v != ""}

    def save(self, account_id: str, bucket_name: str, api_token: str) -> None:
        """Write credentials, readable by the current user only."""
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        payload = {"access_token": api_token, "account_id": account_id, "bucket_name": bucket_name}
        self.path.write_text(json.dumps(payload, indent=2))
        os.chmod(self.path, 0o600)

    def clear(self) -> bool:
        """Remove stored credentials. Returns False if there was nothing to remove."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True


def resolve_settings(
    cli_values: Mapping[str, Optional[str]],
    store: Optional[CredentialStore] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Tuple[Optional[str], Optional[str]]]:
    """
    Resolve each setting to a value and the name of its source

    Args:
        cli_values: Values given on the command line, keyed by setting name
        store: Credential store (default: ~/.r2sql-shell/config.json)
        environ: Environment mapping (default: os.environ)

    Returns:
        Mapping of setting name to ``(value, source)``; both None when unset
    """
    store = store or CredentialStore()
    env = os.environ if environ is None else environ
    stored = store.load() or {}

    resolved: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
    for name, (stored_key, env_var, _flag) in SETTINGS.items():
        if cli_values.get(name):
            resolved[name] = (cli_values[name], "command line")
        elif stored.get(stored_key):
            resolved[name] = (stored[stored_key], f"stored credentials ({store.path})")
        elif env.get(env_var):
            resolved[name] = (env[env_var], f"environment ({env_var})")
        else:
            resolved[name] = (None, None)
    return resolved


def load_config(
    account_id: Optional[str] = None,
    bucket_name: Optional[str] = None,
    api_token: Optional[str] = None,
    store: Optional[CredentialStore] = None,
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> SessionConfig:
    """
    Build the session configuration

    Args:
        account_id: Cloudflare account ID from the command line
        bucket_name: R2 bucket name from the command line
        api_token: API token from the command line
        store: Credential store to consult
        environ: Environment mapping (default: os.environ after loading .env)
        dotenv_path: Explicit .env file; by default .env is searched from the cwd

    Returns:
        Fully resolved SessionConfig

    Raises:
        ConfigurationError: If any setting is missing from every source
    """
    if environ is None:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    resolved = resolve_settings(
        {"account_id": account_id, "bucket_name": bucket_name, "api_token": api_token},
        store=store,
        environ=environ,
    )

    missing = [name for name, (value, _source) in resolved.items() if not value]
    if missing:
        hints = ", ".join(f"{SETTINGS[name][2]} / {SETTINGS[name][1]}" for name in missing)
        raise ConfigurationError(
            f"Missing configuration: {hints}. Run 'r2sql login' or pass the values explicitly."
        )

    return SessionConfig(
        account_id=resolved["account_id"][0],
        bucket_name=resolved["bucket_name"][0],
        api_token=resolved["api_token"][0],
    )
