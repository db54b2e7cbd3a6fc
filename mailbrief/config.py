"""mailbrief configuration and Keychain helpers.

Shared by the CLI, the mailbox provider, and the LLM client.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".mailbrief"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.json"
DEFAULT_TOKEN_PATH = CONFIG_DIR / "token.json"
DEFAULT_CLIENT_SECRETS_PATH = CONFIG_DIR / "credentials.json"
KEYCHAIN_SERVICE = "mailbrief"
ENV_PREFIX = "MAILBRIEF_"

DEFAULT_GMAIL_API_URL = "https://gmail.googleapis.com/gmail/v1/users/me"


@dataclass
class Settings:
    """Runtime settings. Defaults < config file < MAILBRIEF_* env vars."""

    max_cache: int = 50
    max_history: int = 10
    max_steps: int = 6
    provider: str = "gemini"
    model: Optional[str] = None
    gmail_api_url: str = DEFAULT_GMAIL_API_URL
    gmail_token_file: str = str(DEFAULT_TOKEN_PATH)
    gmail_client_secrets: str = str(DEFAULT_CLIENT_SECRETS_PATH)
    log_level: str = "WARNING"


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    if isinstance(default, int) and not isinstance(default, bool):
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer value for %s: %r", name, raw)
            return default
    return str(raw)


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the JSON config file. Missing or malformed files yield {}."""
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config %s is not a JSON object, ignoring", config_path)
        return {}
    return data


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Settings:
    """Resolve settings from defaults, the config file, and the environment."""
    env = os.environ if environ is None else environ
    file_values = load_config_file(path)

    values: Dict[str, Any] = {}
    for f in fields(Settings):
        default = f.default
        raw = file_values.get(f.name)
        env_raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
        if env_raw is not None:
            raw = env_raw
        values[f.name] = _coerce(f.name, raw, default)

    return Settings(**values)


def save_config_file(config: Dict[str, Any], path: Optional[Path] = None):
    """Save config to disk."""
    config_path = path or DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2))


# ══════════════════════════════════════════════════════════════════
# Secrets
# ══════════════════════════════════════════════════════════════════


def get_secret(env_var: str, keychain_account: str) -> Optional[str]:
    """Load a secret from an environment variable or macOS Keychain.

    Checks env var first, then Keychain (set via `mailbrief set-key`).
    """
    value = os.environ.get(env_var)
    if value:
        return value

    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-a", keychain_account, "-s", KEYCHAIN_SERVICE, "-w"],
            capture_output=True, text=True,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except FileNotFoundError:
        pass

    return None


def store_secret(keychain_account: str, value: str) -> bool:
    """Store a secret in macOS Keychain, replacing any previous value."""
    subprocess.run(
        ["security", "delete-generic-password", "-a", keychain_account, "-s", KEYCHAIN_SERVICE],
        capture_output=True,
    )
    result = subprocess.run(
        ["security", "add-generic-password", "-a", keychain_account, "-s", KEYCHAIN_SERVICE, "-w", value],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        logger.error("Keychain write failed: %s", result.stderr.strip())
        return False
    return True
