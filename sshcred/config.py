"""
Application settings with YAML persistence.
"""

from __future__ import annotations
import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "SSH_CRED_MANAGER_HOME"
APP_DIR_NAME = ".ssh-cred-manager"
STORE_FILE_NAME = "credentials.json"
SETTINGS_FILE_NAME = "settings.yaml"

# Preferred default keys, in order
DEFAULT_KEY_NAMES = ("id_rsa", "id_ed25519", "id_ecdsa", "id_dsa")


def app_dir() -> Path:
    """Directory holding the store and settings."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / APP_DIR_NAME


def default_store_path() -> Path:
    return app_dir() / STORE_FILE_NAME


def default_settings_path() -> Path:
    return app_dir() / SETTINGS_FILE_NAME


def default_key_path() -> str:
    """First existing private key under ~/.ssh, else ~/.ssh/id_rsa."""
    ssh_dir = Path.home() / ".ssh"
    for key_name in DEFAULT_KEY_NAMES:
        candidate = ssh_dir / key_name
        if candidate.is_file():
            return str(candidate)
    return str(ssh_dir / DEFAULT_KEY_NAMES[0])


@dataclass
class AppSettings:
    """User-tunable behaviour of the CLI, TUI and launcher."""

    # Storage
    store_path: Optional[str] = None

    # External binaries
    ssh_binary: str = "ssh"
    sshpass_binary: str = "sshpass"
    tmux_binary: str = "tmux"

    # Connection behaviour
    use_tmux: bool = False
    tmux_session_prefix: str = "sshcred"
    # Off unless asked for: skips host-key verification entirely
    accept_unknown_host_keys: bool = False
    default_port: int = 22

    log_level: str = "WARNING"

    def resolved_store_path(self) -> Path:
        if self.store_path:
            return Path(self.store_path).expanduser()
        return default_store_path()

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AppSettings:
        """Build settings, ignoring keys this version doesn't know."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.debug(f"Ignoring unknown settings: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> AppSettings:
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("settings file must contain a mapping")
        return cls.from_dict(data)


_settings: Optional[AppSettings] = None
_settings_path: Optional[Path] = None


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """
    Load settings from disk and make them current.

    A missing file gives defaults. A broken file is logged and also
    gives defaults, so a typo never locks the user out of their hosts.
    """
    global _settings, _settings_path

    path = Path(path).expanduser() if path else default_settings_path()
    settings = AppSettings()

    if path.exists():
        try:
            settings = AppSettings.from_yaml(path.read_text(encoding="utf-8"))
            logger.debug(f"Loaded settings from {path}")
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")

    _settings = settings
    _settings_path = path
    return settings


def get_settings() -> AppSettings:
    """Current settings, loading them on first use."""
    if _settings is None:
        return load_settings()
    return _settings


def save_settings(settings: Optional[AppSettings] = None) -> Path:
    """Persist settings (the current ones by default). Returns the path written."""
    global _settings

    if settings is not None:
        _settings = settings
    settings = get_settings()

    path = _settings_path or default_settings_path()
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.write_text(settings.to_yaml(), encoding="utf-8")
    os.chmod(path, 0o600)
    logger.info(f"Settings saved to {path}")
    return path


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() reloads."""
    global _settings, _settings_path
    _settings = None
    _settings_path = None
