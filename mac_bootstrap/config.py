"""Load user settings from ``~/.mac-bootstrap.yaml``."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = "~/.mac-bootstrap.yaml"

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
OHMYZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"

# Applications that cache preferences and must be restarted to pick them up.
DEFAULT_RESTART_APPS = [
    "Activity Monitor",
    "Address Book",
    "Calendar",
    "cfprefsd",
    "Contacts",
    "Dock",
    "Finder",
    "Google Chrome Canary",
    "Google Chrome",
    "Mail",
    "Messages",
    "Photos",
    "Safari",
    "Spectacle",
    "SystemUIServer",
    "Terminal",
    "iCal",
]

_PATH_FIELDS = ("brewfile", "preferences", "ohmyzsh_dir")


@dataclass
class BootstrapConfig:
    brewfile: Path = field(default_factory=lambda: Path("~/.brew/Brewfile").expanduser())
    preferences: Optional[Path] = None
    ohmyzsh_dir: Path = field(default_factory=lambda: Path("~/.oh-my-zsh").expanduser())
    homebrew_install_url: str = HOMEBREW_INSTALL_URL
    ohmyzsh_install_url: str = OHMYZSH_INSTALL_URL
    restart_apps: List[str] = field(default_factory=lambda: list(DEFAULT_RESTART_APPS))
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> BootstrapConfig:
    """Read the YAML config file and merge it over the defaults.

    A missing file at the default location is not an error; an explicitly
    requested file must exist.
    """
    config_path = Path(os.path.expanduser(path or DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        if path is not None:
            raise ConfigurationError(f"config file not found: {config_path}")
        return BootstrapConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"cannot parse {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path}: top level must be a mapping")
    return config_from_mapping(data)


def config_from_mapping(data: Dict[str, Any]) -> BootstrapConfig:
    known = {f.name for f in fields(BootstrapConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _PATH_FIELDS:
            if value is None:
                if key != "preferences":
                    raise ConfigurationError(f"{key} must be a path, not null")
                values[key] = None
            else:
                values[key] = Path(os.path.expanduser(str(value)))
        elif key == "restart_apps":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError("restart_apps must be a list of application names")
            values[key] = list(value)
        elif value is None:
            raise ConfigurationError(f"{key} must not be null")
        elif key == "log_level":
            values[key] = str(value).upper()
        else:
            values[key] = str(value)
    return BootstrapConfig(**values)
