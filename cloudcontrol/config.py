"""
cloudcontrol.config
-------------------
Static node configuration, read once at startup from `config.json` in the
node's home directory (cwd by default, or $CLOUDCONTROL_HOME).

    {
      "WebAdmin": {
        "UriKey": "...",
        "Password": "...",
        "Remotes": [{"Host": "nas.lan", "Async": true, "PoweroffDelayMsec": 0}]
      }
    }

Key material lives next to it in `self_key/` and `authorized_keys/`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json, os
from .constants import (
    CONFIG_FILE_NAME, AUTHORIZED_KEYS_DIR_NAME, SELF_KEY_DIR_NAME,
)
from .errors import ConfigError
from .logger import get_logger

log = get_logger("CC.Config")

PathLike = Union[str, Path]


def default_home() -> Path:
    return Path(os.getenv("CLOUDCONTROL_HOME", "."))


@dataclass
class Remote:
    """A peer node and the poweroff parameters used when commanding it."""
    host: str
    async_: bool = False
    poweroff_delay_msec: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"Host": self.host, "Async": self.async_, "PoweroffDelayMsec": self.poweroff_delay_msec}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Remote":
        if not isinstance(data, dict):
            raise ConfigError("remote entry must be a JSON object")
        host = data.get("Host")
        if not host or not isinstance(host, str):
            raise ConfigError("remote entry without a Host")
        async_ = data.get("Async", False)
        if not isinstance(async_, bool):
            raise ConfigError(f"remote '{host}': Async must be a boolean")
        delay = data.get("PoweroffDelayMsec", 0)
        if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
            raise ConfigError(f"remote '{host}': PoweroffDelayMsec must be a non-negative integer")
        return cls(host=host, async_=async_, poweroff_delay_msec=delay)


@dataclass
class WebAdminConfig:
    uri_key: str = ""
    password: str = ""
    remotes: List[Remote] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "UriKey": self.uri_key,
            "Password": self.password,
            "Remotes": [r.to_dict() for r in self.remotes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebAdminConfig":
        if not isinstance(data, dict):
            raise ConfigError("WebAdmin must be a JSON object")
        remotes = data.get("Remotes")
        if remotes is None:
            remotes = []
        if not isinstance(remotes, list):
            raise ConfigError("WebAdmin.Remotes must be a list")
        return cls(
            uri_key=_str_field(data, "UriKey"),
            password=_str_field(data, "Password"),
            remotes=[Remote.from_dict(r) for r in remotes],
        )


@dataclass
class Config:
    webadmin: WebAdminConfig = field(default_factory=WebAdminConfig)
    home: Path = field(default_factory=default_home)

    def __post_init__(self):
        self.home = Path(self.home)

    @property
    def remotes(self) -> List[Remote]:
        return self.webadmin.remotes

    @property
    def config_path(self) -> Path:
        return self.home / CONFIG_FILE_NAME

    @property
    def self_key_dir(self) -> Path:
        return self.home / SELF_KEY_DIR_NAME

    @property
    def authorized_keys_dir(self) -> Path:
        return self.home / AUTHORIZED_KEYS_DIR_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {"WebAdmin": self.webadmin.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], home: Optional[PathLike] = None) -> "Config":
        if not isinstance(data, dict):
            raise ConfigError("config root must be a JSON object")
        webadmin = data.get("WebAdmin")
        return cls(
            webadmin=WebAdminConfig.from_dict({} if webadmin is None else webadmin),
            home=Path(home) if home is not None else default_home(),
        )


def load_config(home: Optional[PathLike] = None) -> Config:
    home = Path(home) if home is not None else default_home()
    path = home / CONFIG_FILE_NAME
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(
            f"cannot open config file '{path}'; run with --create-config to create it"
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"cannot decode JSON in '{path}': {e}") from e
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid config file '{path}': {e}") from e
    return Config.from_dict(data, home=home)


def write_config(config: Config) -> None:
    """Write config.json (0600) and make sure the key directories exist (0700)."""
    config.home.mkdir(parents=True, exist_ok=True)
    path = config.config_path
    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
        f.write("\n")

    for d in (config.authorized_keys_dir, config.self_key_dir):
        d.mkdir(mode=0o700, exist_ok=True)
    log.info(f"[CONFIG] wrote {path}")


def add_remote(host: str, home: Optional[PathLike] = None) -> Config:
    config = load_config(home)
    config.webadmin.remotes.append(Remote(host=host))
    write_config(config)
    return config


def validate_config(config: Config, webadmin: bool = False) -> None:
    if webadmin:
        if not config.webadmin.uri_key:
            raise ConfigError("no webadmin UriKey set in config")
        if not config.webadmin.password:
            raise ConfigError("no webadmin Password set in config")


def _str_field(data: Dict[str, Any], name: str) -> str:
    value = data.get(name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"WebAdmin.{name} must be a string")
    return value
