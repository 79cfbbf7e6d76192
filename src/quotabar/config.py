from __future__ import annotations

from dataclasses import dataclass, field
import math
from pathlib import Path
import tomllib
import tomli_w


HOME = Path.home()
CONFIG_PATH = HOME / ".config/quotabar/config.toml"

DEFAULT_SERVICE_COMMAND = "codexbar-service snapshot --from-codexbar-cli --provider all --status"
DEFAULT_REFRESH_SECONDS = 60.0
MIN_REFRESH_SECONDS = 15.0
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(Exception):
    pass


@dataclass
class GeneralConfig:
    service_command: str = ""
    refresh_seconds: float = DEFAULT_REFRESH_SECONDS
    command_timeout_seconds: float = 30.0
    theme: str = "dark"
    log_level: str = "INFO"


@dataclass
class TrayConfig:
    enabled: bool = True


@dataclass
class Config:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    tray: TrayConfig = field(default_factory=TrayConfig)


def _number(value, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def effective_service_command(cfg: Config) -> str:
    return cfg.general.service_command.strip() or DEFAULT_SERVICE_COMMAND


def effective_refresh_seconds(cfg: Config) -> float:
    seconds = _number(cfg.general.refresh_seconds, DEFAULT_REFRESH_SECONDS)
    if not math.isfinite(seconds):
        seconds = DEFAULT_REFRESH_SECONDS
    return max(MIN_REFRESH_SECONDS, seconds)


def load_config(path: Path = CONFIG_PATH) -> Config:
    if not path.exists():
        cfg = Config()
        save_config(cfg, path)
        return cfg

    try:
        raw = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc

    general_raw = raw.get("general", {})
    tray_raw = raw.get("tray", {})
    for name, table in (("general", general_raw), ("tray", tray_raw)):
        if not isinstance(table, dict):
            raise ConfigError(f"{path}: [{name}] must be a table")
    service_command = general_raw.get("service_command", "")
    if not isinstance(service_command, str):
        raise ConfigError("general.service_command must be a string")

    return Config(
        general=GeneralConfig(
            service_command=service_command,
            refresh_seconds=_number(general_raw.get("refresh_seconds"), DEFAULT_REFRESH_SECONDS),
            command_timeout_seconds=_number(general_raw.get("command_timeout_seconds"), 30.0),
            theme=str(general_raw.get("theme", "dark")),
            log_level=str(general_raw.get("log_level", "INFO")).upper(),
        ),
        tray=TrayConfig(enabled=bool(tray_raw.get("enabled", True))),
    )


def save_config(cfg: Config, path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "general": {
            "service_command": cfg.general.service_command,
            "refresh_seconds": cfg.general.refresh_seconds,
            "command_timeout_seconds": cfg.general.command_timeout_seconds,
            "theme": cfg.general.theme,
            "log_level": cfg.general.log_level,
        },
        "tray": {
            "enabled": cfg.tray.enabled,
        },
    }
    path.write_text(tomli_w.dumps(payload))


def set_config_value(cfg: Config, dotted_key: str, value: str) -> None:
    if dotted_key == "general.service_command":
        cfg.general.service_command = value
        return
    if dotted_key in {"general.refresh_seconds", "general.command_timeout_seconds"}:
        setattr(cfg.general, dotted_key.split(".")[1], float(value))
        return
    if dotted_key == "general.theme":
        if value not in {"dark", "light"}:
            raise ValueError(f"unsupported theme: {value}")
        cfg.general.theme = value
        return
    if dotted_key == "general.log_level":
        if value.upper() not in LOG_LEVELS:
            raise ValueError(f"unsupported log level: {value}")
        cfg.general.log_level = value.upper()
        return
    if dotted_key == "tray.enabled":
        cfg.tray.enabled = value.strip().lower() in {"1", "true", "yes", "on"}
        return
    raise ValueError(f"unsupported key: {dotted_key}")
