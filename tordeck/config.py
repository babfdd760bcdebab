import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


CONFIG_DIR = Path(os.environ.get("TORDECK_CONFIG_DIR", "~/.config/tordeck")).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


@dataclass
class RpcConfig:
    host: str = os.environ.get("TORDECK_HOST", "localhost")
    port: int = int(os.environ.get("TORDECK_PORT", "9091"))
    username: str | None = os.environ.get("TORDECK_USER") or None
    password: str | None = os.environ.get("TORDECK_PASSWORD") or None
    timeout: float = float(os.environ.get("TORDECK_TIMEOUT", "10.0"))


@dataclass
class EngineConfig:
    retries: int = 2
    resolve_timeout: float = float(os.environ.get("TORDECK_RESOLVE_TIMEOUT", "60.0"))
    poll_interval: float = 1.0
    delete_data: bool = True


@dataclass
class PathConfig:
    download_dir: Path = Path(os.environ.get("TORDECK_DOWNLOAD_DIR", "~/Downloads/torrents")).expanduser()
    config_dir: Path = CONFIG_DIR
    staging_dir: Path = CONFIG_DIR / "staging"


@dataclass
class UIConfig:
    refresh_interval: float = 2.5
    filter: str = "all"
    paste_guard_ms: int = 200
    help_height: int = 12


@dataclass
class LogConfig:
    level: str = os.environ.get("TORDECK_LOG_LEVEL", "INFO").upper()
    file: Path = Path(os.environ.get("TORDECK_LOG_FILE") or "~/.cache/tordeck/debug.log").expanduser()
    to_stdout: bool = _env_bool("TORDECK_LOG_TO_STDOUT")


@dataclass
class AppConfig:
    rpc: RpcConfig = field(default_factory=RpcConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    paths: PathConfig = field(default_factory=PathConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log: LogConfig = field(default_factory=LogConfig)


def ensure_config_dir() -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    ensure_config_dir()
    if CONFIG_FILE.exists():
        data = yaml.safe_load(CONFIG_FILE.read_text()) or {}
    else:
        data = {}

    rpc_data: Dict[str, Any] = data.get("rpc") or {}
    engine_data: Dict[str, Any] = data.get("engine") or {}
    paths_data: Dict[str, Any] = data.get("paths") or {}
    ui_data: Dict[str, Any] = data.get("ui") or {}
    log_data: Dict[str, Any] = data.get("log") or {}

    config = AppConfig(
        rpc=RpcConfig(
            host=rpc_data.get("host", RpcConfig().host),
            port=int(rpc_data.get("port", RpcConfig().port)),
            username=rpc_data.get("username") or RpcConfig().username,
            password=rpc_data.get("password") or RpcConfig().password,
            timeout=float(rpc_data.get("timeout", RpcConfig().timeout)),
        ),
        engine=EngineConfig(
            retries=max(0, int(engine_data.get("retries", EngineConfig().retries))),
            resolve_timeout=float(engine_data.get("resolve_timeout", EngineConfig().resolve_timeout)),
            poll_interval=float(engine_data.get("poll_interval", EngineConfig().poll_interval)),
            delete_data=bool(engine_data.get("delete_data", EngineConfig().delete_data)),
        ),
        paths=PathConfig(
            download_dir=Path(paths_data.get("download_dir", PathConfig().download_dir)).expanduser(),
            config_dir=Path(paths_data.get("config_dir", CONFIG_DIR)).expanduser(),
            staging_dir=Path(paths_data.get("staging_dir", CONFIG_DIR / "staging")).expanduser(),
        ),
        ui=UIConfig(
            refresh_interval=clamp_refresh(float(ui_data.get("refresh_interval", UIConfig().refresh_interval))),
            filter=str(ui_data.get("filter", UIConfig().filter)),
            paste_guard_ms=max(0, int(ui_data.get("paste_guard_ms", UIConfig().paste_guard_ms))),
            help_height=max(1, int(ui_data.get("help_height", UIConfig().help_height))),
        ),
        log=LogConfig(
            level=parse_log_level(log_data.get("level")),
            file=Path(log_data.get("file") or LogConfig().file).expanduser(),
            to_stdout=bool(log_data.get("to_stdout", LogConfig().to_stdout)),
        ),
    )

    save_config(config)
    return config


def save_config(config: AppConfig) -> None:
    ensure_config_dir()
    payload = {
        "rpc": {
            "host": config.rpc.host,
            "port": config.rpc.port,
            "username": config.rpc.username or "",
            "password": config.rpc.password or "",
            "timeout": config.rpc.timeout,
        },
        "engine": {
            "retries": config.engine.retries,
            "resolve_timeout": config.engine.resolve_timeout,
            "poll_interval": config.engine.poll_interval,
            "delete_data": config.engine.delete_data,
        },
        "paths": {
            "download_dir": str(config.paths.download_dir),
            "config_dir": str(config.paths.config_dir),
            "staging_dir": str(config.paths.staging_dir),
        },
        "ui": {
            "refresh_interval": config.ui.refresh_interval,
            "filter": config.ui.filter,
            "paste_guard_ms": config.ui.paste_guard_ms,
            "help_height": config.ui.help_height,
        },
        "log": {
            "level": config.log.level,
            "file": str(config.log.file),
            "to_stdout": config.log.to_stdout,
        },
    }
    CONFIG_FILE.write_text(yaml.safe_dump(payload, sort_keys=False, allow_unicode=False))


def parse_log_level(value: Any) -> str:
    """Upper-cased level name, or the default when ``value`` is not one."""
    level = str(value or "").strip().upper()
    return level if level in LOG_LEVELS else LogConfig().level


def clamp_refresh(value: float) -> float:
    return max(0.5, min(10.0, value))
