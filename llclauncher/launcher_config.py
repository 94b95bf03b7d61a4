"""Launcher settings and the TOML files that hold them."""

from __future__ import annotations

import logging
import sys
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlsplit, urlunsplit
from uuid import UUID, uuid4

import tomli_w

from .llc_config import LLCConfig, default_llc_config
from .llc_config import dumps as dump_llc_config
from .llc_config import loads as load_llc_config

CONFIG_FILE = "config.toml"
LLC_CONFIG_FILE = "llc_config.toml"

DEFAULT_NPM_REGISTRIES = (
    "https://registry.npmmirror.com",
    "https://registry.npmjs.org",
)

TRACE = 5
_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": TRACE,
}
_LEVEL_NUMBERS = {1: "ERROR", 2: "WARN", 3: "INFO", 4: "DEBUG", 5: "TRACE"}

T = TypeVar("T")


class ConfigError(ValueError):
    """A configuration file could not be created, read or parsed."""


def _parse_level(value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"invalid log level: {value!r}")
    text = value.strip()
    try:
        number = int(text)
    except ValueError:
        name = text.upper()
        if name in _LEVELS:
            return name
    else:
        if number in _LEVEL_NUMBERS:
            return _LEVEL_NUMBERS[number]
    raise ConfigError(f"invalid log level: {value!r}")


def _parse_registry(text: Any) -> str:
    if not isinstance(text, str):
        raise ConfigError(f"invalid registry URL: {text!r}")
    parts = urlsplit(text.strip())
    if not parts.scheme or not parts.netloc:
        raise ConfigError(f"invalid registry URL: {text!r}")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc, parts.path or "/", parts.query, parts.fragment)
    )


@dataclass
class LauncherConfig:
    """Settings of the launcher itself."""

    uuid: UUID = field(default_factory=uuid4)
    log_level: str = "INFO"
    telemetry: bool = True
    npm_registries: list[str] = field(default_factory=lambda: list(DEFAULT_NPM_REGISTRIES))

    def __post_init__(self) -> None:
        if not isinstance(self.uuid, UUID):
            try:
                self.uuid = UUID(str(self.uuid))
            except ValueError as exc:
                raise ConfigError(f"invalid uuid: {self.uuid!r}") from exc
        self.log_level = _parse_level(self.log_level)
        if not isinstance(self.telemetry, bool):
            raise ConfigError("telemetry must be true or false")
        self.npm_registries = [_parse_registry(url) for url in self.npm_registries]

    @property
    def logging_level(self) -> int:
        """The log level as a number understood by the logging module."""
        return _LEVELS[self.log_level]

    def to_dict(self) -> dict[str, Any]:
        """The settings in their file layout."""
        return {
            "uuid": str(self.uuid),
            "log_level": self.log_level,
            "telemetry": self.telemetry,
            "npm_registries": list(self.npm_registries),
        }


def launcher_config_from_dict(data: Mapping[str, Any]) -> LauncherConfig:
    """Build launcher settings from their file layout; missing optional fields get defaults."""
    if not isinstance(data, Mapping):
        raise ConfigError("launcher configuration must be a table")
    if "log_level" not in data:
        raise ConfigError("missing field 'log_level'")
    kwargs: dict[str, Any] = {"log_level": data["log_level"]}
    if "uuid" in data:
        kwargs["uuid"] = data["uuid"]
    if "telemetry" in data:
        kwargs["telemetry"] = data["telemetry"]
    if "npm_registries" in data:
        registries = data["npm_registries"]
        if not isinstance(registries, list):
            raise ConfigError("npm_registries must be a list")
        kwargs["npm_registries"] = registries
    return LauncherConfig(**kwargs)


def _dump_launcher_config(config: LauncherConfig) -> str:
    return tomli_w.dumps(config.to_dict())


def _load_launcher_config(text: str) -> LauncherConfig:
    return launcher_config_from_dict(tomllib.loads(text))


def _write(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        print(f"failed to write config file: {exc}", file=sys.stderr)
        raise ConfigError("无法写入配置文件") from exc


def _load_or_default(
    path: Path,
    default: Callable[[], T],
    parse: Callable[[str], T],
    render: Callable[[T], str],
) -> T:
    if not path.exists():
        value = default()
        _write(path, render(value))
        return value
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"failed to read config file: {exc}", file=sys.stderr)
        raise ConfigError("无法读取配置文件") from exc
    try:
        return parse(text)
    except ValueError as exc:
        print(f"failed to parse config file: {exc}", file=sys.stderr)
        raise ConfigError(f"无法解析配置文件: {exc}") from exc


def _ensure_dir(config_dir: Path) -> None:
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"failed to create config dir: {exc}", file=sys.stderr)
        raise ConfigError("无法创建配置目录") from exc


def load(config_dir: str | Path) -> tuple[LauncherConfig, LLCConfig]:
    """Read both configuration files, writing defaults for any that are missing."""
    config_dir = Path(config_dir)
    _ensure_dir(config_dir)
    try:
        config = _load_or_default(
            config_dir / CONFIG_FILE,
            LauncherConfig,
            _load_launcher_config,
            _dump_launcher_config,
        )
    except ConfigError as exc:
        raise ConfigError(f"无法加载或创建启动器配置文件: {exc}") from exc
    try:
        llc_config = _load_or_default(
            config_dir / LLC_CONFIG_FILE,
            default_llc_config,
            load_llc_config,
            dump_llc_config,
        )
    except ConfigError as exc:
        raise ConfigError(f"无法加载或创建 LLC 配置文件: {exc}") from exc
    return config, llc_config


def save(config_dir: str | Path, config: LauncherConfig, llc_config: LLCConfig) -> None:
    """Write both configuration files."""
    config_dir = Path(config_dir)
    _ensure_dir(config_dir)
    try:
        _write(config_dir / CONFIG_FILE, _dump_launcher_config(config))
    except ConfigError as exc:
        raise ConfigError(f"无法保存启动器配置文件: {exc}") from exc
    try:
        _write(config_dir / LLC_CONFIG_FILE, dump_llc_config(llc_config))
    except ConfigError as exc:
        raise ConfigError(f"无法保存 LLC 配置文件: {exc}") from exc