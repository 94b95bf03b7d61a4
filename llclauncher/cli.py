"""Entry point of the launcher."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import PlatformDirs

from . import installer, self_update
from .launcher_config import ConfigError, LauncherConfig
from .launcher_config import load as load_config
from .launcher_config import save as save_config
from .llc_config import LLCConfig
from .logsetup import init_logging
from .msgbox import IconType, create_msgbox

log = logging.getLogger(__name__)

ORGANIZATION = "lightsing"
APP_NAME = "llc-launcher-rs"
_ERROR_TITLE = "启动器出错了！"


@dataclass
class InitResources:
    """Everything the launcher sets up before doing its work."""

    cache_dir: Path
    config_dir: Path
    data_dir: Path
    self_path: Path
    is_tool: bool
    launcher_config: LauncherConfig
    llc_config: LLCConfig
    log_handlers: list[logging.Handler] = field(default_factory=list)

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


def _current_executable() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable)
    return Path(sys.argv[0])


def _make_dir(path: Path, message: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"{message}: {exc}") from exc


def init() -> InitResources:
    """Create the user directories, load the configuration and start logging.

    A configuration that cannot be loaded ends the process with status -1.
    """
    dirs = PlatformDirs(APP_NAME, ORGANIZATION)
    cache_dir = Path(dirs.user_cache_dir)
    config_dir = Path(dirs.user_config_dir)
    data_dir = Path(dirs.user_data_dir)
    _make_dir(cache_dir, "无法创建缓存目录")
    _make_dir(config_dir, "无法创建配置目录")
    _make_dir(data_dir, "无法创建数据目录")

    try:
        self_path = _current_executable().resolve(strict=True)
    except OSError as exc:
        raise RuntimeError(f"无法获取当前可执行文件路径: {exc}") from exc
    try:
        resolved_cache = cache_dir.resolve(strict=True)
    except OSError as exc:
        raise RuntimeError(f"无法获取缓存目录路径: {exc}") from exc
    is_tool = self_path.is_relative_to(resolved_cache)

    try:
        launcher_config, llc_config = load_config(config_dir)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        create_msgbox(
            _ERROR_TITLE,
            f"无法加载配置文件：{exc}。\n启动器将会退出。\n"
            f"如果不知道如何解决，请删除如下目录：{config_dir}",
            IconType.ERROR,
        )
        raise SystemExit(-1) from exc

    try:
        handlers = init_logging(data_dir / "logs", launcher_config.logging_level)
    except OSError as exc:
        print(exc, file=sys.stderr)
        create_msgbox(
            _ERROR_TITLE,
            f"无法初始化日志系统：{exc}。\n启动器仍然会继续运行，但日志将会无法记录，"
            "如果后续发生错误，将无法提供帮助。",
            IconType.ERROR,
        )
        handlers = []

    if is_tool:
        log.info("Running as tool, path: %s", self_path)
    else:
        log.info("Running as launcher, path: %s", self_path)

    return InitResources(
        cache_dir=cache_dir,
        config_dir=config_dir,
        data_dir=data_dir,
        self_path=self_path,
        is_tool=is_tool,
        launcher_config=launcher_config,
        llc_config=llc_config,
        log_handlers=handlers,
    )


def _main_inner(resources: InitResources) -> None:
    try:
        if resources.is_tool:
            installer.run(resources.llc_config)
        else:
            self_update.run(resources.cache_dir, resources.self_path, resources.launcher_config)
    except Exception as exc:
        log.error("%s", exc, exc_info=True)
        create_msgbox(
            "启动器崩溃了！",
            f"{exc}\n请检查日志文件（位于 {resources.log_dir}）以获取更多信息。",
            IconType.ERROR,
        )


def _close_logging(handlers: list[logging.Handler]) -> None:
    root = logging.getLogger()
    for handler in handlers:
        root.removeHandler(handler)
        handler.close()


def main(argv: list[str] | None = None) -> int:
    """Run the launcher; unrecognised arguments are passed on to the tool."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Keep the localization up to date and start the game."
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {self_update.LAUNCHER_VERSION}"
    )
    parser.parse_known_args(argv)

    try:
        resources = init()
    except (OSError, RuntimeError) as exc:
        print(exc, file=sys.stderr)
        create_msgbox(_ERROR_TITLE, f"无法初始化：{exc}。", IconType.ERROR)
        return -1

    try:
        _main_inner(resources)
        try:
            save_config(resources.config_dir, resources.launcher_config, resources.llc_config)
        except ConfigError as exc:
            log.warning("无法保存配置：%s", exc)
    finally:
        _close_logging(resources.log_handlers)
    return 0