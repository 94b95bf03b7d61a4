"""Installing, updating and starting the localization package."""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
import time
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path

from . import sevenzip, zeroasso
from .game import get_limbus_company_install_path, launch_limbus_company
from .llc_config import LLCConfig
from .msgbox import IconType, create_msgbox

log = logging.getLogger(__name__)

LAUNCHER_PATH_ENV = "LLC_LAUNCHER_PATH"
FONT_PACKAGE = "LLCCN-Font.7z"
_PARENT_EXIT_DELAY = 1.0


def _main_package(version: int) -> str:
    return f"LimbusLocalize_{version}.7z"


def _lang_dir(game_root: Path) -> Path:
    return game_root / "LimbusCompany_Data" / "Lang"


def _llc_dir(game_root: Path) -> Path:
    return _lang_dir(game_root) / "LLC_zh-CN"


@contextmanager
def _context(message: str, what: str) -> Iterator[None]:
    """Log a failure and re-raise it with a user-facing message in front."""
    try:
        yield
    except Exception as exc:
        log.error("%s: %s", what, exc)
        raise RuntimeError(f"{message}: {exc}") from exc


def run(llc_config: LLCConfig) -> None:
    """Bring the localization up to date, start the game and update the launcher."""
    with _context("无法安装或更新 LLC", "Failed to install or update LLC"):
        with _context(
            "无法获取 Limbus Company 安装路径", "failed to get Limbus Company install path"
        ):
            game_root = get_limbus_company_install_path()
        install_or_update_llc(llc_config, game_root)
    log.info("LLC installation or update completed successfully.")

    with _context("无法启动 Limbus Company", "cannot start Limbus Company"):
        launch_limbus_company()
    log.info("Limbus Company launched successfully.")

    with _context("无法更新启动器可执行文件", "Failed to copy self to launcher"):
        copy_self_to_launcher()
    log.info("Launcher executable updated successfully.")


def _current_executable() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable)
    return Path(sys.argv[0]).resolve()


def copy_self_to_launcher() -> Path:
    """Copy the running executable over the launcher that started it."""
    time.sleep(_PARENT_EXIT_DELAY)  # give the parent process time to exit
    launcher = os.environ.get(LAUNCHER_PATH_ENV)
    if not launcher:
        log.error("%s unset", LAUNCHER_PATH_ENV)
        raise RuntimeError("请勿直接运行本目录中的启动器可执行文件")
    destination = Path(launcher)
    shutil.copy(_current_executable(), destination)
    return destination


def install_or_update_llc(llc_config: LLCConfig, game_root: str | Path) -> bool:
    """Install the latest localization below ``game_root``; return whether it changed."""
    game_root = Path(game_root)
    log.info("Limbus Company install path: %s", game_root)

    with _context("无法创建语言目录", "Failed to create LLC directory"):
        _lang_dir(game_root).mkdir(parents=True, exist_ok=True)

    try:
        found = get_version_installed(game_root)
    except (OSError, ValueError) as exc:
        log.warning("Failed to get installed version: %s, proceeding with installation.", exc)
        installed = 0
    else:
        if found is None:
            log.info("No version installed, proceeding with installation.")
        installed = found or 0

    pool = ThreadPoolExecutor(max_workers=4)
    try:
        hashes_future = pool.submit(zeroasso.get_hash, llc_config)
        with _context("无法获取最新版本", "Failed to get latest version"):
            latest = zeroasso.get_version(llc_config)
        log.info("Latest version available: %s", latest)

        if installed >= latest:
            log.info("LLC is already up to date (version %s).", installed)
            return False

        with _context("无法获取文件哈希", "Failed to get hashes"):
            hashes = hashes_future.result()

        font_installer = pool.submit(
            install_font_if_needed, llc_config, game_root, hashes.font_hash
        )
        cleaner = pool.submit(cleanup_installed_llc, game_root)
        downloader = pool.submit(
            zeroasso.download_file, llc_config, _main_package(latest), hashes.main_hash
        )

        log.info("Updating LLC from version %s to %s.", installed, latest)
        create_msgbox("更新 LLC", f"将会更新 LLC 到版本 {latest}", IconType.INFO)

        with _context("无法清理已安装的文件", "Failed to clean up installed files"):
            cleaner.result()
        with _context("无法下载 LLC 文件", "Failed to download LLC"):
            archive = downloader.result()
        with _context("无法解压 LLC 文件", "Failed to extract LLC files"):
            sevenzip.extract(archive, game_root)
        with _context("无法安装字体", "Failed to install font"):
            font_installer.result()
    finally:
        pool.shutdown(wait=True, cancel_futures=True)
    return True


def get_version_installed(game_root: str | Path) -> int | None:
    """Version of the installed localization, or None when none is installed."""
    version_file = _llc_dir(Path(game_root)) / "Info" / "version.json"
    if not version_file.exists():
        log.info("Version file does not exist at %s", version_file)
        return None
    with version_file.open(encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except ValueError as exc:
            log.error("Failed to parse version file: %s", exc)
            raise ValueError("无法解析版本文件") from exc
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        log.error("Failed to parse version file: bad version field")
        raise ValueError("无法解析版本文件")
    log.info("Installed version: %s", version)
    return version


def cleanup_installed_llc(game_root: str | Path) -> None:
    """Remove the installed localization, keeping its font directory."""
    llc_dir = _llc_dir(Path(game_root))
    if not llc_dir.exists():
        return
    for path in llc_dir.iterdir():
        if path.name == "Font":
            continue
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        else:
            log.warning("Found suspicious path: %s", path)


def install_font_if_needed(
    llc_config: LLCConfig, game_root: str | Path, font_hash: bytes
) -> bool:
    """Download and unpack the font unless it is present; return whether it was installed."""
    game_root = Path(game_root)
    font_file = _llc_dir(game_root) / "Font" / "Context" / "ChineseFont.ttf"
    if font_file.exists():
        log.info("Font file is already installed and valid.")
        return False
    log.info("Font file does not exist, installing...")
    archive = zeroasso.download_file(llc_config, FONT_PACKAGE, font_hash)
    sevenzip.extract(archive, game_root)
    return True