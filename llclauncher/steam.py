"""Locating Steam, finding installed games and launching them."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

from . import vdf

log = logging.getLogger(__name__)

_HOME_CANDIDATES = (
    ".steam/steam",
    ".local/share/Steam",
    ".var/app/com.valvesoftware.Steam/.steam/steam",
)


class SteamSupportError(Exception):
    """Steam could not be located, read or started."""


class AppNotFoundError(SteamSupportError):
    """The given app is not installed in any Steam library."""

    def __init__(self, app_id: int) -> None:
        super().__init__(f"steam app ({app_id}) not found")
        self.app_id = app_id


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _registry_steam_root() -> Path:
    import winreg

    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam") as key:
            value, _ = winreg.QueryValueEx(key, "SteamPath")
    except OSError as exc:
        raise SteamSupportError(str(exc)) from exc
    return Path(value)


def _home_steam_root() -> Path:
    home = os.environ.get("HOME")
    if home is None:
        raise SteamSupportError("HOME environment variable not set")
    try:
        home_path = Path(home).resolve(strict=True)
    except OSError as exc:
        raise SteamSupportError(str(exc)) from exc
    for candidate in _HOME_CANDIDATES:
        full = home_path / candidate
        if full.exists():
            return full
    raise SteamSupportError("Steam installation root not found")


def get_steam_root() -> Path:
    """Steam's installation directory, from the registry or the home directory."""
    return _registry_steam_root() if _is_windows() else _home_steam_root()


def launch_game_via_steam(app_id: int) -> None:
    """Ask Steam to start the game with ``app_id``."""
    steam_root = get_steam_root()
    steam_url = f"steam://rungameid/{app_id}"
    if _is_windows():
        steam_exe = steam_root / "steam.exe"
        if not steam_exe.exists():
            raise SteamSupportError("Steam executable not found")
        log.debug("steam executable: %s", steam_exe)
        command = [str(steam_exe), steam_url]
    else:
        steam_sh = steam_root / "steam.sh"
        if not steam_sh.exists():
            raise SteamSupportError("Steam launcher not found")
        command = ["sh", str(steam_sh), steam_url]
    try:
        subprocess.Popen(command)
    except OSError as exc:
        raise SteamSupportError(str(exc)) from exc


def _read_vdf(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SteamSupportError(str(exc)) from exc
    try:
        return vdf.loads(text)
    except vdf.VdfError as exc:
        raise SteamSupportError(f"parse vdf: {exc}") from exc


def _app_ids(apps: dict[str, Any]) -> set[int]:
    try:
        return {int(key) for key in apps}
    except ValueError as exc:
        raise SteamSupportError(f"parse vdf: invalid app id: {exc}") from exc


def _library_path_for(folders: dict[str, Any], app_id: int) -> Path:
    for library in folders.values():
        if not isinstance(library, dict):
            continue
        path = library.get("path")
        apps = library.get("apps")
        if not isinstance(path, str) or not isinstance(apps, dict):
            raise SteamSupportError("parse vdf: library needs 'path' and 'apps'")
        if app_id in _app_ids(apps):
            return Path(path)
    raise AppNotFoundError(app_id)


def find_game_path_for_app(steam_root: str | os.PathLike[str], app_id: int) -> Path:
    """Installation directory of ``app_id`` across all Steam libraries."""
    libraries = _read_vdf(Path(steam_root) / "steamapps" / "libraryfolders.vdf")
    folders = libraries.get("libraryfolders")
    if not isinstance(folders, dict):
        raise SteamSupportError("parse vdf: missing 'libraryfolders'")

    steam_apps = _library_path_for(folders, app_id) / "steamapps"
    manifest_path = steam_apps / f"appmanifest_{app_id}.acf"
    if not manifest_path.exists():
        raise AppNotFoundError(app_id)

    app_state = _read_vdf(manifest_path).get("AppState")
    if not isinstance(app_state, dict) or not isinstance(app_state.get("installdir"), str):
        raise SteamSupportError("parse vdf: missing 'AppState.installdir'")

    game_path = steam_apps / "common" / app_state["installdir"]
    if not game_path.exists():
        raise AppNotFoundError(app_id)
    return game_path