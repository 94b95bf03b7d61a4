"""Locating and starting Limbus Company through Steam."""

from __future__ import annotations

from pathlib import Path

from .steam import find_game_path_for_app, get_steam_root, launch_game_via_steam

LIMBUS_COMPANY_STEAM_APP_ID = 1973530
"""The Steam app ID of Limbus Company."""


def get_limbus_company_install_path() -> Path:
    """Installation directory of Limbus Company, resolved at run time."""
    return find_game_path_for_app(get_steam_root(), LIMBUS_COMPANY_STEAM_APP_ID)


def launch_limbus_company() -> None:
    """Start Limbus Company via Steam."""
    launch_game_via_steam(LIMBUS_COMPANY_STEAM_APP_ID)