from pathlib import Path
from unittest import mock

import pytest

from llclauncher import game
from llclauncher.steam import AppNotFoundError, SteamSupportError


def _make_steam(home: Path, with_game: bool = True) -> Path:
    root = home / ".steam" / "steam"
    steamapps = root / "steamapps"
    steamapps.mkdir(parents=True)
    apps = '"1973530" "123"' if with_game else '"42" "1"'
    (steamapps / "libraryfolders.vdf").write_text(
        '"libraryfolders"\n{\n "0"\n {\n  "path" "%s"\n  "apps"\n  {\n   %s\n  }\n }\n}\n'
        % (root.as_posix(), apps),
        encoding="utf-8",
    )
    if with_game:
        (steamapps / "appmanifest_1973530.acf").write_text(
            '"AppState"\n{\n "installdir" "Limbus Company"\n}\n', encoding="utf-8"
        )
        (steamapps / "common" / "Limbus Company").mkdir(parents=True)
    return root


@pytest.fixture
def linux_home(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_install_path_found(linux_home):
    root = _make_steam(linux_home)
    path = game.get_limbus_company_install_path()
    assert path.resolve() == (root / "steamapps" / "common" / "Limbus Company").resolve()


def test_install_path_missing_app(linux_home):
    _make_steam(linux_home, with_game=False)
    with pytest.raises(AppNotFoundError) as info:
        game.get_limbus_company_install_path()
    assert info.value.app_id == game.LIMBUS_COMPANY_STEAM_APP_ID


def test_no_steam_installation(linux_home):
    with pytest.raises(SteamSupportError):
        game.get_limbus_company_install_path()


def test_launch_runs_steam_script(linux_home):
    root = _make_steam(linux_home)
    (root / "steam.sh").write_text("#!/bin/sh\n", encoding="utf-8")
    with mock.patch("subprocess.Popen") as popen:
        result = game.launch_limbus_company()
    assert result is None
    assert popen.call_count == 1
    command = popen.call_args.args[0]
    assert command[0] == "sh"
    assert Path(command[1]).name == "steam.sh"
    assert command[2] == "steam://rungameid/1973530"


def test_launch_without_script_fails(linux_home):
    _make_steam(linux_home)
    with pytest.raises(SteamSupportError):
        game.launch_limbus_company()