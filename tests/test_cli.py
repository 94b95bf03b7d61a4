import logging
import sys
import tomllib
from types import SimpleNamespace

import pytest
import responses

from llclauncher import cli
from llclauncher.llc_config import DEFAULT_API_NODE, DEFAULT_DOWNLOAD_NODE


@pytest.fixture
def env(tmp_path, monkeypatch):
    fake = SimpleNamespace(
        user_cache_dir=str(tmp_path / "cache"),
        user_config_dir=str(tmp_path / "config"),
        user_data_dir=str(tmp_path / "data"),
    )
    monkeypatch.setattr(cli, "PlatformDirs", lambda *args, **kwargs: fake)
    exe = tmp_path / "bin" / "launcher"
    exe.parent.mkdir()
    exe.write_bytes(b"exe")
    monkeypatch.setattr(sys, "argv", [str(exe)])
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    root = logging.getLogger()
    level = root.level
    before = list(root.handlers)
    yield tmp_path
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def offline():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_init_creates_default_configuration(env):
    resources = cli.init()
    assert resources.is_tool is False
    assert (env / "config" / "config.toml").is_file()
    assert (env / "config" / "llc_config.toml").is_file()
    assert resources.launcher_config.log_level == "INFO"
    assert resources.llc_config.settings.download_node == DEFAULT_DOWNLOAD_NODE
    assert (env / "data" / "logs").is_dir()


def test_init_detects_tool_inside_cache(env, monkeypatch):
    tool = env / "cache" / "llc-launcher-rs"
    tool.parent.mkdir()
    tool.write_bytes(b"tool")
    monkeypatch.setattr(sys, "argv", [str(tool)])
    resources = cli.init()
    assert resources.is_tool is True
    assert resources.self_path == tool.resolve()


def test_init_exits_on_broken_configuration(env):
    config_dir = env / "config"
    config_dir.mkdir()
    (config_dir / "config.toml").write_text("not = [valid", encoding="utf-8")
    with pytest.raises(SystemExit) as info:
        cli.init()
    assert info.value.code == -1


def test_main_reports_failed_initialisation(env, monkeypatch):
    blocker = env / "blocker"
    blocker.write_text("file", encoding="utf-8")
    monkeypatch.setattr(
        cli,
        "PlatformDirs",
        lambda *args, **kwargs: SimpleNamespace(
            user_cache_dir=str(blocker / "cache"),
            user_config_dir=str(env / "config"),
            user_data_dir=str(env / "data"),
        ),
    )
    assert cli.main([]) == -1
    assert not (env / "config" / "config.toml").exists()


def test_main_as_launcher_survives_network_failure_and_saves(env, offline):
    config_dir = env / "config"
    config_dir.mkdir()
    uuid = "12345678-1234-5678-1234-567812345678"
    (config_dir / "config.toml").write_text(
        f'uuid = "{uuid}"\nlog_level = "DEBUG"\nnpm_registries = ["https://registry.example.com"]\n',
        encoding="utf-8",
    )
    assert cli.main([]) == 0
    saved = tomllib.loads((config_dir / "config.toml").read_text(encoding="utf-8"))
    assert saved["uuid"] == uuid
    assert saved["log_level"] == "DEBUG"
    llc = tomllib.loads((config_dir / "llc_config.toml").read_text(encoding="utf-8"))
    assert llc["settings"]["api-node"] == DEFAULT_API_NODE


def test_main_as_tool_without_steam_saves_configuration(env, monkeypatch):
    tool = env / "cache" / "llc-launcher-rs"
    tool.parent.mkdir()
    tool.write_bytes(b"tool")
    monkeypatch.setattr(sys, "argv", [str(tool)])
    assert cli.main([]) == 0
    saved = tomllib.loads((env / "config" / "config.toml").read_text(encoding="utf-8"))
    assert saved["telemetry"] is True
    assert saved["npm_registries"] == [
        "https://registry.npmmirror.com/",
        "https://registry.npmjs.org/",
    ]


def test_main_closes_log_handlers(env, monkeypatch):
    tool = env / "cache" / "llc-launcher-rs"
    tool.parent.mkdir()
    tool.write_bytes(b"tool")
    monkeypatch.setattr(sys, "argv", [str(tool)])
    before = list(logging.getLogger().handlers)
    assert cli.main([]) == 0
    assert logging.getLogger().handlers == before
    assert any((env / "data" / "logs").iterdir())