import logging

import pytest

from llclauncher.logsetup import LOG_FILE_NAME, init_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    level = root.level
    before = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _file_text(log_dir, handlers):
    for handler in handlers:
        handler.flush()
    return (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8")


def test_messages_reach_the_file(tmp_path, restore_root):
    log_dir = tmp_path / "logs"
    handlers = init_logging(log_dir, logging.INFO)
    assert all(h in restore_root.handlers for h in handlers)
    logging.getLogger("llclauncher.sample").info("hello file")
    assert "hello file" in _file_text(log_dir, handlers)


def test_level_filters_lower_messages(tmp_path, restore_root):
    handlers = init_logging(tmp_path, logging.WARNING)
    logger = logging.getLogger("llclauncher.sample")
    logger.info("quiet message")
    logger.warning("loud message")
    text = _file_text(tmp_path, handlers)
    assert "loud message" in text
    assert "quiet message" not in text


def test_noisy_loggers_are_dropped(tmp_path, restore_root):
    handlers = init_logging(tmp_path, logging.DEBUG)
    logging.getLogger("urllib3.connectionpool").warning("pool chatter")
    logging.getLogger("llclauncher.sample").warning("kept")
    text = _file_text(tmp_path, handlers)
    assert "kept" in text
    assert "pool chatter" not in text


def test_directory_error(tmp_path, restore_root):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(OSError):
        init_logging(blocker / "logs", logging.INFO)