import sys
from types import SimpleNamespace
from unittest import mock

import pytest

from llclauncher.msgbox import IconType, create_msgbox


@pytest.fixture
def fake_tk():
    with mock.patch("tkinter.Tk") as tk_cls, mock.patch(
        "tkinter.messagebox.showinfo"
    ) as showinfo, mock.patch("tkinter.messagebox.showerror") as showerror:
        yield SimpleNamespace(Tk=tk_cls, showinfo=showinfo, showerror=showerror)


def test_other_platforms_show_nothing(fake_tk):
    with mock.patch.object(sys, "platform", "linux"):
        assert create_msgbox("title", "content", IconType.ERROR) is False
    fake_tk.showerror.assert_not_called()


def test_windows_shows_info(fake_tk):
    with mock.patch.object(sys, "platform", "win32"):
        assert create_msgbox("title", "content", IconType.INFO) is True
    fake_tk.showinfo.assert_called_once_with(
        "title", "content", parent=fake_tk.Tk.return_value
    )
    fake_tk.Tk.return_value.destroy.assert_called_once_with()


def test_windows_shows_error(fake_tk):
    with mock.patch.object(sys, "platform", "win32"):
        assert create_msgbox("t", "c", IconType.ERROR) is True
    fake_tk.showerror.assert_called_once_with("t", "c", parent=fake_tk.Tk.return_value)
    fake_tk.showinfo.assert_not_called()


def test_failure_is_reported(fake_tk, capsys):
    fake_tk.Tk.side_effect = RuntimeError("no display")
    with mock.patch.object(sys, "platform", "win32"):
        assert create_msgbox("t", "c", IconType.ERROR) is False
    assert "Failed to create message box: no display" in capsys.readouterr().err