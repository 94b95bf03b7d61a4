"""Message boxes shown to the user on Windows."""

from __future__ import annotations

import enum
import sys


class IconType(enum.Enum):
    """The icon shown in a message box."""

    ERROR = "error"
    INFO = "info"


def create_msgbox(title: str, content: str, icon_type: IconType) -> bool:
    """Show a blocking message box on Windows; return whether one was shown.

    On other systems nothing is shown.
    """
    if not sys.platform.startswith("win"):
        return False
    try:
        import tkinter
        import tkinter.messagebox

        show = {
            IconType.ERROR: tkinter.messagebox.showerror,
            IconType.INFO: tkinter.messagebox.showinfo,
        }[icon_type]
        root = tkinter.Tk()
        try:
            root.withdraw()
            show(title, content, parent=root)
        finally:
            root.destroy()
    except Exception as exc:
        print(f"Failed to create message box: {exc}", file=sys.stderr)
        return False
    return True