"""Browser and clipboard side effects.

Both are best-effort: opening a URL never blocks the caller and never raises,
copying reports availability through its return value.
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Protocol

import pyperclip

from .logging import get_logger


class BrowserLauncher(Protocol):
    def open(self, url: str) -> None: ...


class Clipboard(Protocol):
    def copy(self, text: str) -> bool: ...


def _open_quietly(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        get_logger().warning("Could not open browser", url=url, error=str(exc))
        return
    if not opened:
        get_logger().warning("No browser available", url=url)


def open_in_browser(url: str) -> threading.Thread:
    thread = threading.Thread(target=_open_quietly, args=(url,), daemon=True)
    thread.start()
    return thread


def copy_to_clipboard(text: str) -> bool:
    # the backend is resolved lazily on the first copy; no mechanism raises
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        get_logger().warning("Clipboard copy failed", error=str(exc))
        return False
    return True


class SystemBrowser:
    """Opens URLs off the caller's thread.

    ``wait`` bounds how long ``open`` lingers for the launcher; one-shot CLI
    commands set it so the process doesn't exit before the browser starts.
    """

    def __init__(self, wait: float | None = None) -> None:
        self.wait = wait

    def open(self, url: str) -> None:
        thread = open_in_browser(url)
        if self.wait is not None:
            thread.join(self.wait)


class SystemClipboard:
    def copy(self, text: str) -> bool:
        return copy_to_clipboard(text)


__all__ = [
    "BrowserLauncher",
    "Clipboard",
    "SystemBrowser",
    "SystemClipboard",
    "copy_to_clipboard",
    "open_in_browser",
]
