"""CursesTerminal: the full-screen display the player draws frames on."""

from __future__ import annotations

import curses
from typing import Any


class CursesTerminal:
    """
    Full-screen terminal session.

    Entering the context switches to curses mode (no echo, cbreak, hidden
    cursor, non-blocking input); leaving it always restores the terminal,
    including when the body raises.
    """

    def __init__(self) -> None:
        self._screen: Any = None

    @property
    def screen(self) -> Any:
        if self._screen is None:
            raise RuntimeError("CursesTerminal is not active; use it as a context manager")
        return self._screen

    def render(self, frame: str) -> None:
        """Replace the screen contents with *frame*, clipped to the window."""
        screen = self.screen
        height, width = screen.getmaxyx()
        screen.erase()
        for row, line in enumerate(frame.split("\n")[:height]):
            try:
                screen.addstr(row, 0, line[:width])
            except curses.error:
                # writing the bottom-right cell moves the cursor off-screen
                pass
        screen.refresh()

    def poll_key(self) -> bool:
        """True if a key was pressed since the last poll. Never blocks."""
        key = self.screen.getch()
        return key != -1 and key != curses.KEY_RESIZE

    def __enter__(self) -> "CursesTerminal":
        screen = curses.initscr()
        try:
            curses.noecho()
            curses.cbreak()
            screen.keypad(True)
            screen.nodelay(True)
            try:
                curses.curs_set(0)
            except curses.error:
                pass  # terminal cannot hide the cursor
        except Exception:
            curses.endwin()
            raise
        self._screen = screen
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        screen, self._screen = self._screen, None
        if screen is not None:
            screen.keypad(False)
        curses.nocbreak()
        curses.echo()
        curses.endwin()
