"""Data models for parsed and indexed scores."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Union


# ── Commands ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MoveTo:
    """Absolute cursor position, in character cells."""

    x: int
    y: int


@dataclass(frozen=True)
class ZIndex:
    """Stacking order; higher values are drawn on top."""

    z: int


@dataclass(frozen=True)
class FlipVertical:
    """Turns vertical line reversal on or off for later fragments."""

    enabled: bool


# ── Display commands ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DataDisplay:
    """Reference to a named text asset under the project's data directory."""

    name: str


@dataclass(frozen=True)
class InlineDisplay:
    """Literal text written directly in the score."""

    text: str


Command = Union[MoveTo, ZIndex, FlipVertical]
DisplayCommand = Union[DataDisplay, InlineDisplay]
MeasureCommand = Union[Command, DisplayCommand]


@dataclass(frozen=True)
class Measure:
    """One bar of a score: an ordered list of commands."""

    commands: list[MeasureCommand] = field(default_factory=list)


@dataclass(frozen=True)
class Score:
    """A parsed score document; one score is one playback track."""

    measures: list[Measure] = field(default_factory=list)


# ── Indexed (render-ready) form ─────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutState:
    """
    Ambient layout parameters carried through a score.

    Every command produces a new state; display commands read the current
    one. The state is never reset at measure boundaries.
    """

    x: int = 0
    y: int = 0
    z: int = 0
    flip_vertical: bool = False

    def apply(self, command: Command) -> "LayoutState":
        """Return the state that results from applying *command*."""
        if isinstance(command, MoveTo):
            return replace(self, x=command.x, y=command.y)
        if isinstance(command, ZIndex):
            return replace(self, z=command.z)
        if isinstance(command, FlipVertical):
            return replace(self, flip_vertical=command.enabled)
        raise TypeError(f"Not a layout command: {command!r}")


@dataclass(frozen=True)
class DisplayItem:
    """A positioned fragment with fully resolved text."""

    x: int
    y: int
    z: int
    content: str


@dataclass(frozen=True)
class DisplayMeasure:
    """Display items of one measure, in score order."""

    items: list[DisplayItem] = field(default_factory=list)


@dataclass(frozen=True)
class IndexedScore:
    """One DisplayMeasure per measure of the source score."""

    measures: list[DisplayMeasure] = field(default_factory=list)


def split_lines(text: str) -> list[str]:
    """
    Split *text* into lines on ``\\n`` only.

    A ``\\r`` before a line break is dropped and a final line break does not
    start an empty line; other control characters stay inside their line.
    """
    lines = text.split("\n")
    last = lines.pop()
    lines = [line[:-1] if line.endswith("\r") else line for line in lines]
    if last:
        lines.append(last)
    return lines
