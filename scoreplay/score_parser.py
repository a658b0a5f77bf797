"""ScoreParser: turns score text into a structured Score."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Final

from scoreplay.score_models import (
    Command,
    DataDisplay,
    DisplayCommand,
    FlipVertical,
    InlineDisplay,
    Measure,
    MeasureCommand,
    MoveTo,
    Score,
    ZIndex,
    split_lines,
)

MEASURE_SEPARATOR: Final[str] = "---"
COMMENT_MARKER: Final[str] = "/"
COMMAND_MARKER: Final[str] = "#"
QUOTE: Final[str] = '"'

_INTEGER_RE: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
INT_MIN: Final[int] = -(2**31)
INT_MAX: Final[int] = 2**31 - 1
_ESCAPE_RE: Final[re.Pattern[str]] = re.compile(r"\\([n\"\\])")
_ESCAPES: Final[dict[str, str]] = {"n": "\n", '"': '"', "\\": "\\"}


class ScoreParseError(ValueError):
    """Raised when a score line cannot be parsed."""

    def __init__(
        self,
        reason: str,
        line: str,
        line_number: int,
        source: str | None = None,
    ) -> None:
        self.reason = reason
        self.line = line
        self.line_number = line_number
        self.source = source
        location = f"{source}:{line_number}" if source else f"line {line_number}"
        super().__init__(f"{location}: {reason}: '{line}'")

    def with_source(self, source: str) -> "ScoreParseError":
        """Return a copy of this error annotated with the score file path."""
        return ScoreParseError(self.reason, self.line, self.line_number, source)


class ScoreParser:
    """
    Parse the score notation.

    Notation
    --------
    Measures are separated by ``---``. Inside a measure every line is one of:

    - blank, or starting with ``/``: ignored (comment)
    - starting with ``#``: a command

        #MOVETO <x> <y>
        #ZINDEX <z>
        #FLIP vertical on|off

    - anything else: a display line. A line wrapped in double quotes is an
      inline literal (``\\n``, ``\\"`` and ``\\\\`` escapes are decoded). A
      bare line that exactly matches a known asset name references that
      asset; any other bare line is displayed verbatim.

    Any malformed command aborts the whole parse with ScoreParseError.
    """

    def __init__(self, data_names: Iterable[str] = ()) -> None:
        """
        Args:
            data_names: Names of the assets available to the score.
        """
        self.data_names = frozenset(data_names)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_measure(self, block: str, first_line_number: int) -> Measure:
        commands: list[MeasureCommand] = []
        for offset, line in enumerate(split_lines(block)):
            if line.startswith(COMMENT_MARKER) or not line.strip():
                continue
            line_number = first_line_number + offset
            if line.startswith(COMMAND_MARKER):
                commands.append(self._parse_command(line, line_number))
            else:
                commands.append(self._parse_display_command(line))
        return Measure(commands=commands)

    def _parse_display_command(self, line: str) -> DisplayCommand:
        if len(line) >= 2 and line.startswith(QUOTE) and line.endswith(QUOTE):
            return InlineDisplay(_decode_escapes(line[1:-1]))
        if line in self.data_names:
            return DataDisplay(line)
        return InlineDisplay(line)

    def _parse_command(self, line: str, line_number: int) -> Command:
        parts = line[len(COMMAND_MARKER):].split()

        def take(what: str) -> str:
            if not parts:
                raise ScoreParseError(f"missing {what}", line, line_number)
            return parts.pop(0)

        def take_int(what: str) -> int:
            token = take(what)
            if not _INTEGER_RE.fullmatch(token):
                raise ScoreParseError(f"invalid {what} {token!r}", line, line_number)
            value = int(token)
            if not INT_MIN <= value <= INT_MAX:
                raise ScoreParseError(f"{what} {token} out of range", line, line_number)
            return value

        keyword = take("command")
        if keyword == "MOVETO":
            x = take_int("x position")
            y = take_int("y position")
            return MoveTo(x, y)
        if keyword == "ZINDEX":
            return ZIndex(take_int("z index"))
        if keyword == "FLIP":
            direction = take("flip direction")
            if direction != "vertical":
                raise ScoreParseError(
                    f"invalid flip direction {direction!r}", line, line_number
                )
            value = take("flip value")
            if value not in ("on", "off"):
                raise ScoreParseError(f"invalid flip value {value!r}", line, line_number)
            return FlipVertical(value == "on")
        raise ScoreParseError(f"unknown command {keyword!r}", line, line_number)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str) -> Score:
        """
        Parse a complete score.

        Args:
            text: Full score text.

        Returns:
            Score with one Measure per ``---``-separated block.

        Raises:
            ScoreParseError: On the first malformed command.
        """
        measures: list[Measure] = []
        line_number = 1
        for block in text.split(MEASURE_SEPARATOR):
            measures.append(self._parse_measure(block, line_number))
            line_number += block.count("\n")
        return Score(measures=measures)


def parse_score(text: str, data_names: Iterable[str] = ()) -> Score:
    """Parse *text* with the given asset names."""
    return ScoreParser(data_names).parse(text)


def _decode_escapes(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], text)
