"""ScoreIndexer: resolves a parsed Score into positioned display items."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from scoreplay.score_models import (
    DataDisplay,
    DisplayCommand,
    DisplayItem,
    DisplayMeasure,
    IndexedScore,
    InlineDisplay,
    LayoutState,
    Score,
    split_lines,
)

logger = logging.getLogger(__name__)


class AssetResolver(Protocol):
    """Anything that can look up a text asset by name."""

    def lookup(self, name: str) -> str | None:
        """Return the asset text, or None when the asset does not exist."""


class DictAssetResolver:
    """AssetResolver backed by an in-memory mapping."""

    def __init__(self, assets: Mapping[str, str] | None = None) -> None:
        self.assets = dict(assets or {})

    def lookup(self, name: str) -> str | None:
        return self.assets.get(name)


def flip_lines(text: str) -> str:
    """Reverse the order of the lines in *text* (characters are untouched)."""
    return "\n".join(reversed(split_lines(text)))


class ScoreIndexer:
    """
    Walk a Score once and produce its IndexedScore.

    Layout commands update a LayoutState that starts at (0, 0, 0, no flip)
    and carries over every measure boundary until the score ends. Each
    display command is resolved to text (asset lookup or inline literal),
    line-reversed when flipping is on, and stamped with the current x/y/z.

    A missing asset is not an error: its name is displayed instead.
    """

    def __init__(self, resolver: AssetResolver) -> None:
        self.resolver = resolver

    def _resolve(self, command: DisplayCommand) -> str:
        if isinstance(command, InlineDisplay):
            return command.text
        text = self.resolver.lookup(command.name)
        if text is None:
            logger.warning("Asset %r not found, displaying its name", command.name)
            return command.name
        return text

    def index(self, score: Score, state: LayoutState | None = None) -> IndexedScore:
        """
        Resolve every display command of *score*.

        Args:
            score: Parsed score.
            state: Initial layout state; defaults to the origin.

        Returns:
            IndexedScore with exactly one DisplayMeasure per input measure.
        """
        state = state or LayoutState()
        measures: list[DisplayMeasure] = []

        for measure in score.measures:
            items: list[DisplayItem] = []
            for command in measure.commands:
                if isinstance(command, (DataDisplay, InlineDisplay)):
                    content = self._resolve(command)
                    if state.flip_vertical:
                        content = flip_lines(content)
                    items.append(DisplayItem(x=state.x, y=state.y, z=state.z, content=content))
                else:
                    state = state.apply(command)
            measures.append(DisplayMeasure(items=items))

        return IndexedScore(measures=measures)


def index_score(score: Score, resolver: AssetResolver) -> IndexedScore:
    """Index *score* with *resolver*."""
    return ScoreIndexer(resolver).index(score)
