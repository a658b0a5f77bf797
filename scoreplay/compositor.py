"""Compositor: merges positioned text fragments into a single frame."""

from __future__ import annotations

from collections.abc import Iterable

from scoreplay.score_models import DisplayItem, split_lines


def offset_block(item: DisplayItem) -> list[str]:
    """
    Lay out *item* in frame coordinates.

    Each content line is indented by ``x`` spaces and the block is preceded
    by ``y`` empty lines. Negative offsets count as zero.
    """
    indent = " " * max(item.x, 0)
    return [""] * max(item.y, 0) + [indent + line for line in split_lines(item.content)]


def overlay_line(base: str, top: str) -> str:
    """
    Draw *top* over *base*, treating spaces in *top* as transparent.

    A blank *top* leaves *base* unchanged; a blank *base* is replaced by
    *top* outright. Otherwise every non-space character of *top* wins its
    column and any part of *top* beyond the end of *base* is appended.
    """
    if not top.strip():
        return base
    if not base.strip():
        return top

    merged = [
        b if t == " " else t
        for b, t in zip(base, top)
    ]
    if len(top) > len(base):
        merged.append(top[len(base):])
    else:
        merged.append(base[len(top):])
    return "".join(merged)


def flatten(items: Iterable[DisplayItem]) -> str:
    """
    Composite *items* into one text block.

    Items must already be sorted by ascending z: later items are drawn over
    earlier ones wherever they have ink.

    Args:
        items: Display items, lowest z first.

    Returns:
        Frame rows joined with newlines ("" when there are no items).
    """
    rows: list[str] = []
    for n, item in enumerate(items):
        block = offset_block(item)
        if n == 0:
            rows = block
            continue
        for i, line in enumerate(block):
            if i < len(rows):
                rows[i] = overlay_line(rows[i], line)
            else:
                rows.append(line)
    return "\n".join(rows)
