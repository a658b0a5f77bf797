"""Shared fixtures: small score projects on disk."""

from collections.abc import Callable
from pathlib import Path

import pytest

DEFAULT_META = "BPM: 120\nAudioFilePath: song.ogg\nAudioOffsetSec: 0.5\n"


def _write_project(
    root: Path,
    scores: dict[str, str],
    data: dict[str, str] | None = None,
    meta: str = DEFAULT_META,
    audio: bool = True,
) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "meta.yaml").write_text(meta, encoding="utf-8")
    for directory, files in (("scores", scores), ("data", data or {})):
        (root / directory).mkdir(exist_ok=True)
        for name, text in files.items():
            path = root / directory / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
    if audio:
        (root / "song.ogg").write_bytes(b"")
    return root


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory building a project under tmp_path/p from scores, data and meta."""

    def factory(scores: dict[str, str], **kwargs: object) -> Path:
        return _write_project(tmp_path / "p", scores, **kwargs)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    return _write_project(
        tmp_path / "project",
        scores={
            "01_background.txt": "#ZINDEX 0\nstars\n---\nstars\n",
            "02_lead.txt": (
                "#MOVETO 2 1\n#ZINDEX 1\n\"o\"\n\"O\"\n---\n"
                "#FLIP vertical on\nsprites/ship.txt\n"
            ),
        },
        data={
            "stars": "*  *  *\n  *  * \n*  *  *",
            "sprites/ship.txt": "/\\\n||",
        },
    )
