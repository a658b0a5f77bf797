"""ScoreProject: loads a score project directory (meta, data assets, scores)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from scoreplay.score_indexer import ScoreIndexer
from scoreplay.score_models import IndexedScore, Score
from scoreplay.score_parser import ScoreParseError, ScoreParser

logger = logging.getLogger(__name__)

META_FILENAME: Final[str] = "meta.yaml"
DATA_DIRNAME: Final[str] = "data"
SCORES_DIRNAME: Final[str] = "scores"


class ProjectError(Exception):
    """Raised when a project directory is incomplete or malformed."""


@dataclass(frozen=True)
class SessionMeta:
    """
    Session parameters read from ``meta.yaml``.

    Attributes:
        bpm:             Tempo in beats per minute.
        audio_file_path: Audio file, relative to the project root.
        audio_offset:    Seconds the animation starts after the audio.
    """

    bpm: int
    audio_file_path: str
    audio_offset: float

    @classmethod
    def from_mapping(cls, raw: Any) -> "SessionMeta":
        if not isinstance(raw, dict):
            raise ProjectError(f"{META_FILENAME} must contain a mapping")
        try:
            bpm = raw["BPM"]
            audio_file_path = raw["AudioFilePath"]
            audio_offset = raw["AudioOffsetSec"]
        except KeyError as exc:
            raise ProjectError(f"{META_FILENAME} is missing key {exc}") from exc

        if isinstance(bpm, bool) or not isinstance(bpm, int) or bpm <= 0:
            raise ProjectError(f"BPM must be a positive integer, got {bpm!r}")
        if not isinstance(audio_file_path, str) or not audio_file_path:
            raise ProjectError(f"AudioFilePath must be a non-empty string, got {audio_file_path!r}")
        if isinstance(audio_offset, bool) or not isinstance(audio_offset, (int, float)):
            raise ProjectError(f"AudioOffsetSec must be a number, got {audio_offset!r}")

        return cls(bpm=bpm, audio_file_path=audio_file_path, audio_offset=float(audio_offset))


def _walk_files(path: Path) -> list[Path]:
    """All regular files below *path*, recursively, in sorted order."""
    return sorted(p for p in path.rglob("*") if p.is_file())


class ScoreProject:
    """
    A score project on disk.

    Layout::

        <root>/meta.yaml     BPM, AudioFilePath, AudioOffsetSec
        <root>/data/...      text assets, named by their path below data/
        <root>/scores/...    one score file per track
        <root>/<audio file>

    Use :meth:`load` to build one; it validates the layout and parses every
    score. Assets are read up front (eager) or on first use (lazy).
    """

    def __init__(
        self,
        root: Path,
        meta: SessionMeta,
        scores: list[Score],
        data: dict[str, str] | None = None,
    ) -> None:
        self.root = root
        self.meta = meta
        self.scores = scores
        self.data: dict[str, str] = data or {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, root: str | Path, eager: bool = True) -> "ScoreProject":
        """
        Load and validate a project directory.

        Args:
            root:  Project root directory.
            eager: Read every data asset into memory immediately.

        Returns:
            The loaded ScoreProject.

        Raises:
            ProjectError:    If the directory layout or meta file is invalid.
            ScoreParseError: If a score file is malformed.
            OSError:         If a file cannot be read.
        """
        root = Path(root)
        meta = cls._load_meta(root)

        data_dir = root / DATA_DIRNAME
        if not data_dir.is_dir():
            raise ProjectError(f"data directory '{data_dir}' does not exist or is not a directory")
        scores_dir = root / SCORES_DIRNAME
        if not scores_dir.is_dir():
            raise ProjectError(f"scores directory '{scores_dir}' does not exist or is not a directory")

        data_names = [p.relative_to(data_dir).as_posix() for p in _walk_files(data_dir)]
        parser = ScoreParser(data_names)
        scores: list[Score] = []
        for path in _walk_files(scores_dir):
            logger.debug("Parsing score %s", path)
            try:
                scores.append(parser.parse(path.read_text(encoding="utf-8")))
            except ScoreParseError as exc:
                raise exc.with_source(str(path)) from exc

        audio_path = root / meta.audio_file_path
        if not audio_path.is_file():
            raise ProjectError(f"audio file '{audio_path}' does not exist or is not a file")

        project = cls(root, meta, scores)
        if eager:
            project.data = project.load_all_data()
        logger.debug(
            "Loaded %d score(s) and %d asset name(s) from %s",
            len(scores), len(data_names), root,
        )
        return project

    @staticmethod
    def _load_meta(root: Path) -> SessionMeta:
        text = (root / META_FILENAME).read_text(encoding="utf-8")
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ProjectError(f"{META_FILENAME} is not valid YAML: {exc}") from exc
        return SessionMeta.from_mapping(raw)

    def load_all_data(self) -> dict[str, str]:
        """Read every asset under data/ into a name -> text dict."""
        data_dir = self.root / DATA_DIRNAME
        return {
            path.relative_to(data_dir).as_posix(): path.read_text(encoding="utf-8")
            for path in _walk_files(data_dir)
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def audio_path(self) -> Path:
        return self.root / self.meta.audio_file_path

    def find_data(self, name: str) -> str:
        """
        Return the text of asset *name*.

        Raises:
            OSError: If the asset is not loaded and cannot be read from disk.
        """
        if name in self.data:
            return self.data[name]
        return (self.root / DATA_DIRNAME / name).read_text(encoding="utf-8")

    def lookup(self, name: str) -> str | None:
        """AssetResolver interface: asset text, or None if unreadable."""
        try:
            return self.find_data(name)
        except OSError as exc:
            logger.warning("Could not read asset %r: %s", name, exc)
            return None

    def index(self) -> list[IndexedScore]:
        """Index every score of the project, one IndexedScore per track."""
        indexer = ScoreIndexer(self)
        return [indexer.index(score) for score in self.scores]
