"""Player: the real-time loop that turns indexed scores into terminal frames."""

from __future__ import annotations

import enum
import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from scoreplay.compositor import flatten
from scoreplay.score_models import DisplayItem, IndexedScore

logger = logging.getLogger(__name__)

BEATS_PER_MEASURE = 4
SECONDS_PER_MINUTE = 60.0
DEFAULT_FPS = 60


class TerminalBackend(Protocol):
    """Screen the player draws on."""

    def render(self, frame: str) -> None: ...

    def poll_key(self) -> bool: ...


class AudioBackend(Protocol):
    """Fire-and-forget audio output."""

    def start(self, path: str) -> object: ...


class PlaybackState(enum.Enum):
    WAITING_FOR_DELAY = "waiting_for_delay"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PlaybackResult:
    """Summary of a finished playback session."""

    state: PlaybackState
    reason: str
    frames_rendered: int


# ── Timing ──────────────────────────────────────────────────────────────────

def seconds_per_measure(bpm: int) -> float:
    """Duration of one 4-beat measure at *bpm*."""
    return SECONDS_PER_MINUTE / bpm * BEATS_PER_MEASURE


def measure_position(elapsed: float, bpm: int) -> float:
    """Fractional measure number reached after *elapsed* seconds."""
    return elapsed / seconds_per_measure(bpm)


def select_item(items: Sequence[DisplayItem], position: float) -> DisplayItem | None:
    """
    Pick the item shown at *position* within its measure.

    The items of a measure are spread evenly over the measure's duration:
    ``index = floor(len(items) * fractional_part(position))``.
    """
    if not items:
        return None
    fraction = position - math.floor(position)
    index = math.floor(len(items) * fraction)
    return items[min(index, len(items) - 1)]


def active_items(tracks: Sequence[IndexedScore], position: float) -> list[DisplayItem]:
    """
    Collect the item each track shows at *position*, sorted by ascending z.

    Tracks without a measure at that index, or with an empty one, are
    skipped.
    """
    measure_index = math.floor(position)
    selected: list[DisplayItem] = []
    if measure_index < 0:
        return selected
    for track in tracks:
        if measure_index >= len(track.measures):
            continue
        item = select_item(track.measures[measure_index].items, position)
        if item is not None:
            selected.append(item)
    selected.sort(key=lambda item: item.z)
    return selected


def compose_frame(tracks: Sequence[IndexedScore], position: float) -> str | None:
    """Composite the frame at *position*, or None when nothing is active."""
    items = active_items(tracks, position)
    if not items:
        return None
    return flatten(items)


def max_measure_count(tracks: Sequence[IndexedScore]) -> int:
    return max((len(track.measures) for track in tracks), default=0)


# ── Loop ────────────────────────────────────────────────────────────────────

class Player:
    """
    Drive playback of one or more tracks against a monotonic clock.

    State machine
    -------------
    WAITING_FOR_DELAY  until ``now >= start + audio_offset``; keys are
                       polled but nothing is drawn.
    RUNNING            every tick computes the measure position from the
                       elapsed time, composites the active items and hands
                       the frame to the terminal.
    STOPPED            when the measure index exceeds the longest track, or
                       on any key press.

    Audio is started once, before the first tick, and never awaited: sync
    relies only on the clock and the configured offset.
    """

    def __init__(
        self,
        tracks: Sequence[IndexedScore],
        bpm: int,
        terminal: TerminalBackend,
        audio: AudioBackend | None = None,
        audio_path: str | None = None,
        audio_offset: float = 0.0,
        fps: int = DEFAULT_FPS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Args:
            tracks:       Indexed scores played simultaneously.
            bpm:          Tempo in beats per minute (positive).
            terminal:     Screen backend.
            audio:        Audio backend; None plays silently.
            audio_path:   File handed to the audio backend.
            audio_offset: Seconds between audio start and animation start
                          (negative starts the animation early).
            fps:          Tick rate.
            clock:        Monotonic time source in seconds.
            sleep:        Blocking wait used between ticks.
        """
        if bpm <= 0:
            raise ValueError(f"BPM must be positive, got {bpm}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.tracks = list(tracks)
        self.bpm = bpm
        self.terminal = terminal
        self.audio = audio
        self.audio_path = audio_path
        self.audio_offset = audio_offset
        self.tick = 1.0 / fps
        self.clock = clock
        self.sleep = sleep
        self.state = PlaybackState.WAITING_FOR_DELAY

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _transition(self, state: PlaybackState) -> None:
        if state is not self.state:
            logger.debug("Playback %s -> %s", self.state.value, state.value)
            self.state = state

    def _wait_for_next_tick(self, deadline: float) -> float:
        remaining = deadline - self.clock()
        if remaining > 0:
            self.sleep(remaining)
        # after an overrun, schedule from now instead of replaying missed ticks
        return max(deadline + self.tick, self.clock())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> PlaybackResult:
        """
        Play until the tracks are exhausted or a key is pressed.

        Returns:
            PlaybackResult with the stop reason ("finished" or
            "interrupted") and the number of frames drawn.
        """
        last_measure = max_measure_count(self.tracks)

        if self.audio is not None and self.audio_path is not None:
            self.audio.start(self.audio_path)
        # the audio timeline begins once start() has returned
        start = self.clock() + self.audio_offset

        self.state = PlaybackState.WAITING_FOR_DELAY
        frames_rendered = 0
        last_frame: str | None = None
        reason = "finished"
        deadline = self.clock()

        while True:
            if self.terminal.poll_key():
                reason = "interrupted"
                break

            elapsed = self.clock() - start
            if elapsed < 0:
                self._transition(PlaybackState.WAITING_FOR_DELAY)
                deadline = self._wait_for_next_tick(deadline)
                continue

            self._transition(PlaybackState.RUNNING)
            position = measure_position(elapsed, self.bpm)
            if math.floor(position) > last_measure:
                break

            frame = compose_frame(self.tracks, position)
            if frame is not None and frame != last_frame:
                self.terminal.render(frame)
                frames_rendered += 1
                last_frame = frame

            deadline = self._wait_for_next_tick(deadline)

        self._transition(PlaybackState.STOPPED)
        logger.info("Playback %s after %d frame(s)", reason, frames_rendered)
        return PlaybackResult(self.state, reason, frames_rendered)
