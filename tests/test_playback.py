"""Unit tests for the playback timing helpers and the Player loop."""

import pytest

from scoreplay.playback import (
    PlaybackState,
    Player,
    active_items,
    compose_frame,
    max_measure_count,
    measure_position,
    seconds_per_measure,
    select_item,
)
from scoreplay.score_models import DisplayItem, DisplayMeasure, IndexedScore


def _item(content: str, z: int = 0, x: int = 0, y: int = 0) -> DisplayItem:
    return DisplayItem(x=x, y=y, z=z, content=content)


def _track(*measures: list[DisplayItem]) -> IndexedScore:
    return IndexedScore(measures=[DisplayMeasure(items=list(m)) for m in measures])


class _FakeClock:
    """Clock that only advances when the player sleeps."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class _FakeTerminal:
    def __init__(
        self,
        press_after: int | None = None,
        clock: _FakeClock | None = None,
        first_render_stall: float = 0.0,
    ) -> None:
        self.frames: list[str] = []
        self.rendered_at: list[float] = []
        self.polled_at: list[float] = []
        self.polls = 0
        self.press_after = press_after
        self.clock = clock
        self.first_render_stall = first_render_stall

    def render(self, frame: str) -> None:
        self.frames.append(frame)
        if self.clock is not None:
            self.rendered_at.append(self.clock.now)
            if len(self.frames) == 1:
                self.clock.now += self.first_render_stall

    def poll_key(self) -> bool:
        self.polls += 1
        if self.clock is not None:
            self.polled_at.append(self.clock.now)
        return self.press_after is not None and self.polls > self.press_after


class _FakeAudio:
    """Audio backend whose start() takes *setup_time* seconds before sound begins."""

    def __init__(self, clock: _FakeClock, setup_time: float = 0.0) -> None:
        self.clock = clock
        self.setup_time = setup_time
        self.started: list[tuple[str, float]] = []

    def start(self, path: str) -> None:
        self.clock.now += self.setup_time
        self.started.append((path, self.clock.now))


# ── Timing helpers ─────────────────────────────────────────────────────────────

def test_seconds_per_measure_assumes_four_beats() -> None:
    assert seconds_per_measure(120) == pytest.approx(2.0)
    assert seconds_per_measure(60) == pytest.approx(4.0)


def test_measure_position_is_fractional() -> None:
    assert measure_position(3.0, 120) == pytest.approx(1.5)


def test_select_item_uses_fraction_of_measure() -> None:
    items = [_item(str(n)) for n in range(4)]
    assert select_item(items, 7.5) == items[2]
    assert select_item(items, 7.0) == items[0]
    assert select_item(items, 7.99) == items[3]


def test_select_item_empty_measure_is_none() -> None:
    assert select_item([], 0.5) is None


def test_active_items_one_per_track_sorted_by_z() -> None:
    top = _track([_item("top", z=5)])
    bottom = _track([_item("bottom", z=-1)])
    assert [i.content for i in active_items([top, bottom], 0.2)] == ["bottom", "top"]


def test_active_items_skips_short_and_empty_tracks() -> None:
    long = _track([_item("a")], [_item("b")], [_item("c")])
    short = _track([_item("x")])
    gap = _track([_item("y")], [])
    assert [i.content for i in active_items([long, short, gap], 1.5)] == ["b"]


def test_compose_frame_none_when_nothing_active() -> None:
    assert compose_frame([_track([])], 0.5) is None


def test_compose_frame_overlays_tracks() -> None:
    base = _track([_item("....", z=0)])
    over = _track([_item("#", x=2, z=1)])
    assert compose_frame([over, base], 0.0) == "..#."


def test_max_measure_count() -> None:
    assert max_measure_count([_track([], []), _track([])]) == 2
    assert max_measure_count([]) == 0


# ── Player ─────────────────────────────────────────────────────────────────────

def test_player_renders_until_measures_are_exhausted() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal()
    # 240 BPM -> one measure per second; 4 ticks per second
    track = _track([_item("a"), _item("b")], [_item("c")])
    player = Player([track], bpm=240, terminal=terminal, fps=4, clock=clock, sleep=clock.sleep)

    result = player.run()

    assert result.state is PlaybackState.STOPPED
    assert result.reason == "finished"
    assert terminal.frames == ["a", "b", "c"]
    assert result.frames_rendered == 3
    # stops once the measure index exceeds the measure count (index 3)
    assert clock.now == pytest.approx(103.0)


def test_player_waits_for_positive_offset_before_drawing() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal()
    audio = _FakeAudio(clock)
    track = _track([_item("a")])
    player = Player(
        [track], bpm=240, terminal=terminal, audio=audio, audio_path="song.ogg",
        audio_offset=0.5, fps=4, clock=clock, sleep=clock.sleep,
    )

    player.run()

    assert audio.started == [("song.ogg", 100.0)]
    assert terminal.frames == ["a"]
    assert terminal.polls > 2


def test_player_negative_offset_starts_mid_score() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal()
    track = _track([_item("skipped")], [_item("shown")])
    player = Player(
        [track], bpm=240, terminal=terminal, audio_offset=-1.0, fps=4,
        clock=clock, sleep=clock.sleep,
    )

    player.run()

    assert terminal.frames == ["shown"]


def test_player_stops_on_key_press() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal(press_after=2)
    track = _track(*[[_item(str(n))] for n in range(100)])
    player = Player([track], bpm=240, terminal=terminal, fps=4, clock=clock, sleep=clock.sleep)

    result = player.run()

    assert result.reason == "interrupted"
    assert result.state is PlaybackState.STOPPED
    assert terminal.frames == ["0"]


def test_player_skips_identical_frames() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal()
    track = _track([_item("same")], [_item("same")])
    player = Player([track], bpm=240, terminal=terminal, fps=8, clock=clock, sleep=clock.sleep)

    result = player.run()

    assert terminal.frames == ["same"]
    assert result.frames_rendered == 1


def test_player_rejects_non_positive_bpm() -> None:
    with pytest.raises(ValueError):
        Player([], bpm=0, terminal=_FakeTerminal())


def test_player_timeline_starts_when_audio_becomes_audible() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal(clock=clock)
    audio = _FakeAudio(clock, setup_time=2.0)
    track = _track(*[[_item(str(n))] for n in range(4)])
    player = Player(
        [track], bpm=240, terminal=terminal, audio=audio, audio_path="song.ogg",
        fps=4, clock=clock, sleep=clock.sleep,
    )

    player.run()

    assert audio.started == [("song.ogg", 102.0)]
    assert terminal.frames == ["0", "1", "2", "3"]
    assert terminal.rendered_at == [102.0, 103.0, 104.0, 105.0]


def test_player_resyncs_after_overrunning_tick() -> None:
    clock = _FakeClock()
    terminal = _FakeTerminal(clock=clock, first_render_stall=1.0)
    track = _track(*[[_item(str(n))] for n in range(3)])
    player = Player([track], bpm=240, terminal=terminal, fps=4, clock=clock, sleep=clock.sleep)

    player.run()

    # the missed ticks between 100.25 and 101.0 are not replayed back to back
    assert terminal.polled_at.count(101.0) == 2
    assert terminal.frames == ["0", "1", "2"]
