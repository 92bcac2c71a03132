"""Tests for the play/pause/seek bookkeeping."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from omniread.core.audio import AudioClip  # noqa: E402
from omniread.core.playback import PlaybackController  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def _clip(seconds: float, rate: int = 100) -> AudioClip:
    return AudioClip(b"\x00\x00" * int(seconds * rate), sample_rate=rate)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def player(clock):
    controller = PlaybackController(clock=clock)
    controller.load(_clip(10.0))
    return controller


def test_play_advances_with_clock(player, clock):
    player.play()
    clock.advance(2.5)

    state = player.state
    assert state.is_playing
    assert state.current_time == pytest.approx(2.5)
    assert state.duration == pytest.approx(10.0)


def test_pause_then_resume_continues_from_pause_point(player, clock):
    player.toggle()
    clock.advance(3.0)
    player.toggle()
    assert not player.is_playing
    assert player.tick() == pytest.approx(3.0)

    clock.advance(50.0)
    assert player.tick() == pytest.approx(3.0)

    player.toggle()
    clock.advance(1.0)
    assert player.tick() == pytest.approx(4.0)


def test_reaching_the_end_stops_and_rewinds(player, clock):
    player.play()
    clock.advance(10.5)

    assert player.tick() == 0.0
    assert not player.is_playing


def test_seek_while_paused_only_moves_position(player, clock):
    player.seek(4.0)
    assert not player.is_playing
    assert player.tick() == pytest.approx(4.0)

    player.play()
    clock.advance(1.0)
    assert player.tick() == pytest.approx(5.0)


def test_seek_while_playing_restarts_single_source(player, clock):
    player.play()
    clock.advance(1.0)
    started = player.sources_started

    player.seek(7.0)
    clock.advance(0.5)

    assert player.is_playing
    assert player.tick() == pytest.approx(7.5)
    assert player.sources_started == started + 1


def test_seek_is_clamped_to_clip(player):
    player.seek(-5)
    assert player.tick() == 0.0
    player.seek(500)
    assert player.tick() == pytest.approx(10.0)


def test_play_again_replaces_active_source(player, clock):
    player.play(1.0)
    player.play(2.0)
    clock.advance(1.0)
    assert player.tick() == pytest.approx(3.0)
    assert player.sources_started == 2


def test_stop_rewinds(player, clock):
    player.play()
    clock.advance(4.0)
    player.stop()
    assert not player.is_playing
    assert player.tick() == 0.0
    player.play()
    assert player.tick() == 0.0


def test_controls_are_noops_without_clip(clock):
    controller = PlaybackController(clock=clock)
    controller.play()
    controller.seek(3.0)

    state = controller.state
    assert not state.is_playing
    assert not state.has_audio
    assert state.current_time == 0.0


def test_loading_flags(clock):
    controller = PlaybackController(clock=clock)
    controller.begin_loading()
    assert controller.state.is_loading
    controller.load(_clip(1.0), "a.wav")
    state = controller.state
    assert not state.is_loading
    assert state.audio_path == "a.wav"
    controller.unload()
    assert not controller.state.has_audio
