"""Play/pause/seek bookkeeping for a single audio clip.

No audio device is driven from here. The controller tracks where playback is
so a front end (or a test) can ask for the current position at any time. At
most one source is active: starting playback always stops the previous one.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .audio import AudioClip
from .models import AudioState

logger = logging.getLogger(__name__)


class PlaybackController:
    """Tracks playback position of one loaded clip against a monotonic clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.clip: Optional[AudioClip] = None
        self.audio_path: Optional[str] = None
        self.is_playing = False
        self.is_loading = False
        self._start_time = 0.0
        self._pause_time = 0.0
        self._current_time = 0.0
        self.sources_started = 0

    @property
    def duration(self) -> float:
        return self.clip.duration if self.clip else 0.0

    def begin_loading(self) -> None:
        self.is_loading = True

    def load(self, clip: AudioClip, audio_path: Optional[str] = None) -> None:
        """Attach *clip* and reset the position to the beginning."""
        self.stop()
        self.clip = clip
        self.audio_path = audio_path
        self.is_loading = False
        logger.debug("Loaded clip of %.2fs", clip.duration)

    def loading_failed(self) -> None:
        self.is_loading = False

    def unload(self) -> None:
        self.stop()
        self.clip = None
        self.audio_path = None

    def play(self, offset: Optional[float] = None) -> None:
        """Start from *offset* seconds, or resume from the paused position."""
        if self.clip is None:
            return
        if offset is None:
            offset = self._pause_time
        if self.is_playing:
            self._stop_source()
        self._start_time = self._clock() - offset
        self._current_time = offset
        self.is_playing = True
        self.sources_started += 1

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._stop_source()
        self._pause_time = self._clock() - self._start_time
        if self.duration and self._pause_time > self.duration:
            self._pause_time = 0.0
        self._current_time = self._pause_time

    def stop(self) -> None:
        """Stop playback and rewind to the start."""
        if self.is_playing:
            self._stop_source()
        self._pause_time = 0.0
        self._current_time = 0.0

    def toggle(self) -> None:
        """Pause when playing, otherwise play from the remembered position."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, position: float) -> None:
        """Jump to *position*, clamped to the clip length."""
        if self.clip is None:
            return
        new_time = max(0.0, min(float(position), self.duration))
        self._pause_time = new_time
        if self.is_playing:
            self.play(new_time)
        else:
            self._current_time = new_time

    def tick(self) -> float:
        """Return the current position, ending playback at the clip's end."""
        if self.is_playing:
            now = self._clock() - self._start_time
            if now >= self.duration:
                self.stop()
            else:
                self._current_time = now
        return self._current_time

    @property
    def state(self) -> AudioState:
        position = self.tick()
        return AudioState(
            is_playing=self.is_playing,
            is_loading=self.is_loading,
            current_time=position,
            duration=self.duration,
            has_audio=self.clip is not None,
            audio_path=self.audio_path,
        )

    def _stop_source(self) -> None:
        self.is_playing = False


__all__ = ['PlaybackController']
