"""Raw PCM handling for synthesized speech.

The speech model returns base64-encoded 16-bit little-endian PCM. This module
decodes it, exposes duration/sample helpers, and serializes clips to WAV.
"""

from __future__ import annotations

import base64
import io
import re
import struct
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

DEFAULT_SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2  # bytes, 16-bit PCM
WAV_HEADER_SIZE = 44


def decode_base64(data: str) -> bytes:
    """Decode a base64 audio payload into raw bytes."""
    return base64.b64decode(data)


@dataclass(frozen=True)
class AudioClip:
    """A single buffer of interleaved 16-bit PCM frames."""

    pcm: bytes
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = 1

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if self.channels <= 0:
            raise ValueError("channels must be positive")
        frame_size = SAMPLE_WIDTH * self.channels
        remainder = len(self.pcm) % frame_size
        if remainder:
            # Drop a trailing partial frame
            object.__setattr__(self, 'pcm', self.pcm[: len(self.pcm) - remainder])

    @property
    def frame_size(self) -> int:
        return SAMPLE_WIDTH * self.channels

    @property
    def frame_count(self) -> int:
        return len(self.pcm) // self.frame_size

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frame_count / float(self.sample_rate)

    def samples(self, channel: int = 0) -> List[float]:
        """Return one channel as floats in [-1.0, 1.0)."""
        if not 0 <= channel < self.channels:
            raise IndexError(f"channel {channel} out of range for {self.channels}-channel clip")
        values = struct.unpack(f"<{len(self.pcm) // SAMPLE_WIDTH}h", self.pcm)
        return [values[i] / 32768.0 for i in range(channel, len(values), self.channels)]

    def slice_from(self, offset: float) -> "AudioClip":
        """Return the clip starting at *offset* seconds (clamped to the clip)."""
        offset = max(0.0, min(float(offset), self.duration))
        start_frame = int(round(offset * self.sample_rate))
        start_frame = min(start_frame, self.frame_count)
        return AudioClip(self.pcm[start_frame * self.frame_size:], self.sample_rate, self.channels)

    def to_wav(self) -> bytes:
        return pcm_to_wav(self.pcm, self.sample_rate, self.channels)


def pcm_to_wav(pcm: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE, channels: int = 1) -> bytes:
    """Wrap 16-bit PCM in a canonical 44-byte RIFF/WAVE header."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm)
    return buffer.getvalue()


def write_wav(path: Union[str, Path], clip: AudioClip) -> Path:
    """Write *clip* to *path* as a WAV file, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(clip.to_wav())
    return target


def read_wav(path: Union[str, Path]) -> AudioClip:
    """Load a 16-bit PCM WAV file written by :func:`write_wav`."""
    with wave.open(str(path), 'rb') as wf:
        if wf.getsampwidth() != SAMPLE_WIDTH:
            raise ValueError(f"{path}: only 16-bit PCM is supported")
        frames = wf.readframes(wf.getnframes())
        return AudioClip(frames, wf.getframerate(), wf.getnchannels())


def wav_filename(title: str) -> str:
    """Download name for an article's audio: first 20 title characters + .wav."""
    stem = (title or '')[:20]
    stem = re.sub(r'[\\/:*?"<>|\x00-\x1f]', '_', stem).strip().strip('.')
    return f"{stem or 'article'}.wav"


def format_time(seconds: float) -> str:
    """Format a position as m:ss."""
    seconds = max(0.0, float(seconds))
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


__all__ = [
    'DEFAULT_SAMPLE_RATE',
    'WAV_HEADER_SIZE',
    'AudioClip',
    'decode_base64',
    'pcm_to_wav',
    'write_wav',
    'read_wav',
    'wav_filename',
    'format_time',
]
