"""Tests for PCM decoding and WAV serialization."""

from __future__ import annotations

import base64
import struct
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from omniread.core.audio import (  # noqa: E402
    WAV_HEADER_SIZE,
    AudioClip,
    decode_base64,
    format_time,
    pcm_to_wav,
    read_wav,
    wav_filename,
    write_wav,
)


def _pcm(values):
    return struct.pack(f"<{len(values)}h", *values)


def test_wav_header_matches_canonical_layout():
    pcm = _pcm([0, 1000, -1000, 32767])
    wav = pcm_to_wav(pcm, sample_rate=24000, channels=1)

    assert len(wav) == WAV_HEADER_SIZE + len(pcm)
    assert wav[0:4] == b"RIFF"
    assert struct.unpack("<I", wav[4:8])[0] == 36 + len(pcm)
    assert wav[8:12] == b"WAVE"
    assert wav[12:16] == b"fmt "
    fmt_size, audio_format, channels, rate, byte_rate, block_align, bits = struct.unpack("<IHHIIHH", wav[16:36])
    assert fmt_size == 16
    assert audio_format == 1
    assert channels == 1
    assert rate == 24000
    assert byte_rate == 24000 * 2
    assert block_align == 2
    assert bits == 16
    assert wav[36:40] == b"data"
    assert struct.unpack("<I", wav[40:44])[0] == len(pcm)
    assert wav[44:] == pcm


def test_stereo_header_fields():
    wav = pcm_to_wav(_pcm([1, 2, 3, 4]), sample_rate=48000, channels=2)
    channels, rate, byte_rate, block_align = struct.unpack("<HIIH", wav[22:34])
    assert (channels, rate, byte_rate, block_align) == (2, 48000, 48000 * 4, 4)


def test_clip_duration_and_samples():
    clip = AudioClip(_pcm([0, 16384, -32768] * 8000), sample_rate=24000)

    assert clip.frame_count == 24000
    assert clip.duration == pytest.approx(1.0)
    assert clip.samples()[:3] == [0.0, 0.5, -1.0]


def test_partial_trailing_frame_is_dropped():
    clip = AudioClip(_pcm([1, 2, 3]) + b"\x01", sample_rate=24000)
    assert clip.frame_count == 3
    assert len(clip.pcm) == 6


def test_interleaved_channel_samples():
    clip = AudioClip(_pcm([100, -100, 200, -200]), sample_rate=8000, channels=2)
    assert clip.samples(1) == [-100 / 32768.0, -200 / 32768.0]
    with pytest.raises(IndexError):
        clip.samples(2)


def test_slice_from_is_clamped():
    clip = AudioClip(_pcm(list(range(10))), sample_rate=10)

    assert clip.slice_from(0.5).pcm == _pcm([5, 6, 7, 8, 9])
    assert clip.slice_from(-3).pcm == clip.pcm
    assert clip.slice_from(99).frame_count == 0


def test_decode_base64_round_trips_payload():
    pcm = _pcm([5, -5])
    assert decode_base64(base64.b64encode(pcm).decode("ascii")) == pcm


def test_write_and_read_wav(tmp_path):
    clip = AudioClip(_pcm([10, 20, 30]), sample_rate=24000)
    path = write_wav(tmp_path / "out" / "a.wav", clip)

    loaded = read_wav(path)
    assert loaded == clip


def test_wav_filename_uses_first_twenty_title_characters():
    assert wav_filename("Une histoire très longue du monde") == "Une histoire très lo.wav"
    assert wav_filename("a/b:c") == "a_b_c.wav"
    assert wav_filename("") == "article.wav"


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0:00"), (9.9, "0:09"), (61, "1:01"), (3600, "60:00"), (-4, "0:00")],
)
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected
