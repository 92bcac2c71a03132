"""Value records shared across the processing, storage and rendering layers."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

LANGUAGES = [
    {'code': 'fr', 'name': 'Français'},
    {'code': 'en', 'name': 'English'},
    {'code': 'es', 'name': 'Español'},
    {'code': 'de', 'name': 'Deutsch'},
    {'code': 'it', 'name': 'Italiano'},
    {'code': 'ja', 'name': '日本語'},
]

TONES = [
    {'id': 'neutral', 'name': 'Neutral'},
    {'id': 'professional', 'name': 'Professional'},
    {'id': 'simple', 'name': 'Simplified (ELI5)'},
    {'id': 'witty', 'name': 'Witty'},
]

MODES = ('full', 'summary')

LANGUAGE_CODES = tuple(lang['code'] for lang in LANGUAGES)
TONE_IDS = tuple(tone['id'] for tone in TONES)

RAW_TEXT_SOURCE = 'Raw Text'


def language_name(code: str) -> str:
    """Return the display name for a language code, or the code itself."""
    for lang in LANGUAGES:
        if lang['code'] == code:
            return lang['name']
    return code


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ProcessingSettings:
    """What the model is asked to do with the input."""

    target_language: str = 'fr'
    tone: str = 'neutral'
    mode: str = 'full'

    def __post_init__(self) -> None:
        if self.target_language not in LANGUAGE_CODES:
            raise ValueError(f"Unsupported target language '{self.target_language}'")
        if self.tone not in TONE_IDS:
            raise ValueError(f"Unsupported tone '{self.tone}'")
        if self.mode not in MODES:
            raise ValueError(f"Unsupported mode '{self.mode}' (expected one of {', '.join(MODES)})")

    @property
    def is_summary(self) -> bool:
        return self.mode == 'summary'


@dataclass(frozen=True)
class ReaderSettings:
    """Display preferences applied to the rendered article page."""

    font_size: int = 2
    line_height: float = 1.75
    high_contrast: bool = False
    dark: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ReaderSettings":
        reader = config.get('reader') or {}
        return cls(
            font_size=int(reader.get('font_size', 2)),
            line_height=float(reader.get('line_height', 1.75)),
            high_contrast=bool(reader.get('high_contrast', False)),
            dark=bool(reader.get('dark', False)),
        )


@dataclass(frozen=True)
class ArticleData:
    """A processed article as returned by the model, plus local metadata."""

    url: str
    original_title: str
    translated_title: str
    summary: str
    content: str
    language: str
    original_language: str
    reading_time: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = field(default_factory=now_ms)

    @staticmethod
    def source_for(user_input: str) -> str:
        """URLs are kept as the source; anything else is recorded as raw text."""
        text = user_input.strip()
        return text if text.startswith('http') else RAW_TEXT_SOURCE

    @property
    def is_raw_text(self) -> bool:
        return self.url == RAW_TEXT_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArticleData":
        return cls(
            id=data['id'],
            url=data['url'],
            original_title=data['original_title'],
            translated_title=data['translated_title'],
            summary=data['summary'],
            content=data['content'],
            language=data['language'],
            original_language=data['original_language'],
            reading_time=float(data['reading_time']),
            timestamp=int(data['timestamp']),
        )

    def to_history_item(self) -> "HistoryItem":
        return HistoryItem(
            id=self.id,
            title=self.translated_title,
            summary=self.summary,
            timestamp=self.timestamp,
        )


@dataclass(frozen=True)
class HistoryItem:
    id: str
    title: str
    summary: str
    timestamp: int


@dataclass(frozen=True)
class AudioState:
    """Snapshot of the playback controls."""

    is_playing: bool = False
    is_loading: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    has_audio: bool = False
    audio_path: Optional[str] = None


__all__ = [
    'LANGUAGES',
    'TONES',
    'MODES',
    'LANGUAGE_CODES',
    'TONE_IDS',
    'RAW_TEXT_SOURCE',
    'language_name',
    'ProcessingSettings',
    'ReaderSettings',
    'ArticleData',
    'HistoryItem',
    'AudioState',
]
