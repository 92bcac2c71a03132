"""
Process command: translate or summarize one URL / text, then synthesize speech.

The text result is stored, added to the history and rendered before speech
synthesis starts; a failure in the speech step is logged and leaves the text
result in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Tuple

import requests

from ..core.audio import AudioClip, write_wav
from ..core.command_context import CommandContext
from ..core.errors import SpeechError
from ..core.models import ArticleData, AudioState
from ..core.playback import PlaybackController
from ..processors.article_processor import process_article
from ..processors.html_generator import HTMLGenerator
from ..processors.speech import generate_article_audio

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    article: ArticleData
    html_path: Path
    audio_path: Optional[Path] = None
    audio_duration: Optional[float] = None
    audio_error: Optional[str] = None
    audio_state: AudioState = field(default_factory=AudioState)


def synthesize_for_article(
    ctx: CommandContext,
    article: ArticleData,
    *,
    voice: Optional[str] = None,
) -> Tuple[Path, AudioClip]:
    """Generate speech for *article*, write the WAV file and record its path."""
    clip = generate_article_audio(article.content, ctx.api_key, ctx.voice(voice), config=ctx.config)
    audio_path = write_wav(ctx.audio_path(article.id), clip)
    ctx.db.set_audio_path(article.id, str(audio_path))
    logger.info("Wrote %.1fs of audio to %s", clip.duration, audio_path)
    return audio_path, clip


def clip_from_position(clip: AudioClip, start: float) -> AudioClip:
    """Seek into *clip* the way the player does and return the remainder."""
    player = PlaybackController()
    player.load(clip)
    player.seek(start)
    return clip.slice_from(player.tick())


def run(
    config_path: Optional[str],
    user_input: str,
    *,
    target_language: Optional[str] = None,
    tone: Optional[str] = None,
    mode: Optional[str] = None,
    audio: Optional[bool] = None,
    voice: Optional[str] = None,
    on_text: Optional[Callable[[ProcessResult], None]] = None,
) -> ProcessResult:
    """Process *user_input* and return where the results were written."""
    logger.info("Starting process command")
    with CommandContext(config_path) as ctx:
        settings = ctx.processing_settings(target_language, tone, mode)
        article = process_article(user_input, settings, ctx.api_key, config=ctx.config)

        ctx.db.save_article(article)
        history = ctx.db.add_history(article.to_history_item())
        logger.info("Saved article %s (%d history entries)", article.id[:8], len(history))

        generator = HTMLGenerator()
        reader = ctx.reader_settings()
        html_path = generator.write(article, str(ctx.html_path(article.id)), reader)
        result = ProcessResult(article=article, html_path=html_path)

        want_audio = ctx.get_default('audio', True) if audio is None else audio
        player = PlaybackController()
        if want_audio:
            player.begin_loading()
        result.audio_state = player.state
        if on_text is not None:
            on_text(result)
        if not want_audio:
            return result

        try:
            audio_path, clip = synthesize_for_article(ctx, article, voice=voice)
        except (SpeechError, requests.RequestException, ValueError, OSError) as exc:
            logger.warning("Audio generation failed for %s: %s", article.id[:8], exc)
            player.loading_failed()
            result.audio_state = player.state
            result.audio_error = str(exc) or exc.__class__.__name__
            return result

        player.load(clip, str(audio_path))
        result.audio_state = player.state
        result.audio_path = audio_path
        result.audio_duration = clip.duration
        generator.write(article, str(html_path), reader, audio_path=str(audio_path), audio_duration=clip.duration)
        return result
