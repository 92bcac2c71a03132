"""
Speak command: produce (or reuse) the WAV narration of a stored article.

An existing WAV is reused unless ``regenerate`` is set. ``start`` seeks into
the narration (clamped to its length) and exports the remainder to a
separate file; the stored full narration is left untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.audio import read_wav, write_wav
from ..core.command_context import CommandContext
from ..processors.html_generator import HTMLGenerator
from .process import ProcessResult, clip_from_position, synthesize_for_article

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str],
    article_id: str,
    *,
    voice: Optional[str] = None,
    start: float = 0.0,
    regenerate: bool = False,
    output: Optional[str] = None,
) -> ProcessResult:
    """Write narration for *article_id* and refresh its HTML page."""
    with CommandContext(config_path) as ctx:
        article = ctx.db.get_article(article_id)
        if article is None:
            raise ValueError(f"No stored article with id '{article_id}'")

        existing = ctx.db.get_audio_path(article.id)
        if existing and Path(existing).exists() and not regenerate:
            logger.info("Reusing narration at %s", existing)
            audio_path, clip = Path(existing), read_wav(existing)
        else:
            audio_path, clip = synthesize_for_article(ctx, article, voice=voice)

        HTMLGenerator().write(
            article,
            str(ctx.html_path(article.id)),
            ctx.reader_settings(),
            audio_path=str(audio_path),
            audio_duration=clip.duration,
        )

        exported_path, exported = audio_path, clip
        if start:
            exported = clip_from_position(clip, start)
            target = output or ctx.audio_path(f"{article.id}-from-{int(start)}s")
            exported_path = write_wav(target, exported)
        elif output:
            exported_path = write_wav(output, clip)

        return ProcessResult(
            article=article,
            html_path=ctx.html_path(article.id),
            audio_path=Path(exported_path),
            audio_duration=exported.duration,
        )
