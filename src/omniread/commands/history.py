"""History commands: list, reopen and clear processed articles."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..core.audio import read_wav
from ..core.command_context import CommandContext
from ..core.models import ArticleData, HistoryItem
from ..processors.html_generator import HTMLGenerator

logger = logging.getLogger(__name__)


def list_entries(config_path: Optional[str]) -> List[HistoryItem]:
    """Return the history, most recent first."""
    with CommandContext(config_path) as ctx:
        return ctx.db.get_history()


def show(config_path: Optional[str], article_id: str, *, write_html: bool = False) -> Tuple[ArticleData, Optional[Path]]:
    """Load a stored article; optionally re-render its HTML page.

    Returns the article and the page path (None unless *write_html*).
    """
    with CommandContext(config_path) as ctx:
        article = ctx.db.get_article(article_id)
        if article is None:
            raise ValueError(f"No stored article with id '{article_id}'")
        if not write_html:
            return article, None

        audio_path = ctx.db.get_audio_path(article.id)
        duration = None
        if audio_path and Path(audio_path).exists():
            duration = read_wav(audio_path).duration
        else:
            audio_path = None
        html_path = HTMLGenerator().write(
            article,
            str(ctx.html_path(article.id)),
            ctx.reader_settings(),
            audio_path=audio_path,
            audio_duration=duration,
        )
        return article, html_path


def clear(config_path: Optional[str]) -> int:
    """Remove all history, stored articles and their generated files.

    Returns the number of files deleted.
    """
    with CommandContext(config_path) as ctx:
        ids = [article.id for article in ctx.db.iter_articles()]
        audio_paths = ctx.db.clear_history()

        files = {Path(p) for p in audio_paths}
        for article_id in ids:
            files.add(ctx.html_path(article_id))
            # Full narration plus any exports written by speak --start
            files.update(ctx.audio_path(article_id).parent.glob(f"{article_id}*.wav"))
        removed = 0
        for path in sorted(files):
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Failed to remove %s: %s", path, exc)
        logger.info("Cleared %d articles and %d files", len(ids), removed)
        return removed
