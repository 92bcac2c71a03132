"""
HTML reader page for a processed article.

The page shows the translated title, a TL;DR, the Markdown content and, once
speech has been generated, an inline audio player with a download link.
"""

import html
import logging
import os
import re
import shutil
from pathlib import Path
from string import Template
from typing import List, Optional

from ..core.audio import format_time, wav_filename
from ..core.models import ArticleData, ReaderSettings, language_name
from ..core.paths import get_system_path, resolve_data_path

logger = logging.getLogger(__name__)

HEADER_TEMPLATE = Template(
    '<div class="meta">'
    '<span>$source</span>'
    '<span>$original_language &rarr; $language</span>'
    '<span>$reading_time min</span>'
    '</div>'
)

PLAYER_TEMPLATE = Template(
    '<div class="player">\n'
    '  <audio controls preload="metadata" src="$src"></audio>\n'
    '  <span class="duration">$duration</span>\n'
    '  <a href="$src" download="$download_name">Download</a>\n'
    '</div>'
)

ARTICLE_TEMPLATE = Template(
    '<article>\n'
    '<h1>$title</h1>\n'
    '<p class="original-title">$original_title</p>\n'
    '$player\n'
    '<p class="tldr">$summary</p>\n'
    '<div class="content size-$font_size" style="line-height: $line_height">\n'
    '$body\n'
    '</div>\n'
    '</article>'
)

_HEADING_RE = re.compile(r'^(#{1,6})\s+(.*?)\s*#*\s*$')
_BULLET_RE = re.compile(r'^\s*[-*+]\s+(.*)$')
_NUMBERED_RE = re.compile(r'^\s*\d+[.)]\s+(.*)$')
# Runs on already-escaped text; quotes and angle brackets end a URL.
_LINK_RE = re.compile(r'\[([^\]]+)\]\((https?://[^\s)"<>]+)\)')
_PLACEHOLDER_RE = re.compile(r'%\{(lang|title|body_class|header|content)\}')


def _render_link(match: re.Match) -> str:
    href = html.escape(html.unescape(match.group(2)), quote=True)
    return f'<a href="{href}" target="_blank" rel="noopener noreferrer">{match.group(1)}</a>'


def _inline(text: str) -> str:
    """Escape *text* and apply bold, italic, code and link markup."""
    text = html.escape(text, quote=False)
    text = re.sub(r'`([^`]+)`', r'<code>\1</code>', text)
    text = re.sub(r'\*\*(.+?)\*\*|__(.+?)__', lambda m: f"<strong>{m.group(1) or m.group(2)}</strong>", text)
    text = re.sub(r'(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])', r'<em>\1</em>', text)
    text = re.sub(r'(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)', r'<em>\1</em>', text)
    text = _LINK_RE.sub(_render_link, text)
    return text


def markdown_to_html(markdown: str) -> str:
    """Render the Markdown subset the model produces (headers, lists, emphasis, paragraphs)."""
    parts: List[str] = []
    paragraph: List[str] = []
    list_tag: Optional[str] = None

    def flush_paragraph():
        if paragraph:
            parts.append(f"<p>{'<br>'.join(_inline(line) for line in paragraph)}</p>")
            paragraph.clear()

    def close_list():
        nonlocal list_tag
        if list_tag:
            parts.append(f"</{list_tag}>")
            list_tag = None

    for raw_line in (markdown or '').splitlines():
        line = raw_line.rstrip()
        if not line.strip():
            flush_paragraph()
            close_list()
            continue

        heading = _HEADING_RE.match(line)
        bullet = _BULLET_RE.match(line)
        numbered = _NUMBERED_RE.match(line)

        if heading:
            flush_paragraph()
            close_list()
            level = len(heading.group(1))
            parts.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        elif bullet or numbered:
            flush_paragraph()
            tag = 'ul' if bullet else 'ol'
            if list_tag != tag:
                close_list()
                parts.append(f"<{tag}>")
                list_tag = tag
            item = (bullet or numbered).group(1)
            parts.append(f"<li>{_inline(item)}</li>")
        elif line.strip() in ('---', '***'):
            flush_paragraph()
            close_list()
            parts.append('<hr>')
        else:
            close_list()
            paragraph.append(line.strip())

    flush_paragraph()
    close_list()
    return '\n'.join(parts)


class HTMLGenerator:
    """Renders articles into standalone reader pages."""

    def __init__(self, template_path: str = "article_template.html"):
        """Prepare the generator, resolving the template path into the data directory."""
        self.template_path = self._resolve_template(template_path)

    def render(
        self,
        article: ArticleData,
        reader: Optional[ReaderSettings] = None,
        audio_src: Optional[str] = None,
        audio_duration: Optional[float] = None,
    ) -> str:
        """Return the page HTML for *article*."""
        reader = reader or ReaderSettings()
        template = self._load_template()

        source = 'Raw text' if article.is_raw_text else (
            f'<a href="{html.escape(article.url, quote=True)}" target="_blank" '
            f'rel="noopener noreferrer">{html.escape(article.url)}</a>'
        )
        header = HEADER_TEMPLATE.substitute(
            source=source,
            original_language=html.escape(article.original_language),
            language=html.escape(language_name(article.language)),
            reading_time=f"{article.reading_time:g}",
        )

        player = ''
        if audio_src:
            player = PLAYER_TEMPLATE.substitute(
                src=html.escape(audio_src, quote=True),
                duration=format_time(audio_duration) if audio_duration else '',
                download_name=html.escape(wav_filename(article.translated_title), quote=True),
            )

        content = ARTICLE_TEMPLATE.substitute(
            title=html.escape(article.translated_title),
            original_title=html.escape(article.original_title),
            player=player,
            summary=_inline(article.summary),
            font_size=reader.font_size,
            line_height=reader.line_height,
            body=markdown_to_html(article.content),
        )

        body_classes = [cls for cls, enabled in (('dark', reader.dark), ('high-contrast', reader.high_contrast)) if enabled]
        values = {
            'lang': html.escape(article.language, quote=True),
            'title': html.escape(article.translated_title),
            'body_class': ' '.join(body_classes),
            'header': header,
            'content': content,
        }
        # Single pass so placeholder text inside values is left alone
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)

    def write(
        self,
        article: ArticleData,
        output_path: str,
        reader: Optional[ReaderSettings] = None,
        audio_path: Optional[str] = None,
        audio_duration: Optional[float] = None,
    ) -> Path:
        """Write the page to *output_path*; the audio file is linked relative to it."""
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        audio_src = None
        if audio_path:
            audio_src = _relative_src(Path(audio_path), output.parent)
        output.write_text(self.render(article, reader, audio_src, audio_duration), encoding='utf-8')
        logger.info(f"Wrote article page: {output}")
        return output

    def _load_template(self) -> str:
        if not self.template_path.exists():
            self._ensure_template_available(self.template_path)
        return self.template_path.read_text(encoding='utf-8')

    def _resolve_template(self, template_path: str) -> Path:
        candidate = Path(template_path)
        if candidate.is_absolute():
            return candidate
        return resolve_data_path('templates', *candidate.parts)

    def _ensure_template_available(self, template_path: Path) -> None:
        """Copy the bundled template into the data directory when it is missing."""
        bundled = get_system_path('templates', template_path.name)
        if not bundled.exists():
            raise FileNotFoundError(f"HTML template not found: {template_path}")
        template_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(bundled, template_path)
        logger.info("Restored template %s from package data", template_path)


def _relative_src(audio_path: Path, page_dir: Path) -> str:
    return Path(os.path.relpath(audio_path.resolve(), page_dir.resolve())).as_posix()


__all__ = ['HTMLGenerator', 'markdown_to_html']
