"""Text helpers for turning fetched web pages into model input."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from bs4 import BeautifulSoup

_NOISE_TAGS = ['script', 'style', 'nav', 'footer', 'header', 'aside', 'noscript', 'form', 'iframe']
_BLOCK_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p', 'li', 'blockquote', 'pre']


@dataclass(frozen=True)
class PageText:
    title: Optional[str]
    text: str


def looks_like_url(value: str) -> bool:
    return bool(re.match(r'^https?://\S+$', (value or '').strip(), flags=re.IGNORECASE))


def normalize_whitespace(text: Optional[str]) -> str:
    """Collapse runs of spaces and limit blank lines to one.

    Examples:
        >>> normalize_whitespace("a  b\\n\\n\\n c")
        'a b\\n\\nc'
    """
    if not text:
        return ''
    text = text.replace('\xa0', ' ').replace('\u200b', '')
    text = re.sub(r'[ \t\f\v]+', ' ', text)
    text = re.sub(r' *\n *', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def extract_page_text(html: Union[str, bytes], max_chars: Optional[int] = None) -> PageText:
    """Return the title and main readable text of an HTML document.

    Prefers <article>, then <main>, then the body. Headings, paragraphs and
    list items become separate paragraphs so the model can keep structure.
    """
    soup = BeautifulSoup(html or '', 'html.parser')

    title = None
    og_title = soup.find('meta', property='og:title')
    if og_title and og_title.get('content'):
        title = og_title['content'].strip()
    elif soup.title and soup.title.string:
        title = soup.title.string.strip()
    else:
        h1 = soup.find('h1')
        if h1:
            title = h1.get_text(strip=True)

    for element in soup.find_all(_NOISE_TAGS):
        element.decompose()

    root = soup.find('article') or soup.find('main') or soup.body or soup
    blocks = [
        el.get_text(' ', strip=True)
        for el in root.find_all(_BLOCK_TAGS)
        if el.find_parent(_BLOCK_TAGS) is None
    ]
    blocks = [b for b in blocks if b]
    if blocks:
        text = '\n\n'.join(blocks)
    else:
        text = root.get_text('\n', strip=True)
    text = normalize_whitespace(text)

    if max_chars and len(text) > max_chars:
        text = text[:max_chars].rsplit(' ', 1)[0]

    return PageText(title=title or None, text=text)


__all__ = [
    'PageText',
    'looks_like_url',
    'normalize_whitespace',
    'extract_page_text',
]
