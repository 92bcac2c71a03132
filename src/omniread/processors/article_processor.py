"""
Article processing: translate or summarize a URL / raw text with Gemini.

Behavior
- Builds a system instruction from the processing settings (mode, tone, target language).
- Optionally downloads the page behind a URL and sends its main text as source material.
- Calls Gemini through its OpenAI-compatible Chat Completions endpoint, requesting a
  JSON object that matches ARTICLE_SCHEMA; falls back to plain JSON mode when the
  schema format is rejected, and to llm.model_fallback when a model is unavailable.
- Returns an ArticleData with a fresh id, the source URL (or "Raw Text") and a timestamp.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Union

import openai
import requests
from openai import OpenAI

from ..core.errors import MissingApiKeyError, ProcessingError
from ..core.http_client import RetryableHTTPClient
from ..core.models import ArticleData, ProcessingSettings
from ..core.text_utils import extract_page_text, looks_like_url

logger = logging.getLogger(__name__)

DEFAULT_MODEL = 'gemini-2.5-flash'
DEFAULT_BASE_URL = 'https://generativelanguage.googleapis.com/v1beta/openai/'

REQUIRED_FIELDS = ('originalTitle', 'translatedTitle', 'summary', 'content', 'originalLanguage', 'readingTime')

ARTICLE_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'properties': {
        'originalTitle': {'type': 'string'},
        'translatedTitle': {'type': 'string'},
        'summary': {'type': 'string', 'description': 'A very short 1-2 sentence teaser/TL;DR'},
        'content': {
            'type': 'string',
            'description': 'The main output (Full translation OR Detailed structured summary)',
        },
        'originalLanguage': {'type': 'string'},
        'readingTime': {'type': 'number', 'description': 'Estimated reading time in minutes'},
    },
    'required': list(REQUIRED_FIELDS),
}

_SUMMARY_TASK = """
TASK: Create a HIGHLY DETAILED and STRUCTURED summary in {language}.

REQUIREMENTS for 'content' field:
1. Do not just write one paragraph. Structure the response with Markdown headers (##).
2. Recommended structure:
   - ## Introduction / Context
   - ## Key Points (use bullet points)
   - ## Analysis / Details
   - ## Conclusion
3. Capture all significant nuances and data points.
4. The goal is that the user understands the whole topic without reading the original.
"""

_TRANSLATION_TASK = """
TASK: Translate the COMPLETE text content into {language}.

REQUIREMENTS for 'content' field:
1. DO NOT SUMMARIZE. This is a strict translation task.
2. Translate every single paragraph, header, and section from the original source.
3. Keep the length roughly equivalent to the original.
4. Preserve the original formatting using Markdown (headers, bold, italics).
5. If the input is a URL, extract the full body text and translate it entirely.
"""

_SYSTEM_TEMPLATE = """
You are OmniRead, an advanced article processor.

INPUT: Can be a URL or raw text.
TARGET LANGUAGE: {language}
TONE: {tone}
{task}
OUTPUT FORMAT:
Return a strictly structured JSON object with the keys {keys}.
The 'content' field must be clean Markdown.
The 'summary' field must be a very short TL;DR (1-2 sentences) regardless of the mode.
"""


def build_system_instruction(settings: ProcessingSettings) -> str:
    """Return the system prompt for *settings*."""
    template = _SUMMARY_TASK if settings.is_summary else _TRANSLATION_TASK
    task = template.format(language=settings.target_language)
    return _SYSTEM_TEMPLATE.format(
        language=settings.target_language,
        tone=settings.tone,
        task=task,
        keys=', '.join(REQUIRED_FIELDS),
    ).strip()


def build_user_message(user_input: str, source_text: Optional[str] = None) -> str:
    message = f"Process this input: {user_input}"
    if source_text:
        message += f"\n\nPage text retrieved from the URL:\n{source_text}"
    return message


def _page_markup(response: requests.Response) -> Union[str, bytes]:
    """Decoded text when the server names a charset, else raw bytes for BeautifulSoup to sniff."""
    content_type = (response.headers.get('Content-Type') or '').lower()
    if 'charset=' in content_type:
        return response.text
    return response.content


def fetch_source_text(url: str, fetch_cfg: Dict[str, Any], client: Optional[RetryableHTTPClient] = None) -> Optional[str]:
    """Download *url* and return its main text, or None when that fails."""
    owns_client = client is None
    if client is None:
        client = RetryableHTTPClient(
            rps=float(fetch_cfg.get('rps', 1.0)),
            max_retries=int(fetch_cfg.get('max_retries', 3)),
            timeout=float(fetch_cfg.get('timeout', 20)),
        )
    try:
        response = client.get_with_retry(url, headers={'Accept': 'text/html,application/xhtml+xml,*/*;q=0.8'})
        page = extract_page_text(_page_markup(response), max_chars=fetch_cfg.get('max_chars'))
        if not page.text:
            logger.warning("No readable text found at %s", url)
            return None
        logger.info("Fetched %d characters from %s", len(page.text), url)
        if page.title:
            return f"Title: {page.title}\n\n{page.text}"
        return page.text
    except requests.RequestException as exc:
        logger.warning("Could not fetch %s, sending the bare URL instead: %s", url, exc)
        return None
    finally:
        if owns_client:
            client.close()


def _strip_code_fence(text: str) -> str:
    match = re.match(r'^\s*```(?:json)?\s*(.*?)\s*```\s*$', text, flags=re.DOTALL)
    return match.group(1) if match else text


def parse_article_payload(text: Optional[str]) -> Dict[str, Any]:
    """Decode and validate the model's JSON answer."""
    if not text or not text.strip():
        raise ProcessingError("No content generated")
    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise ProcessingError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProcessingError("Model returned JSON that is not an object")

    missing = [key for key in REQUIRED_FIELDS if data.get(key) in (None, '')]
    if missing:
        raise ProcessingError(f"Model response is missing fields: {', '.join(missing)}")
    try:
        data['readingTime'] = float(data['readingTime'])
    except (TypeError, ValueError) as exc:
        raise ProcessingError(f"Invalid readingTime value: {data['readingTime']!r}") from exc
    return data


def _response_formats() -> List[Dict[str, Any]]:
    return [
        {'type': 'json_schema', 'json_schema': {'name': 'article', 'schema': ARTICLE_SCHEMA}},
        {'type': 'json_object'},
    ]


def _call_model(client: Any, models: List[str], system: str, user_text: str, max_retries: int = 1) -> Optional[str]:
    """Ask each model in turn for the article JSON.

    - Try the JSON schema response format first, then plain JSON mode on 400.
    - Retry transient errors (connection, 429, 5xx) with exponential backoff.
    - Move to the next model on 404 or when both formats are rejected.
    """
    last_error: Optional[Exception] = None
    for model in models:
        for response_format in _response_formats():
            backoff = 1.0
            rejected = False
            for attempt in range(max(1, max_retries)):
                try:
                    resp = client.chat.completions.create(
                        model=model,
                        messages=[
                            {'role': 'system', 'content': system},
                            {'role': 'user', 'content': user_text},
                        ],
                        response_format=response_format,
                    )
                    content = (resp.choices[0].message.content or '').strip() if resp.choices else ''
                    return content or None
                except openai.NotFoundError as exc:
                    logger.info("Model '%s' not available; trying fallback. Reason: %s", model, str(exc)[:120])
                    last_error = exc
                    rejected = True
                    break
                except openai.BadRequestError as exc:
                    logger.debug("Model '%s' rejected %s response format: %s", model, response_format['type'], exc)
                    last_error = exc
                    rejected = True
                    break
                except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as exc:
                    last_error = exc
                    if attempt < max_retries - 1:
                        time.sleep(backoff)
                        backoff = min(8.0, backoff * 2)
                        continue
                    raise
            if rejected and isinstance(last_error, openai.NotFoundError):
                break
    if last_error is not None:
        raise last_error
    return None


def process_article(
    user_input: str,
    settings: ProcessingSettings,
    api_key: Optional[str],
    *,
    config: Optional[Dict[str, Any]] = None,
    client_factory: Callable[..., Any] = OpenAI,
    http_client: Optional[RetryableHTTPClient] = None,
) -> ArticleData:
    """Translate or summarize *user_input* (a URL or raw text) into an ArticleData."""
    if not api_key:
        raise MissingApiKeyError("Missing API key. Please configure your Gemini key.")
    user_input = (user_input or '').strip()
    if not user_input:
        raise ProcessingError("Nothing to process: provide a URL or some text")

    config = config or {}
    llm_cfg = config.get('llm') or {}
    fetch_cfg = config.get('fetch') or {}

    models = [llm_cfg.get('model') or DEFAULT_MODEL]
    fallback = llm_cfg.get('model_fallback')
    if fallback and fallback not in models:
        models.append(fallback)

    source_text = None
    if fetch_cfg.get('enabled', False) and looks_like_url(user_input):
        source_text = fetch_source_text(user_input, fetch_cfg, client=http_client)

    client = client_factory(
        api_key=api_key,
        base_url=llm_cfg.get('base_url') or DEFAULT_BASE_URL,
        timeout=float(llm_cfg.get('timeout', 120)),
        max_retries=0,
    )
    logger.info("Processing %s in '%s' mode (target=%s, tone=%s)",
                'URL' if looks_like_url(user_input) else 'raw text',
                settings.mode, settings.target_language, settings.tone)

    text = _call_model(
        client,
        models,
        build_system_instruction(settings),
        build_user_message(user_input, source_text),
        max_retries=int(llm_cfg.get('max_retries', 1)),
    )
    data = parse_article_payload(text)

    return ArticleData(
        url=ArticleData.source_for(user_input),
        original_title=str(data['originalTitle']),
        translated_title=str(data['translatedTitle']),
        summary=str(data['summary']),
        content=str(data['content']),
        language=settings.target_language,
        original_language=str(data['originalLanguage']),
        reading_time=data['readingTime'],
    )


__all__ = [
    'ARTICLE_SCHEMA',
    'build_system_instruction',
    'build_user_message',
    'fetch_source_text',
    'parse_article_payload',
    'process_article',
]
