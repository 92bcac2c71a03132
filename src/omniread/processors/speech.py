"""Text-to-speech through the Gemini REST API."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from ..core.audio import DEFAULT_SAMPLE_RATE, AudioClip, decode_base64
from ..core.errors import MissingApiKeyError, SpeechError
from ..core.http_client import RetryableHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_TTS_MODEL = 'gemini-2.5-flash-preview-tts'
DEFAULT_VOICE = 'Puck'
DEFAULT_ENDPOINT = 'https://generativelanguage.googleapis.com/v1beta'
READ_PREFIX = 'Read this text clearly and naturally: '


def build_speech_payload(text: str, voice_name: str = DEFAULT_VOICE) -> Dict[str, Any]:
    """Request body asking for the whole *text* to be read with *voice_name*."""
    return {
        'contents': [{'parts': [{'text': f"{READ_PREFIX}{text}"}]}],
        'generationConfig': {
            'responseModalities': ['AUDIO'],
            'speechConfig': {
                'voiceConfig': {
                    'prebuiltVoiceConfig': {'voiceName': voice_name},
                },
            },
        },
    }


def _sample_rate_from_mime(mime_type: Optional[str], default: int) -> int:
    """Read the rate from a mime type such as ``audio/L16;codec=pcm;rate=24000``."""
    match = re.search(r'rate=(\d+)', mime_type or '')
    return int(match.group(1)) if match else default


def extract_audio(response: Dict[str, Any], default_rate: int = DEFAULT_SAMPLE_RATE) -> AudioClip:
    """Pull the first inline audio part out of a generateContent response."""
    try:
        inline = response['candidates'][0]['content']['parts'][0]['inlineData']
        data = inline['data']
    except (KeyError, IndexError, TypeError):
        data = None
        inline = {}
    if not data:
        raise SpeechError("No audio data returned")
    rate = _sample_rate_from_mime(inline.get('mimeType'), default_rate)
    return AudioClip(decode_base64(data), sample_rate=rate, channels=1)


def generate_article_audio(
    text: str,
    api_key: Optional[str],
    voice_name: str = DEFAULT_VOICE,
    *,
    config: Optional[Dict[str, Any]] = None,
    http_client: Optional[RetryableHTTPClient] = None,
) -> AudioClip:
    """Synthesize *text* in full and return the decoded clip."""
    if not api_key:
        raise MissingApiKeyError("Missing API key.")
    if not (text or '').strip():
        raise SpeechError("Nothing to read: the article content is empty")

    tts_cfg = (config or {}).get('tts') or {}
    model = tts_cfg.get('model') or DEFAULT_TTS_MODEL
    endpoint = (tts_cfg.get('endpoint') or DEFAULT_ENDPOINT).rstrip('/')
    default_rate = int(tts_cfg.get('sample_rate', DEFAULT_SAMPLE_RATE))

    owns_client = http_client is None
    if http_client is None:
        http_client = RetryableHTTPClient(
            rps=10.0,
            max_retries=int(tts_cfg.get('max_retries', 1)),
            timeout=float(tts_cfg.get('timeout', 300)),
        )
    url = f"{endpoint}/models/{model}:generateContent"
    logger.info("Requesting speech for %d characters with voice '%s'", len(text), voice_name)
    try:
        response = http_client.post_json_with_retry(
            url,
            build_speech_payload(text, voice_name),
            headers={'x-goog-api-key': api_key, 'Content-Type': 'application/json'},
        )
    finally:
        if owns_client:
            http_client.close()

    clip = extract_audio(response, default_rate)
    logger.info("Received %.1fs of audio at %d Hz", clip.duration, clip.sample_rate)
    return clip


__all__ = [
    'DEFAULT_VOICE',
    'build_speech_payload',
    'extract_audio',
    'generate_article_audio',
]
