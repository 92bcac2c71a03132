from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from .commands import history as history_cmd
from .commands import process as process_cmd
from .commands import speak as speak_cmd
from .commands.process import ProcessResult
from .core.config import ConfigManager, DEFAULT_CONFIG_PATH
from .core.credentials import resolve_api_key, save_api_key
from .core.errors import MissingApiKeyError
from .core.models import ArticleData, HistoryItem

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

_DEFAULT_CONFIG = str(DEFAULT_CONFIG_PATH)

__all__ = [
    'process',
    'speak',
    'history',
    'show',
    'clear_history',
    'set_api_key',
    'status',
    'ArticleData',
    'HistoryItem',
    'ProcessResult',
]


def process(
    user_input: str,
    *,
    target_language: Optional[str] = None,
    tone: Optional[str] = None,
    mode: Optional[str] = None,
    audio: Optional[bool] = None,
    voice: Optional[str] = None,
    config_path: Optional[str] = None,
) -> ProcessResult:
    """Translate or summarize a URL or raw text, then narrate it.

    Args:
        user_input: An http(s) URL or the text itself.
        target_language: Language code (fr, en, es, de, it, ja); defaults to config.
        tone: neutral, professional, simple or witty; defaults to config.
        mode: 'full' translation or structured 'summary'; defaults to config.
        audio: Generate speech after the text step; defaults to config.
        voice: Prebuilt voice name for speech (e.g. Puck).
        config_path: Path to main YAML config; defaults to the data dir config.
    """
    cfg_path = config_path or _DEFAULT_CONFIG
    return process_cmd.run(
        cfg_path,
        user_input,
        target_language=target_language,
        tone=tone,
        mode=mode,
        audio=audio,
        voice=voice,
    )


def speak(
    article_id: str,
    *,
    voice: Optional[str] = None,
    start: float = 0.0,
    regenerate: bool = False,
    output: Optional[str] = None,
    config_path: Optional[str] = None,
) -> ProcessResult:
    """Write the WAV narration for a stored article (reusing existing audio)."""
    cfg_path = config_path or _DEFAULT_CONFIG
    return speak_cmd.run(cfg_path, article_id, voice=voice, start=start, regenerate=regenerate, output=output)


def history(config_path: Optional[str] = None) -> List[HistoryItem]:
    """Return the reading history, most recent first."""
    return history_cmd.list_entries(config_path or _DEFAULT_CONFIG)


def show(article_id: str, *, write_html: bool = False, config_path: Optional[str] = None) -> ArticleData:
    """Return a stored article by id (or unique id prefix)."""
    article, _ = history_cmd.show(config_path or _DEFAULT_CONFIG, article_id, write_html=write_html)
    return article


def clear_history(config_path: Optional[str] = None) -> int:
    """Delete history, stored articles and their generated files."""
    return history_cmd.clear(config_path or _DEFAULT_CONFIG)


def set_api_key(key: str, config_path: Optional[str] = None) -> str:
    """Store the Gemini API key in the config's secrets directory."""
    cm = ConfigManager(config_path or _DEFAULT_CONFIG)
    return str(save_api_key(key, cm.base_dir))


def status(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Return configuration and environment status for programmatic use."""
    cfg_path = config_path or _DEFAULT_CONFIG
    info: Dict[str, Any] = {'config_path': cfg_path}
    try:
        cm = ConfigManager(cfg_path)
        valid = cm.validate_config()
        cfg = cm.load_config()
        try:
            resolve_api_key(cfg, cm.base_dir)
            has_key = True
        except MissingApiKeyError:
            has_key = False
        info.update({
            'valid': bool(valid),
            'has_api_key': has_key,
            'db_path': (cfg.get('database') or {}).get('path'),
            'model': (cfg.get('llm') or {}).get('model'),
            'tts_model': (cfg.get('tts') or {}).get('model'),
            'data_dir': os.path.dirname(cm.base_dir),
        })
        return info
    except Exception as e:
        info.update({'valid': False, 'error': str(e)})
        return info
