"""
Command context for shared initialization across CLI commands.

Bundles config loading, validation, the history database, API key lookup and
output locations so each command only deals with its own work.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .config import ConfigManager
from .credentials import resolve_api_key
from .database import DatabaseManager
from .models import ProcessingSettings, ReaderSettings
from .paths import resolve_data_dir

logger = logging.getLogger(__name__)


class CommandContext:
    """Encapsulates shared initialization logic for CLI commands.

    Example:
        ```python
        with CommandContext(config_path) as ctx:
            article = ctx.db.get_article(article_id)
            html_path = ctx.html_path(article.id)
        ```
    """

    def __init__(self, config_path: Optional[str] = None):
        """Load and validate config, then open the history database.

        Raises:
            ValueError: If configuration is invalid
        """
        self.config_manager = ConfigManager(config_path)
        if not self.config_manager.validate_config():
            raise ValueError("Invalid configuration. Run 'omniread status' for details.")

        self.config = self.config_manager.load_config()
        self.db = DatabaseManager(self.config)
        self._api_key: Optional[str] = None

        logger.debug(f"CommandContext initialized with config from {self.config_manager.config_path}")

    @property
    def api_key(self) -> str:
        """Gemini API key; raises MissingApiKeyError when none is configured."""
        if self._api_key is None:
            self._api_key = resolve_api_key(self.config, self.config_manager.base_dir)
        return self._api_key

    def get_default(self, key: str, default: Any = None) -> Any:
        defaults = self.config.get('defaults') or {}
        return defaults.get(key, default)

    def processing_settings(
        self,
        target_language: Optional[str] = None,
        tone: Optional[str] = None,
        mode: Optional[str] = None,
    ) -> ProcessingSettings:
        """Merge explicit options over the configured defaults."""
        return ProcessingSettings(
            target_language=target_language or self.get_default('target_language', 'fr'),
            tone=tone or self.get_default('tone', 'neutral'),
            mode=mode or self.get_default('mode', 'full'),
        )

    def reader_settings(self) -> ReaderSettings:
        return ReaderSettings.from_config(self.config)

    def voice(self, override: Optional[str] = None) -> str:
        return override or (self.config.get('tts') or {}).get('voice') or 'Puck'

    def _output_dir(self, key: str, default: str) -> Path:
        output = self.config.get('output') or {}
        configured = Path(str(output.get(key) or default)).expanduser()
        if configured.is_absolute():
            configured.mkdir(parents=True, exist_ok=True)
            return configured
        return resolve_data_dir(*configured.parts, ensure_exists=True)

    def html_path(self, article_id: str) -> Path:
        return self._output_dir('html_dir', 'html') / f"{article_id}.html"

    def audio_path(self, article_id: str) -> Path:
        return self._output_dir('audio_dir', 'audio') / f"{article_id}.wav"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.db.close_all_connections()
