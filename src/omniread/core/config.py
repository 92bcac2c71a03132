"""Configuration management for the YAML config file."""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import LANGUAGE_CODES, MODES, TONE_IDS
from .paths import get_data_dir, get_system_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = get_data_dir() / "config"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
_TEMPLATE_CONFIG = get_system_path("config", "config.yaml")

_DEFAULT_SECRET = "# Place your Gemini API key here (raw key or GEMINI_API_KEY=...).\n"

_DEFAULT_CONFIG_TEMPLATE = """# Auto-generated default configuration for omniread
database:
  path: "omniread.db"

llm:
  model: "gemini-2.5-flash"
  model_fallback: "gemini-2.0-flash"
  base_url: "https://generativelanguage.googleapis.com/v1beta/openai/"
  api_key_env: "GEMINI_API_KEY"
  max_retries: 1
  timeout: 120

tts:
  model: "gemini-2.5-flash-preview-tts"
  voice: "Puck"
  sample_rate: 24000
  endpoint: "https://generativelanguage.googleapis.com/v1beta"
  timeout: 300

defaults:
  target_language: "fr"
  tone: "neutral"
  mode: "full"
  audio: true

history:
  limit: 20

fetch:
  enabled: true
  rps: 1.0
  max_retries: 3
  timeout: 20
  max_chars: 60000

reader:
  font_size: 2
  line_height: 1.75
  high_contrast: false
  dark: false

output:
  html_dir: "html"
  audio_dir: "audio"
"""


def _write_template(path: Path, content: str) -> None:
    """Write templated YAML content to disk with a trailing newline."""
    path.write_text(content.strip() + "\n", encoding="utf-8")


class ConfigManager:
    """Manages loading and validation of the YAML configuration file."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the manager and ensure a baseline config exists."""
        path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        if not path.is_absolute():
            path = path.resolve()
        self.config_path = str(path)
        self.base_dir = str(path.parent)
        self._config = None
        self._ensure_default_config()

    def load_config(self) -> Dict[str, Any]:
        """Load the main configuration file."""
        if self._config is None:
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.config_path}")
            except Exception as e:
                logger.error(f"Failed to load config from {self.config_path}: {e}")
                raise

        return self._config

    def _ensure_default_config(self) -> None:
        """Create the default config file and secrets directory if missing."""
        config_file = Path(self.config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        if not config_file.exists():
            if _TEMPLATE_CONFIG.exists():
                try:
                    shutil.copyfile(_TEMPLATE_CONFIG, config_file)
                    logger.info("Created default config.yaml at %s", config_file)
                except Exception as exc:
                    logger.warning("Failed to copy template config: %s", exc)
                    _write_template(config_file, _DEFAULT_CONFIG_TEMPLATE)
            else:
                _write_template(config_file, _DEFAULT_CONFIG_TEMPLATE)
                logger.info("Created fallback default config.yaml at %s", config_file)

        secrets_dir = Path(self.base_dir) / "secrets"
        if secrets_dir.exists():
            return
        secrets_dir.mkdir(parents=True, exist_ok=True)
        placeholder = secrets_dir / "README.txt"
        try:
            placeholder.write_text(_DEFAULT_SECRET, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to create secrets placeholder %s: %s", placeholder, exc)

    def get_section(self, name: str) -> Dict[str, Any]:
        """Return a top-level section as a dict (empty when absent)."""
        section = self.load_config().get(name)
        return section if isinstance(section, dict) else {}

    def validate_config(self) -> bool:
        """Validate the configuration file."""
        try:
            config = self.load_config()

            db_config = config.get('database')
            if not isinstance(db_config, dict) or not db_config.get('path'):
                logger.error("Missing required database path 'database.path'")
                return False

            llm = config.get('llm') or {}
            if not isinstance(llm, dict) or not llm.get('model'):
                logger.error("Missing required 'llm.model'")
                return False

            tts = config.get('tts') or {}
            rate = tts.get('sample_rate', 24000)
            if not isinstance(rate, int) or rate <= 0:
                logger.error("'tts.sample_rate' must be a positive integer")
                return False

            defaults = config.get('defaults') or {}
            language = defaults.get('target_language', 'fr')
            if language not in LANGUAGE_CODES:
                logger.error(f"Unknown defaults.target_language '{language}'")
                return False
            tone = defaults.get('tone', 'neutral')
            if tone not in TONE_IDS:
                logger.error(f"Unknown defaults.tone '{tone}'")
                return False
            mode = defaults.get('mode', 'full')
            if mode not in MODES:
                logger.error(f"Unknown defaults.mode '{mode}'")
                return False

            limit = (config.get('history') or {}).get('limit', 20)
            if not isinstance(limit, int) or limit < 1:
                logger.error("'history.limit' must be a positive integer")
                return False

            reader = config.get('reader') or {}
            font_size = reader.get('font_size', 2)
            if font_size not in (1, 2, 3, 4):
                logger.error("'reader.font_size' must be between 1 and 4")
                return False
            line_height = reader.get('line_height', 1.75)
            if not isinstance(line_height, (int, float)):
                logger.error("'reader.line_height' must be a number (int/float)")
                return False

            logger.info("Configuration validation passed")
            return True

        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            return False


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_CONFIG_DIR",
]
