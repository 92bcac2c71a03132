"""Gemini API key lookup and storage."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import DEFAULT_CONFIG_DIR
from .errors import MissingApiKeyError

logger = logging.getLogger(__name__)

KEY_FILENAME = 'gemini_api_key.env'
DEFAULT_KEY_ENV = 'GEMINI_API_KEY'


def _load_key_from_file(path: Path, env_var: str) -> Optional[str]:
    """Read an API key from a file, tolerating KEY=value or raw key formats."""
    if not path.is_file():
        return None
    try:
        content = path.read_text(encoding='utf-8').strip()
    except OSError as exc:
        logger.warning("Could not read API key file %s: %s", path, exc)
        return None

    lines = [line.strip() for line in content.splitlines()]
    lines = [line for line in lines if line and not line.startswith('#')]
    for line in lines:
        if '=' in line:
            name, value = line.split('=', 1)
            if name.strip() in (env_var, DEFAULT_KEY_ENV):
                value = value.strip().strip('"').strip("'")
                if value:
                    return value
        else:
            return line
    return None


def _candidate_files(llm_cfg: Dict[str, Any], base_dir: Path) -> List[Path]:
    candidates: List[Path] = []
    key_file_cfg = (llm_cfg.get('api_key_file') or '').strip()
    if key_file_cfg:
        key_path = Path(key_file_cfg).expanduser()
        if key_path.is_absolute():
            candidates.append(key_path)
        else:
            candidates.append(base_dir / key_path)
            candidates.append(Path.cwd() / key_path)
    candidates.append(base_dir / 'secrets' / KEY_FILENAME)
    return candidates


def resolve_api_key(config: Dict[str, Any], config_base_dir: Optional[str] = None) -> str:
    """Resolve the Gemini API key from the config directory or environment."""
    llm_cfg = config.get('llm') or {}
    env_var = llm_cfg.get('api_key_env') or DEFAULT_KEY_ENV
    base_dir = Path(config_base_dir) if config_base_dir else Path(DEFAULT_CONFIG_DIR)

    for path in _candidate_files(llm_cfg, base_dir):
        key = _load_key_from_file(path, env_var)
        if key:
            logger.debug("Using API key from %s", path)
            return key

    key = os.environ.get(env_var, '').strip()
    if key:
        return key

    raise MissingApiKeyError(
        "Missing Gemini API key. Run 'omniread set-key', set %s, or place the key in %s"
        % (env_var, base_dir / 'secrets' / KEY_FILENAME)
    )


def save_api_key(key: str, config_base_dir: Optional[str] = None) -> Path:
    """Store *key* in the secrets directory and return the file path."""
    key = (key or '').strip()
    if not key:
        raise ValueError("API key must not be empty")
    base_dir = Path(config_base_dir) if config_base_dir else Path(DEFAULT_CONFIG_DIR)
    target = base_dir / 'secrets' / KEY_FILENAME
    target.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        f.write(f"{DEFAULT_KEY_ENV}={key}\n")
    try:
        # O_CREAT's mode does not apply to a file that already existed
        os.chmod(target, 0o600)
    except OSError:
        logger.debug("Could not restrict permissions on %s", target)
    logger.info("Saved API key to %s", target)
    return target


__all__ = ['resolve_api_key', 'save_api_key', 'KEY_FILENAME']
