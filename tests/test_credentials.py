"""Tests for API key resolution and storage."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from omniread.core import credentials  # noqa: E402
from omniread.core.errors import MissingApiKeyError  # noqa: E402


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("MY_KEY", raising=False)


def test_saved_key_is_resolved(tmp_path):
    path = credentials.save_api_key("  key-123 ", str(tmp_path))

    assert path == tmp_path / "secrets" / "gemini_api_key.env"
    assert path.read_text(encoding="utf-8") == "GEMINI_API_KEY=key-123\n"
    assert credentials.resolve_api_key({}, str(tmp_path)) == "key-123"


def test_raw_key_file_is_accepted(tmp_path):
    secrets = tmp_path / "secrets"
    secrets.mkdir()
    (secrets / "gemini_api_key.env").write_text("# comment\nraw-key\n", encoding="utf-8")

    assert credentials.resolve_api_key({}, str(tmp_path)) == "raw-key"


def test_relative_key_file_resolves_against_default_config_dir(tmp_path, monkeypatch):
    (tmp_path / "keys").mkdir()
    (tmp_path / "keys" / "gemini.env").write_text("MY_KEY='quoted'\n", encoding="utf-8")
    monkeypatch.setattr(credentials, "DEFAULT_CONFIG_DIR", tmp_path)

    config = {"llm": {"api_key_file": "keys/gemini.env", "api_key_env": "MY_KEY"}}

    assert credentials.resolve_api_key(config, config_base_dir=None) == "quoted"


def test_environment_variable_is_used_last(tmp_path, monkeypatch):
    monkeypatch.setenv("MY_KEY", "env-key")

    assert credentials.resolve_api_key({"llm": {"api_key_env": "MY_KEY"}}, str(tmp_path)) == "env-key"


def test_missing_key_raises(tmp_path):
    with pytest.raises(MissingApiKeyError):
        credentials.resolve_api_key({}, str(tmp_path))


def test_empty_key_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        credentials.save_api_key("   ", str(tmp_path))


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_saved_key_file_is_private(tmp_path):
    path = credentials.save_api_key("key-123", str(tmp_path))
    assert stat.S_IMODE(path.stat().st_mode) == 0o600

    path.chmod(0o644)
    credentials.save_api_key("key-456", str(tmp_path))
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert credentials.resolve_api_key({}, str(tmp_path)) == "key-456"
