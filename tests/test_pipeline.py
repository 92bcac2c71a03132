import struct
import sys
import textwrap
from pathlib import Path

import pytest


# Make the src/ directory importable for command modules
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from omniread.commands import history as history_cmd
from omniread.commands import process as process_cmd
from omniread.commands import speak as speak_cmd
from omniread.core.audio import AudioClip, read_wav
from omniread.core.errors import MissingApiKeyError, SpeechError
from omniread.core.models import ArticleData


class FakeGemini:
    """Deterministic stand-in for the text and speech calls."""

    def __init__(self, seconds: float = 2.0, speech_error: Exception = None) -> None:
        self.seconds = seconds
        self.speech_error = speech_error
        self.processed = []
        self.spoken = []
        self.events = []

    def process_article(self, user_input, settings, api_key, *, config=None):
        self.processed.append((user_input, settings, api_key))
        self.events.append("text")
        return ArticleData(
            url=ArticleData.source_for(user_input),
            original_title="Original title",
            translated_title=f"Titre {len(self.processed)}",
            summary="Résumé court.",
            content="## Partie\n\nTexte traduit.",
            language=settings.target_language,
            original_language="English",
            reading_time=2.0,
        )

    def generate_article_audio(self, text, api_key, voice_name="Puck", *, config=None):
        self.spoken.append((text, voice_name))
        self.events.append("audio")
        if self.speech_error:
            raise self.speech_error
        frames = int(self.seconds * 100)
        pcm = struct.pack(f"<{frames}h", *range(frames))
        return AudioClip(pcm, sample_rate=100)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Temp data dir, config file and stored API key."""
    data_dir = tmp_path / "data"
    config_dir = tmp_path / "config"
    (config_dir / "secrets").mkdir(parents=True)
    (config_dir / "secrets" / "gemini_api_key.env").write_text("GEMINI_API_KEY=test-key\n", encoding="utf-8")

    config_yaml = textwrap.dedent(
        """
        database:
          path: "omniread.db"
        llm:
          model: "gemini-test"
        tts:
          voice: "Kore"
        defaults:
          target_language: "es"
          tone: "neutral"
          mode: "summary"
          audio: true
        history:
          limit: 3
        fetch:
          enabled: false
        output:
          html_dir: "html"
          audio_dir: "audio"
        """
    )
    config_path = config_dir / "config.yaml"
    config_path.write_text(config_yaml, encoding="utf-8")

    monkeypatch.setenv("OMNIREAD_DATA_DIR", str(data_dir))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return {"config": str(config_path), "data_dir": data_dir, "config_dir": config_dir}


@pytest.fixture
def gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(process_cmd, "process_article", fake.process_article)
    monkeypatch.setattr(process_cmd, "generate_article_audio", fake.generate_article_audio)
    return fake


def test_process_stores_text_before_generating_audio(workspace, gemini):
    seen = []

    def on_text(result):
        seen.append(result)
        gemini.events.append("on_text")
        assert result.html_path.exists()
        assert "<audio" not in result.html_path.read_text(encoding="utf-8")

    result = process_cmd.run(workspace["config"], "https://example.com/a", on_text=on_text)

    assert gemini.events == ["text", "on_text", "audio"]
    _, settings, api_key = gemini.processed[0]
    assert (settings.target_language, settings.mode) == ("es", "summary")
    assert api_key == "test-key"
    assert gemini.spoken == [("## Partie\n\nTexte traduit.", "Kore")]

    assert seen[0] is result
    assert result.audio_error is None
    assert result.audio_path == workspace["data_dir"] / "audio" / f"{result.article.id}.wav"
    assert result.audio_duration == pytest.approx(2.0)
    assert read_wav(result.audio_path).duration == pytest.approx(2.0)
    page = result.html_path.read_text(encoding="utf-8")
    assert f'src="../audio/{result.article.id}.wav"' in page

    entries = history_cmd.list_entries(workspace["config"])
    assert [e.id for e in entries] == [result.article.id]


def test_explicit_options_override_defaults(workspace, gemini):
    result = process_cmd.run(
        workspace["config"],
        "Plain text",
        target_language="ja",
        tone="witty",
        mode="full",
        audio=False,
    )

    _, settings, _ = gemini.processed[0]
    assert (settings.target_language, settings.tone, settings.mode) == ("ja", "witty", "full")
    assert result.article.is_raw_text
    assert result.audio_path is None
    assert gemini.spoken == []


def test_speech_failure_keeps_text_result(workspace, monkeypatch):
    fake = FakeGemini(speech_error=SpeechError("No audio data returned"))
    monkeypatch.setattr(process_cmd, "process_article", fake.process_article)
    monkeypatch.setattr(process_cmd, "generate_article_audio", fake.generate_article_audio)

    result = process_cmd.run(workspace["config"], "https://example.com/a")

    assert result.audio_error == "No audio data returned"
    assert result.audio_path is None
    assert "<audio" not in result.html_path.read_text(encoding="utf-8")
    assert history_cmd.list_entries(workspace["config"])[0].id == result.article.id


def test_missing_api_key_stops_before_processing(workspace, gemini):
    (workspace["config_dir"] / "secrets" / "gemini_api_key.env").unlink()

    with pytest.raises(MissingApiKeyError):
        process_cmd.run(workspace["config"], "https://example.com/a")
    assert gemini.processed == []


def test_history_keeps_configured_number_of_entries(workspace, gemini):
    ids = [process_cmd.run(workspace["config"], f"text {n}", audio=False).article.id for n in range(5)]

    entries = history_cmd.list_entries(workspace["config"])
    assert [e.id for e in entries] == list(reversed(ids))[:3]


def test_speak_reuses_audio_and_exports_from_position(workspace, gemini):
    article_id = process_cmd.run(workspace["config"], "https://example.com/a").article.id
    full_path = workspace["data_dir"] / "audio" / f"{article_id}.wav"
    assert len(gemini.spoken) == 1

    result = speak_cmd.run(workspace["config"], article_id[:8], start=0.5)

    assert len(gemini.spoken) == 1
    assert result.audio_path == workspace["data_dir"] / "audio" / f"{article_id}-from-0s.wav"
    assert result.audio_duration == pytest.approx(1.5)
    assert read_wav(full_path).duration == pytest.approx(2.0)


def test_speak_clamps_start_past_the_end(workspace, gemini, tmp_path):
    article_id = process_cmd.run(workspace["config"], "text").article.id

    result = speak_cmd.run(workspace["config"], article_id, start=99, output=str(tmp_path / "tail.wav"))

    assert result.audio_path == tmp_path / "tail.wav"
    assert result.audio_duration == 0.0


def test_speak_regenerate_uses_requested_voice(workspace, gemini):
    article_id = process_cmd.run(workspace["config"], "text", audio=False).article.id

    speak_cmd.run(workspace["config"], article_id, voice="Charon")
    speak_cmd.run(workspace["config"], article_id, regenerate=True)

    assert [voice for _, voice in gemini.spoken] == ["Charon", "Kore"]


def test_speak_unknown_article(workspace, gemini):
    with pytest.raises(ValueError):
        speak_cmd.run(workspace["config"], "does-not-exist")


def test_show_and_clear(workspace, gemini):
    result = process_cmd.run(workspace["config"], "https://example.com/a")
    result.html_path.unlink()

    article, html_path = history_cmd.show(workspace["config"], result.article.id, write_html=True)
    assert article == result.article
    assert "<audio" in html_path.read_text(encoding="utf-8")

    removed = history_cmd.clear(workspace["config"])

    assert removed == 2
    assert not result.audio_path.exists()
    assert not html_path.exists()
    assert history_cmd.list_entries(workspace["config"]) == []
    with pytest.raises(ValueError):
        history_cmd.show(workspace["config"], result.article.id)


def test_audio_loading_state_is_reported(workspace, gemini):
    states = []

    result = process_cmd.run(
        workspace["config"],
        "https://example.com/a",
        on_text=lambda r: states.append(r.audio_state),
    )

    assert states[0].is_loading and not states[0].has_audio
    final = result.audio_state
    assert not final.is_loading and not final.is_playing
    assert final.has_audio
    assert final.duration == pytest.approx(2.0)
    assert final.audio_path == str(result.audio_path)


def test_no_audio_requested_is_not_loading(workspace, gemini):
    result = process_cmd.run(workspace["config"], "text", audio=False)
    assert not result.audio_state.is_loading
    assert not result.audio_state.has_audio


def test_unwritable_audio_keeps_text_result(workspace, gemini, monkeypatch):
    def fail_write(path, clip):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(process_cmd, "write_wav", fail_write)

    result = process_cmd.run(workspace["config"], "https://example.com/a")

    assert "No space left on device" in result.audio_error
    assert result.audio_path is None
    assert not result.audio_state.is_loading
    assert not result.audio_state.has_audio
    assert history_cmd.list_entries(workspace["config"])[0].id == result.article.id


def test_clear_removes_exported_narrations(workspace, gemini):
    article_id = process_cmd.run(workspace["config"], "https://example.com/a").article.id
    export = speak_cmd.run(workspace["config"], article_id, start=1).audio_path
    assert export.exists()

    removed = history_cmd.clear(workspace["config"])

    assert removed == 3
    assert not export.exists()
    assert list((workspace["data_dir"] / "audio").glob("*.wav")) == []
