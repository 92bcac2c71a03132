"""Command-line entry point for OmniRead."""

from __future__ import annotations

import logging
import sys
import webbrowser

import click

from .commands import history as history_cmd
from .commands import process as process_cmd
from .commands import speak as speak_cmd
from .commands.process import ProcessResult
from .core.audio import format_time
from .core.config import ConfigManager, DEFAULT_CONFIG_PATH
from .core.credentials import resolve_api_key, save_api_key
from .core.errors import MissingApiKeyError, user_message
from .core.models import LANGUAGE_CODES, MODES, TONE_IDS, language_name

# Setup logging early so submodules inherit sane defaults
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def _fail(command: str, exc: BaseException) -> None:
    click.echo(f"❌ {command} failed: {user_message(exc)}", err=True)
    if isinstance(exc, MissingApiKeyError):
        click.echo("   Configure a key with: omniread set-key YOUR_KEY", err=True)
    sys.exit(1)


def _echo_article(result: ProcessResult) -> None:
    article = result.article
    click.echo(f"📰 {article.translated_title}")
    click.echo(f"   {article.original_title} ({article.original_language} → {language_name(article.language)})")
    click.echo(f"   ⏱  {article.reading_time:g} min read · id {article.id}")
    click.echo(f"   TL;DR: {article.summary}")
    click.echo(f"📄 Page: {result.html_path}")
    if result.audio_state.is_loading:
        click.echo("🎧 Generating audio...")


@click.group()
@click.option(
    "--config",
    default=str(DEFAULT_CONFIG_PATH),
    show_default=True,
    help="Path to config file (defaults to data_dir/config/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool) -> None:
    """OmniRead - translate or summarize articles and listen to them."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command("process")
@click.argument("user_input", metavar="URL_OR_TEXT")
@click.option("--language", "-l", type=click.Choice(LANGUAGE_CODES), help="Target language (default from config)")
@click.option("--tone", type=click.Choice(TONE_IDS), help="Writing tone (default from config)")
@click.option("--mode", type=click.Choice(MODES), help="full translation or structured summary")
@click.option("--audio/--no-audio", default=None, help="Generate speech after the text (default from config)")
@click.option("--voice", help="Prebuilt voice name for speech (default from config)")
@click.option("--open", "open_page", is_flag=True, help="Open the rendered page in a browser")
@click.pass_context
def process(
    ctx: click.Context,
    user_input: str,
    language: str | None,
    tone: str | None,
    mode: str | None,
    audio: bool | None,
    voice: str | None,
    open_page: bool,
) -> None:
    """Translate or summarize a URL (or text; use '-' to read stdin)."""
    if user_input == "-":
        user_input = click.get_text_stream("stdin").read()
    try:
        result = process_cmd.run(
            ctx.obj["config_path"],
            user_input,
            target_language=language,
            tone=tone,
            mode=mode,
            audio=audio,
            voice=voice,
            on_text=_echo_article,
        )
    except Exception as exc:  # pragma: no cover - click echoes the message
        _fail("Process command", exc)
        return

    if result.audio_path:
        click.echo(f"🔊 Audio: {result.audio_path} ({format_time(result.audio_duration or 0)})")
    elif result.audio_error:
        click.echo(f"⚠️  Audio unavailable: {result.audio_error}", err=True)
    if open_page:
        webbrowser.open(result.html_path.resolve().as_uri())


@cli.command("speak")
@click.argument("article_id")
@click.option("--voice", help="Prebuilt voice name (default from config)")
@click.option("--start", type=float, default=0.0, help="Export from this position in seconds")
@click.option("--regenerate", is_flag=True, help="Synthesize again even if audio exists")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the WAV here")
@click.pass_context
def speak(
    ctx: click.Context,
    article_id: str,
    voice: str | None,
    start: float,
    regenerate: bool,
    output: str | None,
) -> None:
    """Create the WAV narration for a stored article."""
    try:
        result = speak_cmd.run(
            ctx.obj["config_path"],
            article_id,
            voice=voice,
            start=start,
            regenerate=regenerate,
            output=output,
        )
        click.echo(f"🔊 Audio: {result.audio_path} ({format_time(result.audio_duration or 0)})")
    except Exception as exc:  # pragma: no cover - click echoes the message
        _fail("Speak command", exc)


@cli.command("history")
@click.option("--clear", "clear_all", is_flag=True, help="Delete history, stored articles and generated files")
@click.pass_context
def history(ctx: click.Context, clear_all: bool) -> None:
    """List recently processed articles (most recent first)."""
    try:
        if clear_all:
            removed = history_cmd.clear(ctx.obj["config_path"])
            click.echo(f"🧹 History cleared ({removed} files removed)")
            return
        items = history_cmd.list_entries(ctx.obj["config_path"])
    except Exception as exc:  # pragma: no cover - click echoes the message
        _fail("History command", exc)
        return

    if not items:
        click.echo("No history yet.")
        return
    for item in items:
        click.echo(f"{item.id[:8]}  {item.title}")
        if item.summary:
            click.echo(f"          {item.summary}")


@cli.command("show")
@click.argument("article_id")
@click.option("--html", "write_html", is_flag=True, help="Re-render the HTML page and print its path")
@click.pass_context
def show(ctx: click.Context, article_id: str, write_html: bool) -> None:
    """Print a stored article's Markdown content."""
    try:
        article, html_path = history_cmd.show(ctx.obj["config_path"], article_id, write_html=write_html)
    except Exception as exc:  # pragma: no cover - click echoes the message
        _fail("Show command", exc)
        return

    if html_path:
        click.echo(f"📄 Page: {html_path}")
        return
    click.echo(f"# {article.translated_title}\n")
    click.echo(f"> {article.summary}\n")
    click.echo(article.content)


@cli.command("set-key")
@click.argument("key", required=False)
@click.pass_context
def set_key(ctx: click.Context, key: str | None) -> None:
    """Store the Gemini API key in the secrets directory."""
    if not key:
        key = click.prompt("Gemini API key", hide_input=True)
    try:
        config_manager = ConfigManager(ctx.obj["config_path"])
        path = save_api_key(key, config_manager.base_dir)
        click.echo(f"🔑 API key saved to {path}")
    except Exception as exc:  # pragma: no cover - click echoes the message
        _fail("set-key", exc)


@cli.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and API key status."""
    try:
        config_manager = ConfigManager(ctx.obj["config_path"])
        click.echo(f"📄 Config file: {config_manager.config_path}")

        if config_manager.validate_config():
            click.echo("✅ Configuration is valid")
        else:
            click.echo("❌ Configuration validation failed")
            return

        config = config_manager.load_config()
        try:
            resolve_api_key(config, config_manager.base_dir)
            click.echo("🔑 API key: configured")
        except MissingApiKeyError:
            click.echo("🔑 API key: missing (run 'omniread set-key')")

        llm = config.get("llm") or {}
        tts = config.get("tts") or {}
        defaults = config.get("defaults") or {}
        click.echo(f"🤖 Model: {llm.get('model')} (fallback: {llm.get('model_fallback') or 'none'})")
        click.echo(f"🔊 Speech: {tts.get('model')} voice {tts.get('voice', 'Puck')}")
        click.echo(
            f"⚙️  Defaults: {defaults.get('mode', 'full')} / {defaults.get('target_language', 'fr')}"
            f" / {defaults.get('tone', 'neutral')}"
        )
        click.echo(f"🗄️  Database: {config['database']['path']}")

    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Error checking status: {exc}", err=True)


if __name__ == "__main__":  # pragma: no cover - script entry
    cli()
