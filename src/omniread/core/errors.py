"""Exceptions raised by the processing pipeline."""

GENERIC_ERROR_MESSAGE = "An error occurred while processing the article."


class MissingApiKeyError(RuntimeError):
    """No Gemini API key could be found in the secrets file or environment."""


class ProcessingError(RuntimeError):
    """The model returned nothing usable for the article request."""


class SpeechError(RuntimeError):
    """The speech model returned no audio."""


def user_message(exc: BaseException) -> str:
    """Return the message shown to the user for *exc*."""
    text = str(exc).strip()
    return text or GENERIC_ERROR_MESSAGE
