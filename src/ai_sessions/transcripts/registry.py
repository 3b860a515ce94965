"""Provider registry and the parse entry point."""

from __future__ import annotations

import logging

from ..config import Config
from . import ParsedTranscript, UnparseableFileError
from .base import TranscriptProvider
from .claude import ClaudeCodeProvider
from .codex import CodexProvider
from .copilot import CopilotCliProvider
from .gemini import GeminiProvider
from .mistral import MistralVibeProvider

_LOGGER = logging.getLogger(__name__)

# Priority order: detection ties go to the earlier provider
PROVIDERS: tuple[TranscriptProvider, ...] = (
    ClaudeCodeProvider(),
    CodexProvider(),
    CopilotCliProvider(),
    GeminiProvider(),
    MistralVibeProvider(),
)


def get_provider(name: str | None) -> TranscriptProvider | None:
    for provider in PROVIDERS:
        if provider.name == name:
            return provider
    return None


def available_providers() -> list[str]:
    return [provider.name for provider in PROVIDERS]


def display_name(name: str) -> str:
    """UI name for a provider, e.g. ``"codex"`` -> ``"Codex"``."""
    provider = get_provider(name)
    return provider.display_name if provider else name


def decode(raw: str | bytes) -> str:
    """Decode upload bytes as UTF-8, dropping a BOM and replacing bad sequences."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8-sig", errors="replace")
    return raw.removeprefix("\ufeff")


def parse_transcript(
    raw: str | bytes,
    provider_hint: str | None = None,
    config: Config | None = None,
) -> ParsedTranscript:
    """Parse ``raw`` with the hinted provider, falling back to detection.

    The hint is a preference, not a command: an unknown hint is ignored, and
    if the hinted adapter recovers no entries while detection names a
    different provider, the detected one is used instead.

    Raises:
        UnparseableFileError: when the chosen adapter recovers no transcript entries.
    """
    from .detect import detect_provider

    text = decode(raw)

    hinted = get_provider(provider_hint) if provider_hint else None
    if provider_hint and hinted is None:
        _LOGGER.warning("Unknown provider hint %r, detecting format", provider_hint)

    if hinted is not None:
        try:
            return hinted.parse(text)
        except UnparseableFileError:
            detected = detect_provider(text, config)
            if not detected.recognized or detected.provider == hinted.name:
                raise
            _LOGGER.warning(
                "Transcript is not %s, retrying as %s", hinted.name, detected.provider
            )
            return get_provider(detected.provider).parse(text)

    detected = detect_provider(text, config)
    return get_provider(detected.provider).parse(text)
