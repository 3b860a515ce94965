"""Score raw transcripts against every provider's format signals."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..config import DEFAULT_PROVIDER, Config
from .base import CHARACTERISTIC, UNIQUE, DetectionSample, Signal, fold_jsonl
from .registry import PROVIDERS, get_provider

_LOGGER = logging.getLogger(__name__)


class Confidence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class DetectionResult:
    provider: str
    confidence: Confidence
    recognized: bool = True  # False: no provider matched, ``provider`` is the fallback
    signals: list[Signal] = field(default_factory=list)

    @property
    def score(self) -> int:
        return sum(signal.weight for signal in self.signals)

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "confidence": self.confidence.value,
            "recognized": self.recognized,
            "score": self.score,
            "signals": [signal.name for signal in self.signals],
        }


def _confidence(score: int) -> Confidence:
    if score >= UNIQUE:
        return Confidence.HIGH
    if score >= CHARACTERISTIC:
        return Confidence.MEDIUM
    return Confidence.LOW


def build_sample(raw: str, sample_lines: int) -> DetectionSample:
    """Pre-parse ``raw`` once: as a whole JSON document and as leading JSONL records."""
    document = None
    stripped = raw.strip()
    if stripped.startswith(("{", "[")):
        try:
            document = json.loads(stripped)
        except json.JSONDecodeError:
            document = None
    records = fold_jsonl(raw, limit=sample_lines).records
    return DetectionSample(document=document, records=records)


def _fallback(config: Config) -> str:
    if get_provider(config.default_provider) is None:
        _LOGGER.warning(
            "Unknown default provider %r, using %s", config.default_provider, DEFAULT_PROVIDER
        )
        return DEFAULT_PROVIDER
    return config.default_provider


def detect_provider(raw: str, config: Config | None = None) -> DetectionResult:
    """Pick the provider whose signals score highest. Never raises.

    Ties go to the provider listed first in PROVIDERS. When nothing matches,
    the configured default provider is returned with ``recognized=False``.
    """
    config = config or Config()
    sample = build_sample(raw, config.detect_sample_lines)

    best: DetectionResult | None = None
    for provider in PROVIDERS:
        try:
            signals = provider.signals(sample)
        except Exception:
            _LOGGER.warning("Provider %s detection failed", provider.name, exc_info=True)
            continue
        if not signals:
            continue
        candidate = DetectionResult(
            provider=provider.name,
            confidence=_confidence(sum(signal.weight for signal in signals)),
            signals=signals,
        )
        if best is None or candidate.score > best.score:
            best = candidate

    if best is None:
        _LOGGER.info("No provider recognized the transcript format")
        return DetectionResult(
            provider=_fallback(config),
            confidence=Confidence.LOW,
            recognized=False,
        )
    _LOGGER.debug("Detected %s (score %d)", best.provider, best.score)
    return best
