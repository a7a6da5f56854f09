"""Unified citation data model."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from uuid import uuid4


class ProviderId(Enum):
    PERPLEXITY = "perplexity"
    CHATGPT = "chatgpt"
    GEMINI = "gemini"
    CLAUDE = "claude"


@dataclass(frozen=True)
class TextSpan:
    """A slice of the answer text that a citation backs."""

    start: int
    end: int
    text: str
    confidence: float | None = None


@dataclass(frozen=True)
class UnifiedCitation:
    """One cited source, normalized the same way for every provider."""

    source_provider: ProviderId
    position: int
    url: str
    clean_url: str
    domain: str
    title: str | None = None
    snippet: str | None = None
    published_date: str | None = None
    mention_count: int = 1
    average_confidence: float | None = None
    confidence_scores: list[float] = field(default_factory=list)
    text_spans: list[TextSpan] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid4().hex)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["source_provider"] = self.source_provider.value
        return data


def optional_text(value: str | None) -> str | None:
    """Map empty or whitespace-only provider fields to None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
