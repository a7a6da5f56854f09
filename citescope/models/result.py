"""Provider result and analysis result data models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from citescope.models.citation import ProviderId, UnifiedCitation


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of asking one provider; failures are data, not exceptions."""

    success: bool
    provider_id: ProviderId
    model_name: str
    answer_text: str = ""
    citations: list[UnifiedCitation] = field(default_factory=list)
    response_time_ms: int = 0
    error: str | None = None
    timestamp: str = field(default_factory=_utc_now)

    @classmethod
    def failure(
        cls,
        provider_id: ProviderId,
        model_name: str,
        error: str,
        response_time_ms: int = 0,
    ) -> ProviderResult:
        return cls(
            success=False,
            provider_id=provider_id,
            model_name=model_name,
            citations=[],
            response_time_ms=response_time_ms,
            error=error,
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "provider_id": self.provider_id.value,
            "model_name": self.model_name,
            "answer_text": self.answer_text,
            "citations": [c.to_dict() for c in self.citations],
            "response_time_ms": self.response_time_ms,
            "error": self.error,
            "timestamp": self.timestamp,
        }


class AnalysisResult(Mapping[ProviderId, ProviderResult]):
    """Read-only map of provider id to result.

    A provider missing from the map was not configured, which is distinct
    from a provider that was configured and failed.
    """

    def __init__(self, results: Mapping[ProviderId, ProviderResult] | None = None) -> None:
        self._results = MappingProxyType(dict(results or {}))

    def __getitem__(self, provider_id: ProviderId) -> ProviderResult:
        return self._results[provider_id]

    def __iter__(self) -> Iterator[ProviderId]:
        # Stable, declaration-order iteration regardless of completion order.
        return (p for p in ProviderId if p in self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"AnalysisResult({dict(self._results)!r})"

    def configured(self) -> list[ProviderId]:
        return list(self)

    def successful(self) -> list[ProviderResult]:
        return [r for r in self.values() if r.success]

    def to_dict(self) -> dict:
        """Serialize every provider slot, ``None`` for unconfigured ones."""
        return {
            p.value: (self._results[p].to_dict() if p in self._results else None)
            for p in ProviderId
        }
