"""Base protocol and shared HTTP plumbing for all answer providers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from statistics import fmean
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from citescope.canonical import clean_url, extract_domain
from citescope.errors import ProviderError, ProviderParseError, ProviderTransportError
from citescope.models.citation import ProviderId, TextSpan, UnifiedCitation
from citescope.models.result import ProviderResult

logger = logging.getLogger(__name__)


@runtime_checkable
class AnswerProvider(Protocol):
    """Interface that every provider adapter implements."""

    provider_id: ProviderId
    model: str
    api_key: str

    @property
    def configured(self) -> bool:
        """True when a credential is present."""
        ...

    async def call(self, query: str) -> ProviderResult:
        """Ask the provider and return a normalized result. Never raises."""
        ...


@dataclass
class _Draft:
    url: str
    clean_url: str
    domain: str
    title: str | None = None
    snippet: str | None = None
    published_date: str | None = None
    mentions: int = 0
    confidence_scores: list[float] = field(default_factory=list)
    text_spans: list[TextSpan] = field(default_factory=list)


class CitationCollector:
    """Accumulates citation instances, merging those that share a clean URL.

    Positions follow first-seen order; every emitted citation has at least
    one mention.
    """

    def __init__(self, provider_id: ProviderId) -> None:
        self.provider_id = provider_id
        self._drafts: dict[str, _Draft] = {}

    def __len__(self) -> int:
        return len(self._drafts)

    def add(
        self,
        url: str,
        *,
        domain: str | None = None,
        title: str | None = None,
        snippet: str | None = None,
        published_date: str | None = None,
        mentions: int = 0,
        confidence_scores: list[float] | None = None,
        text_spans: list[TextSpan] | None = None,
    ) -> None:
        key = clean_url(url)
        draft = self._drafts.get(key)
        if draft is None:
            draft = _Draft(url=url, clean_url=key, domain=domain or extract_domain(url))
            self._drafts[key] = draft
        draft.title = draft.title or title
        draft.snippet = draft.snippet or snippet
        draft.published_date = draft.published_date or published_date
        draft.mentions += mentions
        draft.confidence_scores.extend(confidence_scores or [])
        draft.text_spans.extend(text_spans or [])

    def build(self) -> list[UnifiedCitation]:
        citations = []
        for position, draft in enumerate(self._drafts.values(), start=1):
            scores = list(draft.confidence_scores)
            citations.append(
                UnifiedCitation(
                    source_provider=self.provider_id,
                    position=position,
                    url=draft.url,
                    clean_url=draft.clean_url,
                    domain=draft.domain,
                    title=draft.title,
                    snippet=draft.snippet,
                    published_date=draft.published_date,
                    mention_count=max(draft.mentions, 1),
                    average_confidence=fmean(scores) if scores else None,
                    confidence_scores=scores,
                    text_spans=list(draft.text_spans),
                )
            )
        return citations


class HttpProvider:
    """Common request/validate/normalize cycle for JSON-over-HTTP providers.

    Subclasses set the class attributes and implement ``build_request``,
    ``headers`` and ``normalize``. ``call`` is the error boundary: every
    failure becomes a failed ``ProviderResult``.
    """

    provider_id: ProviderId
    name: str = "provider"
    api_url: str = ""
    default_model: str = ""
    payload_schema: type[BaseModel]
    request_timeout: float = 120.0

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.default_model
        self.api_url = api_url or self.api_url
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def call(self, query: str) -> ProviderResult:
        started = time.monotonic()
        try:
            if not self.configured:
                raise ProviderTransportError(f"{self.name} API key not configured")
            data = await self._post(query)
            payload = self.parse(data)
            answer, citations = self.normalize(payload)
        except ProviderError as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            if isinstance(exc, ProviderTransportError) and exc.status_code is not None:
                logger.warning(
                    "%s returned HTTP %d after %dms", self.name, exc.status_code, elapsed
                )
            else:
                logger.warning("%s failed after %dms: %s", self.name, elapsed, exc)
            return ProviderResult.failure(self.provider_id, self.model, str(exc), elapsed)
        except Exception as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.exception("%s: unexpected error while normalizing response", self.name)
            return ProviderResult.failure(
                self.provider_id, self.model, f"Unexpected error: {exc}", elapsed
            )

        elapsed = int((time.monotonic() - started) * 1000)
        logger.info("%s returned %d citations in %dms", self.name, len(citations), elapsed)
        return ProviderResult(
            success=True,
            provider_id=self.provider_id,
            model_name=self.model,
            answer_text=answer,
            citations=citations,
            response_time_ms=elapsed,
        )

    async def _post(self, query: str) -> Any:
        async with httpx.AsyncClient(
            timeout=self.request_timeout, transport=self.transport
        ) as client:
            try:
                response = await client.post(
                    self.endpoint(),
                    headers=self.headers(),
                    json=self.build_request(query),
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                raise ProviderTransportError(f"{self.name} API error: {status}", status) from exc
            except httpx.HTTPError as exc:
                raise ProviderTransportError(f"{self.name} request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderParseError(f"{self.name}: response body is not JSON") from exc

    def parse(self, data: Any) -> BaseModel:
        """Validate the raw body; any mismatch discards the whole response."""
        try:
            return self.payload_schema.model_validate(data)
        except SchemaError as exc:
            raise ProviderParseError(
                f"{self.name}: unexpected response shape ({exc.error_count()} errors)"
            ) from exc

    def endpoint(self) -> str:
        return self.api_url

    def headers(self) -> dict[str, str]:
        raise NotImplementedError

    def build_request(self, query: str) -> dict:
        raise NotImplementedError

    def normalize(self, payload: BaseModel) -> tuple[str, list[UnifiedCitation]]:
        raise NotImplementedError

    def normalize_raw(self, data: Any) -> tuple[str, list[UnifiedCitation]]:
        """Validate and normalize a raw JSON body without any network call."""
        return self.normalize(self.parse(data))
