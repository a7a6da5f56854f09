"""Gemini provider: Google Search grounding chunks with redirect URLs.

Grounding chunks point at provider-owned redirect hosts rather than the
cited site, so the real domain has to be recovered from whatever the chunk
does expose. Resolution order:

1. the chunk title, when it is itself a bare domain;
2. a destination URL embedded in a known redirect query parameter;
3. the chunk URL's own host, unless it is search/CDN infrastructure;
4. a domain-shaped substring inside the title text.

Chunks that still have no usable domain are dropped.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from citescope.canonical import extract_domain, is_excluded_domain, normalize_domain
from citescope.errors import CitationUnresolvableError
from citescope.models.citation import ProviderId, TextSpan, UnifiedCitation, optional_text
from citescope.providers.base import CitationCollector, HttpProvider

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.0-flash"

_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
BARE_DOMAIN = re.compile(rf"^(?:{_LABEL}\.)+[a-z]{{2,63}}$")
DOMAIN_IN_TEXT = re.compile(rf"\b(?:{_LABEL}\.)+[a-z]{{2,63}}\b", re.IGNORECASE)

REDIRECT_PARAMS = ("url", "u", "q", "target", "dest", "destination", "redirect", "redirect_url")

# Endings of product and file names that read like domains ("Node.js", "setup.py").
NON_TLD_SUFFIXES = frozenset({"js", "ts", "jsx", "tsx", "py", "json", "html", "css", "txt", "pdf"})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeminiWeb(_CamelModel):
    uri: str | None = None
    title: str | None = None


class GeminiChunk(_CamelModel):
    web: GeminiWeb | None = None


class GeminiSegment(_CamelModel):
    start_index: int = 0
    end_index: int = 0
    text: str | None = None


class GeminiSupport(_CamelModel):
    grounding_chunk_indices: list[int] = []
    confidence_scores: list[float] = []
    segment: GeminiSegment | None = None


class GeminiGroundingMetadata(_CamelModel):
    grounding_chunks: list[GeminiChunk] = []
    grounding_supports: list[GeminiSupport] = []


class GeminiPart(_CamelModel):
    text: str | None = None


class GeminiContent(_CamelModel):
    parts: list[GeminiPart] = []


class GeminiCandidate(_CamelModel):
    content: GeminiContent | None = None
    grounding_metadata: GeminiGroundingMetadata | None = None


class GeminiResponse(_CamelModel):
    candidates: list[GeminiCandidate] = Field(min_length=1)


def embedded_destination(uri: str) -> str | None:
    """Return a destination URL carried in a redirect query parameter, if any."""
    try:
        params = parse_qs(urlsplit(uri).query)
    except (ValueError, TypeError):
        return None
    for name in REDIRECT_PARAMS:
        for value in params.get(name, []):
            if value.lower().startswith(("http://", "https://")):
                return value
    return None


def _has_real_tld(domain: str) -> bool:
    return domain.rsplit(".", 1)[-1] not in NON_TLD_SUFFIXES


def resolve_chunk_source(uri: str, title: str | None) -> tuple[str, str]:
    """Resolve a chunk to ``(domain, url)``.

    Raises ``CitationUnresolvableError`` when no step yields a domain.
    """
    candidate = normalize_domain(title or "")
    if candidate and BARE_DOMAIN.match(candidate) and _has_real_tld(candidate):
        return candidate, uri

    destination = embedded_destination(uri)
    if destination:
        domain = extract_domain(destination)
        if domain:
            return domain, destination

    host = extract_domain(uri)
    if host and not is_excluded_domain(host):
        return host, uri

    for match in DOMAIN_IN_TEXT.finditer(title or ""):
        domain = normalize_domain(match.group(0))
        if _has_real_tld(domain):
            return domain, uri

    raise CitationUnresolvableError(f"no domain for grounding chunk {uri!r} ({title!r})")


class GeminiProvider(HttpProvider):
    """Strategy C: confidence-scored grounding supports over indirection URLs."""

    provider_id = ProviderId.GEMINI
    name = "Gemini"
    api_url = GEMINI_API_URL
    default_model = DEFAULT_MODEL
    payload_schema = GeminiResponse

    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

    def build_request(self, query: str) -> dict:
        return {
            "contents": [{"parts": [{"text": query}]}],
            "tools": [{"googleSearch": {}}],
        }

    def normalize(self, payload: GeminiResponse) -> tuple[str, list[UnifiedCitation]]:
        candidate = payload.candidates[0]
        parts = candidate.content.parts if candidate.content else []
        answer = "".join(p.text or "" for p in parts)

        metadata = candidate.grounding_metadata
        if metadata is None:
            return answer, []

        # chunk index -> [(support, paired confidence score)]
        supports_by_chunk: dict[int, list[tuple[GeminiSupport, float | None]]] = defaultdict(list)
        for support in metadata.grounding_supports:
            seen: set[int] = set()
            for pos, index in enumerate(support.grounding_chunk_indices):
                if index in seen:
                    continue
                seen.add(index)
                scores = support.confidence_scores
                supports_by_chunk[index].append((support, scores[pos] if pos < len(scores) else None))

        collector = CitationCollector(self.provider_id)
        for index, chunk in enumerate(metadata.grounding_chunks):
            if chunk.web is None or not chunk.web.uri:
                continue
            try:
                domain, url = resolve_chunk_source(chunk.web.uri, chunk.web.title)
            except CitationUnresolvableError as exc:
                logger.debug("Gemini: dropping chunk %d: %s", index, exc)
                continue
            if not domain or is_excluded_domain(domain):
                logger.debug("Gemini: dropping chunk %d with infrastructure domain %s", index, domain)
                continue

            related = supports_by_chunk.get(index, [])
            spans = []
            scores = []
            for support, score in related:
                if score is not None:
                    scores.append(score)
                if support.segment is not None:
                    seg = support.segment
                    text = seg.text if seg.text is not None else answer[seg.start_index:seg.end_index]
                    spans.append(
                        TextSpan(start=seg.start_index, end=seg.end_index, text=text, confidence=score)
                    )

            collector.add(
                url,
                domain=domain,
                title=optional_text(chunk.web.title),
                mentions=len(related),
                confidence_scores=scores,
                text_spans=spans,
            )

        return answer, collector.build()
