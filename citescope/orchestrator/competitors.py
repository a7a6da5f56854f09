"""Competitor scorer: ranks cited domains by a weighted composite score.

Composite score (0-100):

- citation frequency, up to 40 points (10+ citations is full marks)
- provider diversity, up to 30 points (cited by every provider)
- average position, up to 20 points (position 1 scores 18, 10+ scores 0)
- domain authority heuristic, up to 10 points (TLD and name length)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from statistics import fmean

from citescope.canonical import (
    INFRASTRUCTURE_DOMAINS,
    domain_matches,
    is_excluded_domain,
    normalize_domain,
)
from citescope.models.citation import ProviderId
from citescope.models.result import AnalysisResult
from citescope.models.summary import CompetitorScore

GENERIC_DOMAINS = (
    "wikipedia.org",
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "linkedin.com",
    "naver.com",
    "google.com",
    "reddit.com",
    "quora.com",
) + INFRASTRUCTURE_DOMAINS

DEFAULT_MAX_RESULTS = 5


@dataclass
class _DomainStats:
    count: int = 0
    providers: set[ProviderId] = field(default_factory=set)
    positions: list[int] = field(default_factory=list)


def authority_score(domain: str) -> int:
    """Cheap 0-10 authority guess from the TLD and the length of the leading label."""
    score = 5
    if domain.endswith(".com"):
        score += 3
    elif domain.endswith(".co.kr"):
        score += 2
    elif domain.endswith(".kr"):
        score += 1
    elif domain.endswith((".net", ".org")):
        score += 1

    label = domain.split(".")[0]
    if len(label) <= 10:
        score += 2
    elif len(label) <= 15:
        score += 1
    return min(score, 10)


def composite_score(
    citation_count: int, provider_count: int, average_position: float, domain: str
) -> float:
    citation = min(citation_count / 10 * 40, 40)
    diversity = provider_count / len(ProviderId) * 30
    position = max(20 - average_position * 2, 0)
    return citation + diversity + position + authority_score(domain)


def score_competitors(
    result: AnalysisResult,
    my_domain: str | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[CompetitorScore]:
    """Top ``max_results`` cited domains, excluding the caller's own and generic ones."""
    stats: dict[str, _DomainStats] = {}

    for provider_id, provider_result in result.items():
        if not provider_result.success:
            continue
        for citation in provider_result.citations:
            domain = citation.domain
            if not domain or (my_domain and domain_matches(domain, my_domain)):
                continue
            if is_excluded_domain(domain, GENERIC_DOMAINS):
                continue
            entry = stats.setdefault(domain, _DomainStats())
            entry.count += 1
            entry.providers.add(provider_id)
            entry.positions.append(citation.position)

    scores = []
    for domain, entry in stats.items():
        avg_position = fmean(entry.positions)
        total = composite_score(entry.count, len(entry.providers), avg_position, domain)
        scores.append(
            CompetitorScore(
                domain=domain,
                citation_count=entry.count,
                llm_diversity=len(entry.providers),
                average_position=round(avg_position, 1),
                composite_score=round(total),
                confidence_score=round(min(total / 100, 1), 2),
            )
        )

    scores.sort(key=lambda s: (-s.composite_score, -s.citation_count, s.domain))
    return scores[:max_results]


def llm_appearances(result: AnalysisResult, domain: str) -> dict[ProviderId, int]:
    """How many citations each successful provider gave ``domain``."""
    appearances = {}
    for provider_id, provider_result in result.items():
        if not provider_result.success:
            continue
        count = sum(1 for c in provider_result.citations if c.domain == domain)
        if count:
            appearances[provider_id] = count
    return appearances


def infer_brand_name(domain: str) -> str:
    name = normalize_domain(domain).split(".")[0]
    return name[:1].upper() + name[1:]


def citation_rate(citation_count: int, total_queries: int) -> float:
    """Citations per query as a percentage, two decimals."""
    if total_queries == 0:
        return 0.0
    return round(citation_count / total_queries * 100, 2)
