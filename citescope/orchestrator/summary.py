"""Summary aggregator: derives totals, match flags and brand analysis from an analysis.

Everything here is a pure function of an ``AnalysisResult``: no I/O, no
mutation, identical output on repeated calls.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from statistics import fmean

from citescope.canonical import domain_matches, normalize_domain
from citescope.models.citation import ProviderId
from citescope.models.result import AnalysisResult
from citescope.models.summary import (
    AnalysisSummary,
    BrandMentionAnalysis,
    BrandMentionDetail,
    CompetitorBrand,
    CrossValidation,
    CrossValidationItem,
)

CONTEXT_CHARS = 30
MAX_CONTEXTS = 3

# Words too generic to identify a brand inside a domain name.
COMMON_WORDS = frozenset({
    "life", "bank", "home", "shop", "mall", "plus", "news", "info",
    "korea", "korean", "insurance", "finance", "asset", "fire",
    "direct", "online", "mobile", "smart", "care", "health",
    "save", "money", "loan", "credit", "card", "point", "pay",
    "service", "center", "support", "help", "guide", "blog",
})

# (minimum providers, grade, reliability %)
CROSS_VALIDATION_GRADES = ((3, "A", 95), (2, "B", 80), (1, "C", 60))


def summarize(
    result: AnalysisResult,
    target_domain: str | None = None,
    target_brand: str | None = None,
    brand_aliases: Sequence[str] = (),
    competitors: Sequence[CompetitorBrand] = (),
) -> AnalysisSummary:
    """Compute the flat ``AnalysisSummary`` for one analysis."""
    successful = result.successful()
    citations = [c for r in successful for c in r.citations]

    my_domain_count = 0
    if target_domain:
        my_domain_count = sum(1 for c in citations if domain_matches(c.domain, target_domain))

    brand_analysis = analyze_brand_mentions(result, target_brand, brand_aliases, competitors)
    brand_count = brand_analysis.my_brand.mention_count if brand_analysis.my_brand else 0

    present = list(result.values())
    avg_response = fmean(r.response_time_ms for r in present) if present else 0.0

    return AnalysisSummary(
        total_citations=len(citations),
        unique_domains=len({c.domain for c in citations if c.domain}),
        my_domain_cited=my_domain_count > 0,
        my_domain_citation_count=my_domain_count,
        brand_mentioned=brand_count > 0,
        brand_mention_count=brand_count,
        avg_response_time_ms=avg_response,
        successful_llms=[p for p, r in result.items() if r.success],
        failed_llms=[p for p, r in result.items() if not r.success],
        citation_rate_by_llm={
            p: (len(result[p].citations) if p in result else None) for p in ProviderId
        },
        brand_mention_analysis=brand_analysis,
    )


def _find_matches(text: str, names: Iterable[str]) -> list[tuple[int, int]]:
    """Case-insensitive matches of any name; overlaps resolve to the earliest, longest one."""
    found = []
    for name in names:
        if not name:
            continue
        for match in re.finditer(re.escape(name), text, flags=re.IGNORECASE):
            found.append((match.start(), match.end()))
    found.sort(key=lambda span: (span[0], -span[1]))

    unique = []
    last_end = -1
    for start, end in found:
        if start >= last_end:
            unique.append((start, end))
            last_end = end
    return unique


def _is_similar(a: str, b: str) -> bool:
    # Compare the cores only; short contexts must match exactly.
    core_a, core_b = a[10:-10], b[10:-10]
    if not core_a or not core_b:
        return a == b
    return core_a in b or core_b in a


def detect_brand_mentions(
    result: AnalysisResult, brand: str, aliases: Sequence[str] = ()
) -> BrandMentionDetail:
    """Count literal mentions of a brand (or any alias) across all answers."""
    names = list(dict.fromkeys(n for n in (brand, *aliases) if n))
    detail = BrandMentionDetail(brand=brand, aliases=list(aliases))

    for provider_id, provider_result in result.items():
        answer = provider_result.answer_text
        if not answer:
            continue
        matches = _find_matches(answer, names)
        if not matches:
            continue
        detail.mention_count += len(matches)
        detail.mentioned_in.append(provider_id)

        for start, end in matches:
            if len(detail.contexts) >= MAX_CONTEXTS:
                break
            lo = max(0, start - CONTEXT_CHARS)
            hi = min(len(answer), end + CONTEXT_CHARS)
            context = answer[lo:hi].strip()
            if not any(_is_similar(context, c[3:-3]) for c in detail.contexts):
                detail.contexts.append(f"...{context}...")

    return detail


def _alias_patterns(aliases: Iterable[str]) -> list[str]:
    patterns = []
    for alias in aliases:
        ascii_only = re.sub(r"[^a-z0-9]", "", alias.lower())
        if len(ascii_only) >= 3 and ascii_only not in COMMON_WORDS:
            patterns.append(ascii_only)
    return list(dict.fromkeys(patterns))


def find_alias_domains(
    result: AnalysisResult, aliases: Iterable[str], exclude: Iterable[str] = ()
) -> tuple[list[str], list[ProviderId]]:
    """Cited domains containing a brand alias, e.g. ``acme`` in ``acmecorp.com``.

    Returns the matched domains and the providers that cited them.
    """
    patterns = _alias_patterns(aliases)
    excluded = {normalize_domain(d) for d in exclude}
    domains: dict[str, None] = {}
    providers: dict[ProviderId, None] = {}
    if not patterns:
        return [], []

    for provider_id, provider_result in result.items():
        if not provider_result.success:
            continue
        for citation in provider_result.citations:
            domain = citation.domain.lower()
            if not domain or domain in excluded:
                continue
            if any(p in domain for p in patterns):
                domains.setdefault(domain)
                providers.setdefault(provider_id)
    return list(domains), list(providers)


def analyze_brand_mentions(
    result: AnalysisResult,
    my_brand: str | None = None,
    brand_aliases: Sequence[str] = (),
    competitors: Sequence[CompetitorBrand] = (),
) -> BrandMentionAnalysis:
    """Mentions of the caller's brand and of each caller-supplied competitor."""
    my_names = [n for n in (my_brand, *brand_aliases) if n]
    my_detail = None
    if my_names:
        my_detail = detect_brand_mentions(result, my_brand or my_names[0], list(brand_aliases))

    my_lower = {n.lower() for n in my_names}
    details = []
    for competitor in competitors:
        names = competitor.all_names()
        if any(n.lower() in my_lower for n in names):
            continue
        text = detect_brand_mentions(result, competitor.name, list(competitor.aliases))
        domains, domain_providers = find_alias_domains(result, names)
        total = text.mention_count + len(domains)
        if total == 0:
            continue
        text.mention_count = total
        text.mentioned_in = list(dict.fromkeys([*text.mentioned_in, *domain_providers]))
        details.append(text)

    details.sort(key=lambda d: d.mention_count, reverse=True)
    own = my_detail.mention_count if my_detail else 0
    return BrandMentionAnalysis(
        my_brand=my_detail,
        competitors=details,
        total_brand_mentions=own + sum(d.mention_count for d in details),
    )


def cross_validate(result: AnalysisResult, my_domain: str | None = None) -> CrossValidation:
    """Grade each cited domain by how many providers independently cited it."""
    cited_by: dict[str, dict[ProviderId, None]] = {}
    for provider_id, provider_result in result.items():
        if not provider_result.success:
            continue
        for citation in provider_result.citations:
            cited_by.setdefault(citation.domain, {}).setdefault(provider_id)

    items = []
    for domain, providers in cited_by.items():
        count = len(providers)
        grade, reliability = next(
            (g, r) for minimum, g, r in CROSS_VALIDATION_GRADES if count >= minimum
        )
        items.append(
            CrossValidationItem(
                domain=domain, cited_by=list(providers), grade=grade, reliability=reliability
            )
        )
    items.sort(key=lambda item: item.reliability, reverse=True)

    my_grade = None
    if my_domain:
        match = next((i for i in items if domain_matches(i.domain, my_domain)), None)
        my_grade = match.grade if match else None
    return CrossValidation(items=items, my_domain_grade=my_grade)
