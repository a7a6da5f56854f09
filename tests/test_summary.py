import pytest

from citescope.models.citation import ProviderId
from citescope.models.result import AnalysisResult
from citescope.models.summary import CompetitorBrand
from citescope.orchestrator.summary import (
    analyze_brand_mentions,
    cross_validate,
    detect_brand_mentions,
    find_alias_domains,
    summarize,
)

P, C, G, A = ProviderId.PERPLEXITY, ProviderId.CHATGPT, ProviderId.GEMINI, ProviderId.CLAUDE


def _analysis(*results):
    return AnalysisResult({r.provider_id: r for r in results})


def test_all_providers_failed(make_result):
    result = _analysis(
        make_result(P, success=False, error="timeout", response_time_ms=300),
        make_result(C, success=False, error="Unexpected error", response_time_ms=100),
    )

    summary = summarize(result, "example.com", "Acme")

    assert summary.total_citations == 0
    assert summary.unique_domains == 0
    assert not summary.my_domain_cited
    assert not summary.brand_mentioned
    assert summary.successful_llms == []
    assert summary.failed_llms == [P, C]
    assert summary.avg_response_time_ms == 200
    assert summary.citation_rate_by_llm == {P: 0, C: 0, G: None, A: None}


def test_empty_analysis_summary():
    summary = summarize(AnalysisResult())

    assert summary.total_citations == 0
    assert summary.avg_response_time_ms == 0
    assert summary.brand_mention_analysis.my_brand is None


def test_domain_matching_counts_subdomains(make_result):
    result = _analysis(
        make_result(P, ["blog.example.com", "other.org"]),
        make_result(G, ["example.com", "other.org", "third.net"]),
        make_result(A, ["example.com"], success=False),
    )

    summary = summarize(result, "www.Example.com")

    assert summary.total_citations == 5
    assert summary.unique_domains == 4
    assert summary.my_domain_cited
    assert summary.my_domain_citation_count == 2
    assert summary.successful_llms == [P, G]
    assert summary.failed_llms == [A]
    assert summary.citation_rate_by_llm[P] == 2
    assert summary.citation_rate_by_llm[A] == 0


def test_brand_mentions_across_providers(make_result):
    result = _analysis(
        make_result(P, answer="We recommend acme for beginners."),
        make_result(C, answer="ACME Corp has the best launch record."),
        make_result(G, answer="Nothing relevant here."),
    )

    summary = summarize(result, target_brand="Acme")

    assert summary.brand_mentioned
    assert summary.brand_mention_count >= 2
    detail = summary.brand_mention_analysis.my_brand
    assert detail.mentioned_in == [P, C]
    assert all(c.startswith("...") and c.endswith("...") for c in detail.contexts)


def test_overlapping_aliases_count_once(make_result):
    result = _analysis(make_result(P, answer="Acme Corp ships. Acme also flies."))

    detail = detect_brand_mentions(result, "Acme", ["Acme Corp"])

    assert detail.mention_count == 2


def test_failed_provider_answer_is_ignored_when_empty(make_result):
    result = _analysis(make_result(P, answer="", success=False, error="boom"))

    assert detect_brand_mentions(result, "Acme").mention_count == 0


def test_find_alias_domains_skips_common_words(make_result):
    result = _analysis(
        make_result(P, ["betasoft.io", "news.com"]),
        make_result(C, ["beta-soft.net"]),
    )

    domains, providers = find_alias_domains(result, ["Beta Soft", "news"])

    assert domains == ["betasoft.io"]
    assert providers == [P]


def test_competitor_mentions_include_cited_domains(make_result):
    result = _analysis(
        make_result(P, ["betasoft.io"], answer="Beta is a rival to Acme."),
        make_result(C, answer="Gamma does something else."),
    )
    competitors = [
        CompetitorBrand("Beta", ("BetaSoft",)),
        CompetitorBrand("Acme"),
        CompetitorBrand("Delta"),
    ]

    analysis = analyze_brand_mentions(result, "Acme", (), competitors)

    assert analysis.my_brand.mention_count == 1
    assert [d.brand for d in analysis.competitors] == ["Beta"]
    assert analysis.competitors[0].mention_count == 2
    assert analysis.total_brand_mentions == 3


def test_cross_validation_grades(make_result):
    result = _analysis(
        make_result(P, ["shared.com", "pair.com", "solo.com"]),
        make_result(C, ["shared.com", "pair.com"]),
        make_result(G, ["shared.com"]),
        make_result(A, ["shared.com"], success=False),
    )

    validation = cross_validate(result, "www.pair.com")

    grades = {item.domain: (item.grade, item.reliability) for item in validation.items}
    assert grades == {"shared.com": ("A", 95), "pair.com": ("B", 80), "solo.com": ("C", 60)}
    assert [item.domain for item in validation.items] == ["shared.com", "pair.com", "solo.com"]
    assert validation.items[0].cited_by == [P, C, G]
    assert validation.my_domain_grade == "B"


def test_cross_validation_without_my_domain(make_result):
    validation = cross_validate(_analysis(make_result(P, ["a.com"])))

    assert validation.my_domain_grade is None


def test_summary_is_deterministic(make_result):
    result = _analysis(
        make_result(P, ["a.com"], answer="Acme"),
        make_result(C, ["b.com"], answer="acme acme"),
    )

    first = summarize(result, "a.com", "Acme").to_dict()
    second = summarize(result, "a.com", "Acme").to_dict()

    assert first == second
    assert first["citation_rate_by_llm"] == {"perplexity": 1, "chatgpt": 1, "gemini": None, "claude": None}


@pytest.mark.parametrize("brand", [None, ""])
def test_no_brand_means_no_brand_mentions(make_result, brand):
    result = _analysis(make_result(P, answer="Acme everywhere"))

    summary = summarize(result, target_brand=brand)

    assert summary.brand_mention_count == 0
    assert not summary.brand_mentioned


def test_repeated_context_ending_in_a_period_is_kept_once(make_result):
    result = _analysis(make_result(P, answer="Acme."), make_result(C, answer="Acme."))

    detail = detect_brand_mentions(result, "Acme")

    assert detail.mention_count == 2
    assert detail.contexts == ["...Acme...."]
