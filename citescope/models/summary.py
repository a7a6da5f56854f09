"""Derived analysis records: summary, brand mentions, cross validation, competitors."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from citescope.models.citation import ProviderId


@dataclass(frozen=True)
class CompetitorBrand:
    """A competitor brand supplied by the caller, with its spelling variants."""

    name: str
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def all_names(self) -> tuple[str, ...]:
        names = (self.name, *self.aliases)
        return tuple(dict.fromkeys(n for n in names if n))


@dataclass
class BrandMentionDetail:
    brand: str
    aliases: list[str] = field(default_factory=list)
    mention_count: int = 0
    mentioned_in: list[ProviderId] = field(default_factory=list)
    contexts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["mentioned_in"] = [p.value for p in self.mentioned_in]
        return data


@dataclass
class BrandMentionAnalysis:
    my_brand: BrandMentionDetail | None = None
    competitors: list[BrandMentionDetail] = field(default_factory=list)
    total_brand_mentions: int = 0

    def to_dict(self) -> dict:
        return {
            "my_brand": self.my_brand.to_dict() if self.my_brand else None,
            "competitors": [c.to_dict() for c in self.competitors],
            "total_brand_mentions": self.total_brand_mentions,
        }


@dataclass
class AnalysisSummary:
    """Totals and flags computed fresh from an ``AnalysisResult``."""

    total_citations: int = 0
    unique_domains: int = 0
    my_domain_cited: bool = False
    my_domain_citation_count: int = 0
    brand_mentioned: bool = False
    brand_mention_count: int = 0
    avg_response_time_ms: float = 0.0
    successful_llms: list[ProviderId] = field(default_factory=list)
    failed_llms: list[ProviderId] = field(default_factory=list)
    citation_rate_by_llm: dict[ProviderId, int | None] = field(default_factory=dict)
    brand_mention_analysis: BrandMentionAnalysis | None = None

    def to_dict(self) -> dict:
        return {
            "total_citations": self.total_citations,
            "unique_domains": self.unique_domains,
            "my_domain_cited": self.my_domain_cited,
            "my_domain_citation_count": self.my_domain_citation_count,
            "brand_mentioned": self.brand_mentioned,
            "brand_mention_count": self.brand_mention_count,
            "avg_response_time_ms": self.avg_response_time_ms,
            "successful_llms": [p.value for p in self.successful_llms],
            "failed_llms": [p.value for p in self.failed_llms],
            "citation_rate_by_llm": {p.value: n for p, n in self.citation_rate_by_llm.items()},
            "brand_mention_analysis": (
                self.brand_mention_analysis.to_dict() if self.brand_mention_analysis else None
            ),
        }


@dataclass
class CrossValidationItem:
    domain: str
    cited_by: list[ProviderId] = field(default_factory=list)
    grade: str = "C"
    reliability: int = 60

    def to_dict(self) -> dict:
        data = asdict(self)
        data["cited_by"] = [p.value for p in self.cited_by]
        return data


@dataclass
class CrossValidation:
    items: list[CrossValidationItem] = field(default_factory=list)
    my_domain_grade: str | None = None

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "my_domain_grade": self.my_domain_grade,
        }


@dataclass(frozen=True)
class CompetitorScore:
    """A cited domain ranked by the weighted composite score."""

    domain: str
    citation_count: int
    llm_diversity: int
    average_position: float
    composite_score: int
    confidence_score: float

    def to_dict(self) -> dict:
        return asdict(self)
