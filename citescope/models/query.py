"""Query data model."""

from __future__ import annotations

from dataclasses import dataclass, field

from citescope.errors import ValidationError


@dataclass(frozen=True)
class Query:
    """A free-text question plus the domain and brand to look for in the answers."""

    text: str
    target_domain: str | None = None
    target_brand: str | None = None
    brand_aliases: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValidationError("Query is required")
        # Blank optionals collapse to None so "absent" has one representation.
        for name in ("target_domain", "target_brand"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                object.__setattr__(self, name, None)
        aliases = tuple(a.strip() for a in self.brand_aliases if a and a.strip())
        object.__setattr__(self, "brand_aliases", aliases)
