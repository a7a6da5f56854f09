"""Claude provider: Anthropic Messages API with the server-side web search tool."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from citescope.canonical import count_literal, extract_domain, is_excluded_domain
from citescope.models.citation import ProviderId, UnifiedCitation, optional_text
from citescope.providers.base import CitationCollector, HttpProvider

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-3-5-haiku-20241022"
MAX_SEARCHES = 5


class ClaudeSearchResult(BaseModel):
    type: str
    url: str | None = None
    title: str | None = None
    snippet: str | None = None
    page_age: str | None = None


class ClaudeContentBlock(BaseModel):
    type: str
    text: str | None = None
    # A list of results on success, an error object when the search failed
    content: list[ClaudeSearchResult] | dict[str, Any] | None = None


class ClaudeResponse(BaseModel):
    content: list[ClaudeContentBlock]


class ClaudeProvider(HttpProvider):
    """Strategy D: tool-result list, mentions counted by literal URL matches."""

    provider_id = ProviderId.CLAUDE
    name = "Claude"
    api_url = ANTHROPIC_API_URL
    default_model = DEFAULT_MODEL
    payload_schema = ClaudeResponse

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

    def build_request(self, query: str) -> dict:
        return {
            "model": self.model,
            "max_tokens": 4096,
            "tools": [
                {"type": "web_search_20250305", "name": "web_search", "max_uses": MAX_SEARCHES}
            ],
            "messages": [{"role": "user", "content": query}],
        }

    def normalize(self, payload: ClaudeResponse) -> tuple[str, list[UnifiedCitation]]:
        answer = ""
        results: list[ClaudeSearchResult] = []
        for block in payload.content:
            if block.type == "text" and block.text:
                answer += block.text
            elif block.type == "web_search_tool_result":
                if isinstance(block.content, list):
                    results.extend(block.content)
                elif block.content:
                    logger.warning("Claude: web search returned an error: %s", block.content)

        collector = CitationCollector(self.provider_id)
        filtered = 0
        counted: set[str] = set()
        for result in results:
            if result.type != "web_search_result" or not result.url:
                continue
            domain = extract_domain(result.url)
            if not domain or is_excluded_domain(domain):
                filtered += 1
                continue
            collector.add(
                result.url,
                domain=domain,
                title=optional_text(result.title),
                snippet=optional_text(result.snippet),
                published_date=optional_text(result.page_age),
                mentions=0 if result.url in counted else count_literal(answer, result.url),
            )
            counted.add(result.url)

        if filtered:
            logger.debug("Claude: dropped %d infrastructure citations", filtered)
        return answer, collector.build()
