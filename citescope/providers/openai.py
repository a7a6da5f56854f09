"""OpenAI provider: Responses API with offset-annotated URL citations."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from citescope.canonical import extract_domain, is_excluded_domain
from citescope.models.citation import ProviderId, TextSpan, UnifiedCitation, optional_text
from citescope.providers.base import CitationCollector, HttpProvider

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/responses"
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIAnnotation(BaseModel):
    type: str
    url: str | None = None
    title: str | None = None
    start_index: int = 0
    end_index: int = 0


class OpenAIContent(BaseModel):
    type: str
    text: str | None = None
    annotations: list[OpenAIAnnotation] = []


class OpenAIOutput(BaseModel):
    type: str
    content: list[OpenAIContent] | None = None


class OpenAIResponse(BaseModel):
    output: list[OpenAIOutput]


class OpenAIProvider(HttpProvider):
    """Strategy B: each annotation carries a ``[start, end)`` offset and a URL."""

    provider_id = ProviderId.CHATGPT
    name = "OpenAI"
    api_url = OPENAI_API_URL
    default_model = DEFAULT_MODEL
    payload_schema = OpenAIResponse

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_request(self, query: str) -> dict:
        return {
            "model": self.model,
            "input": query,
            "tools": [{"type": "web_search_preview", "search_context_size": "low"}],
        }

    def normalize(self, payload: OpenAIResponse) -> tuple[str, list[UnifiedCitation]]:
        parts: list[str] = []
        annotations: list[tuple[OpenAIAnnotation, int]] = []
        offset = 0

        # Offsets are local to each output_text block; shift them onto the joined answer.
        for output in payload.output:
            if output.type != "message" or not output.content:
                continue
            for content in output.content:
                if content.type != "output_text":
                    continue
                text = content.text or ""
                parts.append(text)
                annotations.extend((ann, offset) for ann in content.annotations)
                offset += len(text)

        answer = "".join(parts)
        collector = CitationCollector(self.provider_id)
        filtered = 0

        for annotation, shift in annotations:
            if annotation.type != "url_citation" or not annotation.url:
                continue
            domain = extract_domain(annotation.url)
            if not domain or is_excluded_domain(domain):
                filtered += 1
                continue
            start = annotation.start_index + shift
            end = annotation.end_index + shift
            collector.add(
                annotation.url,
                domain=domain,
                title=optional_text(annotation.title),
                mentions=1,
                text_spans=[TextSpan(start=start, end=end, text=answer[start:end])],
            )

        if filtered:
            logger.debug("OpenAI: dropped %d infrastructure citations", filtered)
        return answer, collector.build()
