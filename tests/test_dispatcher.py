import asyncio

import pytest

from citescope.errors import ProviderTimeoutError, ValidationError
from citescope.models.citation import ProviderId
from citescope.models.query import Query
from citescope.models.result import ProviderResult
from citescope.orchestrator.dispatcher import Dispatcher, dispatch
from citescope.orchestrator.summary import summarize
from citescope.providers.base import AnswerProvider


class FakeProvider:
    def __init__(self, provider_id, delay=0.0, result=None, exc=None, api_key="key"):
        self.provider_id = provider_id
        self.model = f"{provider_id.value}-model"
        self.api_key = api_key
        self.delay = delay
        self.result = result
        self.exc = exc
        self.calls = []

    @property
    def configured(self):
        return bool(self.api_key)

    async def call(self, query):
        self.calls.append(query)
        await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        if self.result is not None:
            return self.result
        return ProviderResult(
            success=True,
            provider_id=self.provider_id,
            model_name=self.model,
            answer_text=f"answer from {self.provider_id.value}",
            response_time_ms=int(self.delay * 1000),
        )


def test_fake_provider_satisfies_protocol():
    assert isinstance(FakeProvider(ProviderId.GEMINI), AnswerProvider)


@pytest.mark.asyncio
async def test_all_providers_answer():
    adapters = [FakeProvider(p) for p in ProviderId]

    result = await Dispatcher(adapters).dispatch("what is the best rocket?")

    assert list(result) == list(ProviderId)
    assert all(r.success for r in result.values())
    assert all(a.calls == ["what is the best rocket?"] for a in adapters)


@pytest.mark.asyncio
async def test_slow_provider_times_out_without_blocking_others():
    adapters = [
        FakeProvider(ProviderId.PERPLEXITY),
        FakeProvider(ProviderId.CHATGPT),
        FakeProvider(ProviderId.GEMINI, delay=5),
        FakeProvider(ProviderId.CLAUDE),
    ]
    dispatcher = Dispatcher(adapters, timeouts={ProviderId.GEMINI: 0.05}, default_timeout=2)

    result = await dispatcher.dispatch(Query(text="q"))

    assert len(result.successful()) == 3
    gemini = result[ProviderId.GEMINI]
    assert not gemini.success
    assert gemini.error == "timeout" == str(ProviderTimeoutError())
    assert gemini.citations == []
    assert gemini.model_name == "gemini-model"
    assert gemini.response_time_ms >= 40

    summary = summarize(result)
    assert summary.failed_llms == [ProviderId.GEMINI]
    assert summary.avg_response_time_ms == pytest.approx(gemini.response_time_ms / 4)


@pytest.mark.asyncio
async def test_unconfigured_providers_are_skipped():
    adapters = [
        FakeProvider(ProviderId.PERPLEXITY),
        FakeProvider(ProviderId.CLAUDE, api_key=""),
    ]

    result = await Dispatcher(adapters).dispatch("q")

    assert ProviderId.CLAUDE not in result
    assert result.configured() == [ProviderId.PERPLEXITY]
    assert adapters[1].calls == []
    assert result.to_dict()["claude"] is None


@pytest.mark.asyncio
async def test_no_configured_providers_gives_empty_result():
    result = await Dispatcher([]).dispatch("q")

    assert len(result) == 0
    assert result.to_dict() == {p.value: None for p in ProviderId}


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", None])
async def test_blank_query_is_rejected_before_any_call(text):
    adapter = FakeProvider(ProviderId.PERPLEXITY)

    with pytest.raises(ValidationError, match="Query is required"):
        await Dispatcher([adapter]).dispatch(text)
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_adapter_exception_becomes_failed_result():
    adapters = [
        FakeProvider(ProviderId.PERPLEXITY, exc=RuntimeError("boom")),
        FakeProvider(ProviderId.CHATGPT),
    ]

    result = await dispatch("q", adapters)

    assert result[ProviderId.PERPLEXITY].error == "boom"
    assert result[ProviderId.CHATGPT].success


@pytest.mark.asyncio
async def test_adapter_cancellation_is_reported_as_failure():
    adapters = [
        FakeProvider(ProviderId.GEMINI, exc=asyncio.CancelledError()),
        FakeProvider(ProviderId.CLAUDE),
    ]

    result = await dispatch("q", adapters)

    assert result[ProviderId.GEMINI].error == "cancelled"
    assert result[ProviderId.CLAUDE].success


@pytest.mark.asyncio
async def test_progress_events_and_failing_callback():
    events = []

    def on_progress(provider_id, phase):
        events.append((provider_id, phase))
        raise RuntimeError("observer broke")

    adapters = [
        FakeProvider(ProviderId.PERPLEXITY),
        FakeProvider(ProviderId.CHATGPT, exc=RuntimeError("down")),
    ]

    result = await dispatch("q", adapters, on_progress=on_progress)

    assert result[ProviderId.PERPLEXITY].success
    assert (ProviderId.PERPLEXITY, "started") in events
    assert (ProviderId.PERPLEXITY, "completed") in events
    assert (ProviderId.CHATGPT, "failed") in events
    assert len(events) == 4


@pytest.mark.asyncio
async def test_async_progress_callback_is_scheduled():
    seen = []

    async def on_progress(provider_id, phase):
        seen.append(phase)

    await dispatch("q", [FakeProvider(ProviderId.CLAUDE)], on_progress=on_progress)
    await asyncio.sleep(0)

    assert seen == ["started", "completed"]
