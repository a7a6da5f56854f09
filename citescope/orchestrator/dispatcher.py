"""Analysis dispatcher: fans one query out to every configured provider."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from citescope.errors import ProviderTimeoutError
from citescope.models.citation import ProviderId
from citescope.models.query import Query
from citescope.models.result import AnalysisResult, ProviderResult
from citescope.providers.base import AnswerProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds

# on_progress(provider_id, phase) with phase in {"started", "completed", "failed"}
ProgressCallback = Callable[[ProviderId, str], Any]


class Dispatcher:
    """Dispatches a query to all configured providers in parallel.

    Every provider runs in its own task under its own timeout. The dispatcher
    waits for all of them and never fails as a whole: timeouts, cancellations
    and provider errors all come back as failed ``ProviderResult`` entries.
    """

    def __init__(
        self,
        adapters: Iterable[AnswerProvider],
        timeouts: Mapping[ProviderId, float] | None = None,
        default_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.adapters = list(adapters)
        self.timeouts = dict(timeouts or {})
        self.default_timeout = default_timeout
        self._callback_tasks: set[asyncio.Future] = set()

    async def dispatch(
        self, query: Query | str, on_progress: ProgressCallback | None = None
    ) -> AnalysisResult:
        """Ask every configured provider and merge the results by provider id."""
        if not isinstance(query, Query):
            query = Query(text=query)

        active = [a for a in self.adapters if a.configured]
        if not active:
            logger.warning("No providers configured; returning an empty analysis")
            return AnalysisResult()

        logger.info(
            "Dispatching to %d providers: %s",
            len(active),
            [a.provider_id.value for a in active],
        )
        outcomes = await asyncio.gather(
            *(self._run_provider(a, query.text, on_progress) for a in active)
        )
        return AnalysisResult({r.provider_id: r for r in outcomes})

    async def _run_provider(
        self, adapter: AnswerProvider, text: str, on_progress: ProgressCallback | None
    ) -> ProviderResult:
        provider_id = adapter.provider_id
        timeout = self.timeouts.get(provider_id, self.default_timeout)
        self._notify(on_progress, provider_id, "started")

        started = time.monotonic()
        try:
            result = await _call_with_timeout(adapter, text, timeout)
        except ProviderTimeoutError as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.warning("Provider %s timed out after %.1fs", provider_id.value, timeout)
            result = ProviderResult.failure(provider_id, adapter.model, str(exc), elapsed)
        except asyncio.CancelledError:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.warning("Provider %s was cancelled after %dms", provider_id.value, elapsed)
            result = ProviderResult.failure(provider_id, adapter.model, "cancelled", elapsed)
        except Exception as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.exception("Provider %s raised instead of returning a result", provider_id.value)
            result = ProviderResult.failure(provider_id, adapter.model, str(exc), elapsed)
        else:
            logger.info(
                "Provider %s: success=%s, %d citations, %dms",
                provider_id.value,
                result.success,
                len(result.citations),
                result.response_time_ms,
            )

        self._notify(on_progress, provider_id, "completed" if result.success else "failed")
        return result

    def _notify(
        self, callback: ProgressCallback | None, provider_id: ProviderId, phase: str
    ) -> None:
        """Fire the progress callback without letting it block or fail the dispatch."""
        if callback is None:
            return
        try:
            outcome = callback(provider_id, phase)
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._callback_tasks.add(task)
                task.add_done_callback(self._callback_done)
        except Exception:
            logger.warning(
                "Progress callback failed for %s (%s)", provider_id.value, phase, exc_info=True
            )

    def _callback_done(self, task: asyncio.Future) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Progress callback failed: %s", task.exception())


async def _call_with_timeout(
    adapter: AnswerProvider, text: str, timeout: float
) -> ProviderResult:
    try:
        return await asyncio.wait_for(adapter.call(text), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ProviderTimeoutError() from exc


async def dispatch(
    query: Query | str,
    adapters: Iterable[AnswerProvider],
    timeouts: Mapping[ProviderId, float] | None = None,
    on_progress: ProgressCallback | None = None,
) -> AnalysisResult:
    """Functional shortcut for a one-off ``Dispatcher(...).dispatch(...)``."""
    return await Dispatcher(adapters, timeouts).dispatch(query, on_progress)
