"""Fan-out of one webhook batch into concurrent per-event tasks under a deadline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from line_relay.application.services.event_dispatch_service import (
    EventDispatchResult,
    EventDispatchService,
)
from line_relay.domain.deadline import RequestDeadline
from line_relay.domain.events import WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_DISPATCH_MARGIN_SECONDS = 0.1


@dataclass(frozen=True)
class WebhookRelayResult:
    """Batch outcome: finished results plus the count of abandoned tasks."""

    results: tuple[EventDispatchResult, ...]
    pending: int

    @property
    def handled(self) -> int:
        return len(self.results)


class WebhookRelayService:
    """Dispatch every event concurrently and wait until done or near the deadline."""

    def __init__(
        self,
        *,
        dispatch_service: EventDispatchService,
        dispatch_margin_seconds: float = DEFAULT_DISPATCH_MARGIN_SECONDS,
    ) -> None:
        self._dispatch_service = dispatch_service
        self._dispatch_margin_seconds = dispatch_margin_seconds
        self._abandoned: set[asyncio.Task[EventDispatchResult]] = set()

    async def relay(
        self,
        events: Sequence[WebhookEvent],
        deadline: RequestDeadline,
    ) -> WebhookRelayResult:
        """Handle a batch; tasks still running at `deadline - margin` are left to finish."""

        if not events:
            return WebhookRelayResult(results=(), pending=0)

        tasks = [
            asyncio.create_task(self._dispatch_service.handle(event, deadline))
            for event in events
        ]
        timeout_seconds = deadline.remaining(margin_seconds=self._dispatch_margin_seconds)
        done, pending = await asyncio.wait(tasks, timeout=timeout_seconds)

        for task in pending:
            self._abandoned.add(task)
            task.add_done_callback(self._on_abandoned_done)
        if pending:
            logger.warning(
                "relay_batch_deadline_reached events=%s pending=%s",
                len(tasks),
                len(pending),
            )

        results: list[EventDispatchResult] = []
        for task in tasks:
            if task not in done:
                continue
            error = task.exception()
            if error is not None:
                logger.error("relay_event_task_crashed", exc_info=error)
                continue
            results.append(task.result())

        logger.info(
            "relay_batch_done events=%s outcomes=%s pending=%s",
            len(tasks),
            ",".join(result.outcome.value for result in results),
            len(pending),
        )
        return WebhookRelayResult(results=tuple(results), pending=len(pending))

    def _on_abandoned_done(self, task: asyncio.Task[EventDispatchResult]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("relay_event_task_crashed_after_deadline", exc_info=error)
            return
        logger.info("relay_event_finished_after_deadline outcome=%s", task.result().outcome.value)
