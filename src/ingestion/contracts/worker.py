from __future__ import annotations
from typing import Protocol
from collections.abc import Awaitable, Callable
from ingestion.contracts.event import OrderEvent


class IngestWorker(Protocol):
    """
    Ingestion worker contract.

    An IngestWorker is responsible ONLY for:
        - reading raw event records from a Source
        - turning them into canonical OrderEvent objects
        - emitting them downstream in source order

    It MUST NOT:
        - decode order payloads (that is the normalizer's job)
        - know about presentation state or rendering
        - merge or coalesce events

    Lifecycle:
        runner -> worker.run(bus.dispatch)
    """

    async def run(
        self,
        emit: Callable[[OrderEvent], Awaitable[None] | None],
    ) -> None:
        """
        Start the ingestion loop.

        Parameters
        ----------
        emit:
            Callback used to emit OrderEvent objects downstream.
            May be synchronous (returns None) or asynchronous (returns an awaitable).
            Workers await it only if it returns an awaitable.
        """
        ...
