from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Mapping

from ingestion.contracts.event import OrderEvent, is_known_event, normalize_event
from ingestion.contracts.source import AsyncSource, Source
from ingestion.contracts.worker import IngestWorker
from order_engine.utils.logger import get_logger, log_debug, log_info, log_payload_integrity

_LOG = get_logger(__name__)

_NAME_KEYS = ("event", "name", "type")
_TS_KEYS = ("ts", "timestamp")


def _record_field(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for k in keys:
        if k in record:
            return record[k]
    return None


class OrderEventWorker(IngestWorker):
    """Replay recorded order notifications as OrderEvents, in source order.

    Records with an unknown event name or an unusable timestamp are logged
    and skipped. `detail` is forwarded verbatim.
    """

    def __init__(self, *, source: Source | AsyncSource, source_id: str | None = None):
        self._source = source
        self.source_id = source_id if source_id is not None else getattr(source, "source_id", None)
        self.emitted = 0
        self.skipped = 0

    def to_event(self, record: Mapping[str, Any]) -> OrderEvent | None:
        name = _record_field(record, _NAME_KEYS)
        if not is_known_event(name):
            self.skipped += 1
            log_payload_integrity(_LOG, "skipping record with unknown event name", event=name, source_id=self.source_id)
            return None
        try:
            return normalize_event(
                name=name,
                detail=record.get("detail"),
                timestamp=_record_field(record, _TS_KEYS),
                source_id=self.source_id,
            )
        except ValueError as e:
            self.skipped += 1
            log_payload_integrity(_LOG, "skipping record with invalid fields", event=name, reason=str(e), source_id=self.source_id)
            return None

    async def _emit(self, emit: Callable[[OrderEvent], Awaitable[None] | None], event: OrderEvent) -> None:
        res = emit(event)
        if inspect.isawaitable(res):
            await res
        self.emitted += 1
        log_debug(_LOG, "event emitted", event_name=event.name, ts=event.timestamp)

    async def run(
        self,
        emit: Callable[[OrderEvent], Awaitable[None] | None],
    ) -> None:
        if hasattr(self._source, "__aiter__"):
            async for record in self._source:  # type: ignore[union-attr]
                event = self.to_event(record)
                if event is not None:
                    await self._emit(emit, event)
        else:
            for record in self._source:  # type: ignore[union-attr]
                event = self.to_event(record)
                if event is not None:
                    await self._emit(emit, event)

        log_info(
            _LOG,
            "order event replay finished",
            source_id=self.source_id,
            emitted=self.emitted,
            skipped=self.skipped,
        )
