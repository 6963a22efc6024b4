from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Iterator, Mapping

from ingestion.contracts.source import AsyncSource, Raw, Source
from order_engine.utils.logger import get_logger, log_debug, log_payload_integrity

_LOG = get_logger(__name__)


class OrderEventSourceError(RuntimeError):
    """Raised when a recorded event file cannot be opened or read."""


class OrderEventFileSource(Source):
    """
    Event source backed by a JSON Lines recording.

    Layout (one record per line):
        {"event": "orderDetailsUpdated", "detail": "[...]", "ts": 1700000000000}
        {"event": "callEnded", "ts": 1700000005000}

    Blank lines are skipped. Lines that are not JSON objects are logged and
    skipped; they never stop the replay.
    """

    def __init__(self, *, path: str | Path, encoding: str = "utf-8"):
        self._path = Path(path)
        self._encoding = encoding

    @property
    def source_id(self) -> str:
        return str(self._path)

    def __iter__(self) -> Iterator[Raw]:
        try:
            fh = self._path.open("r", encoding=self._encoding)
        except OSError as e:
            raise OrderEventSourceError(f"Cannot open event recording {self._path}: {e}") from e

        with fh:
            for lineno, line in enumerate(fh, start=1):
                text = line.strip()
                if not text:
                    continue
                try:
                    record = json.loads(text)
                except ValueError as e:
                    log_payload_integrity(
                        _LOG,
                        "skipping malformed event line",
                        path=str(self._path),
                        lineno=lineno,
                        reason=str(e),
                        raw_preview=text,
                    )
                    continue
                if not isinstance(record, Mapping):
                    log_payload_integrity(
                        _LOG,
                        "skipping non-object event line",
                        path=str(self._path),
                        lineno=lineno,
                        raw_type=type(record).__name__,
                    )
                    continue
                log_debug(_LOG, "event line read", path=str(self._path), lineno=lineno)
                yield record


class OrderEventMemorySource(Source):
    """In-memory source; records are yielded in the given order."""

    def __init__(self, records: Iterable[Mapping[str, Any]] | None = None, *, source_id: str | None = None):
        self._records: list[Mapping[str, Any]] = list(records or [])
        self.source_id = source_id

    def append(self, record: Mapping[str, Any]) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Raw]:
        yield from list(self._records)


class OrderEventStreamSource(AsyncSource):
    """
    Event source backed by an async stream (e.g. a websocket bridge).
    """

    def __init__(self, stream: AsyncIterable[Raw] | None = None):
        self._stream = stream

    def __aiter__(self) -> AsyncIterator[Raw]:
        async def _gen():
            assert self._stream is not None, "stream must be provided for OrderEventStreamSource"
            async for msg in self._stream:
                yield msg

        return _gen()
