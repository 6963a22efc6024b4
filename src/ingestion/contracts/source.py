from __future__ import annotations

from typing import Any, AsyncIterator, Iterator, Mapping, Protocol


Raw = Mapping[str, Any]


class Source(Protocol):
    """
    Synchronous event source contract.

    A Source represents a raw notification producer.

    Responsibilities:
        - read raw event records from an external system or recording
        - yield raw records one by one

    It MUST:
        - not build OrderEvent objects
        - not decode order payloads
        - not touch presentation state

    It MUST NOT:
        - reorder records
        - drop well-formed records
    """

    def __iter__(self) -> Iterator[Raw]:
        ...


class AsyncSource(Protocol):
    """
    Asynchronous event source contract.

    Same semantics as Source, but for streaming producers
    (e.g. a websocket bridge).
    """

    def __aiter__(self) -> AsyncIterator[Raw]:
        ...
