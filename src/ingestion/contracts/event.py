from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast, get_args

EventName = Literal[
    "orderDetailsUpdated",
    "callEnded",
]

ORDER_DETAILS_UPDATED: EventName = "orderDetailsUpdated"
CALL_ENDED: EventName = "callEnded"

_EVENT_ALIASES: dict[str, str] = {
    "order_details_updated": ORDER_DETAILS_UPDATED,
    "orderUpdated": ORDER_DETAILS_UPDATED,
    "order_updated": ORDER_DETAILS_UPDATED,
    "call_ended": CALL_ENDED,
}
_ALLOWED_EVENTS: set[str] = set(get_args(EventName))


def _normalize_event_name(name: EventName | str) -> EventName:
    if isinstance(name, str) and name in _EVENT_ALIASES:
        name = _EVENT_ALIASES[name]
    if name not in _ALLOWED_EVENTS:
        raise ValueError(f"Invalid event name: {name!r}. Expected one of: {sorted(_ALLOWED_EVENTS)}")
    return cast(EventName, name)


def is_known_event(name: Any) -> bool:
    return isinstance(name, str) and (name in _ALLOWED_EVENTS or name in _EVENT_ALIASES)


def _normalize_source_id(source_id: Any | None) -> str | None:
    if source_id is None:
        return None
    if isinstance(source_id, str) and not source_id.strip():
        return None
    if isinstance(source_id, Path):
        return str(source_id)
    try:
        return str(source_id)
    except Exception:
        return None


def _now_ms() -> int:
    return int(time.time() * 1000.0)


def _coerce_epoch_ms(x: Any) -> int:
    """Coerce seconds-or-ms epoch into epoch milliseconds int.

    Heuristic: seconds are ~1e9, ms are ~1e12.
    """
    if x is None:
        raise ValueError("timestamp cannot be None")
    # bool is an int subclass; reject it
    if isinstance(x, bool):
        raise ValueError("invalid timestamp type: bool")
    if isinstance(x, (int, float)):
        v = float(x)
    else:
        try:
            v = float(x)  # strings, numpy scalars
        except Exception as e:
            raise ValueError(f"invalid timestamp: {x!r}") from e
    if v != v:
        raise ValueError("invalid timestamp: NaN")

    if v < 10_000_000_000:  # seconds
        return int(round(v * 1000.0))
    return int(round(v))


@dataclass(frozen=True)
class OrderEvent:
    """
    Canonical order notification.

    This is the ONLY object allowed to cross the boundary:
        Source -> Worker -> EventBus -> OrderDetailsHandler

    Semantics:
        - `timestamp` : arrival timestamp (epoch ms int)
        - `name`      : 'orderDetailsUpdated' | 'callEnded'
        - `detail`    : raw payload, carried verbatim (never decoded here)
        - `source_id` : optional source identifier (e.g. replay file path)

    `detail` is always None for 'callEnded'.
    """

    timestamp: int  # arrival timestamp (epoch ms int)
    name: EventName
    detail: Any = None
    source_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _normalize_event_name(self.name))
        object.__setattr__(self, "source_id", _normalize_source_id(self.source_id))
        if self.name == CALL_ENDED and self.detail is not None:
            object.__setattr__(self, "detail", None)

    @property
    def is_reset(self) -> bool:
        return self.name == CALL_ENDED


def normalize_event(
    *,
    name: EventName | str,
    detail: Any = None,
    timestamp: Any | None = None,
    source_id: Any | None = None,
) -> OrderEvent:
    """
    Normalize raw notification fields into a canonical OrderEvent.

    Rules:
        - timestamp defaults to now when the source did not provide one
        - detail is passed through untouched (no decoding, no validation)
    """
    arrival_ts = _coerce_epoch_ms(timestamp) if timestamp is not None else _now_ms()

    return OrderEvent(
        timestamp=arrival_ts,
        name=_normalize_event_name(name),
        detail=detail,
        source_id=_normalize_source_id(source_id),
    )
