from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ingestion.contracts.event import EventName, OrderEvent, _normalize_event_name
from order_engine.utils.logger import CATEGORY_DISPATCH, get_logger, log_debug, log_exception

Listener = Callable[[OrderEvent], Any]

_LOG = get_logger(__name__)


class Subscription:
    """
    Handle for one registered listener.

    `close()` removes the listener and is idempotent. The handle is a
    context manager, so the listener is removed on every exit path:

        with bus.subscribe("callEnded", on_reset):
            ...
    """

    def __init__(self, bus: "EventBus", name: EventName, listener: Listener):
        self._bus = bus
        self.name = name
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"Subscription(name={self.name!r}, {state})"


class EventBus:
    """
    Single-threaded, synchronous event dispatcher.

    Semantics:
      - listeners for a name run in subscription order
      - dispatch iterates a snapshot: a listener added from inside a listener
        runs from the next dispatch, a listener closed mid-dispatch is skipped
      - a failing listener is logged and does not stop its siblings
    """

    def __init__(self) -> None:
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, name: EventName | str, listener: Listener) -> Subscription:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        event_name = _normalize_event_name(name)
        sub = Subscription(self, event_name, listener)
        self._subs.setdefault(event_name, []).append(sub)
        log_debug(_LOG, "listener subscribed", event_name=event_name, n_listeners=len(self._subs[event_name]))
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.name)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            return
        if not subs:
            del self._subs[sub.name]
        log_debug(_LOG, "listener unsubscribed", event_name=sub.name)

    def listener_count(self, name: EventName | str | None = None) -> int:
        if name is None:
            return sum(len(v) for v in self._subs.values())
        return len(self._subs.get(_normalize_event_name(name), []))

    def dispatch(self, event: OrderEvent) -> int:
        """Deliver `event` to its listeners; returns how many were invoked."""
        delivered = 0
        for sub in list(self._subs.get(event.name, [])):
            if not sub.active:
                continue
            delivered += 1
            try:
                sub.listener(event)
            except Exception as e:
                log_exception(
                    _LOG,
                    "listener failed",
                    category=CATEGORY_DISPATCH,
                    event_name=event.name,
                    listener=getattr(sub.listener, "__qualname__", repr(sub.listener)),
                    error=str(e),
                )
        log_debug(_LOG, "event dispatched", event_name=event.name, delivered=delivered, ts=event.timestamp)
        return delivered

    def clear(self) -> None:
        for subs in list(self._subs.values()):
            for sub in list(subs):
                sub.close()
