from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager

from ingestion.contracts.event import CALL_ENDED, ORDER_DETAILS_UPDATED, OrderEvent
from ingestion.contracts.normalize import Normalizer
from order_engine.data.order.model import NormalizedOrder, empty_order
from order_engine.runtime.bus import EventBus
from order_engine.utils.logger import get_logger, log_state_change

StateListener = Callable[[NormalizedOrder], None]


class OrderDetailsHandler:
    """Presentation-side order state.

    Holds exactly one NormalizedOrder. Both events fully replace it, so the
    most recently applied event always wins:

      - orderDetailsUpdated: state = normalizer.normalize(raw=event.detail)
      - callEnded:           state = empty_order()

    The handler owns its bus subscriptions; `attach()` acquires them and
    guarantees release when the block exits, including on error.
    """

    def __init__(
        self,
        *,
        normalizer: Normalizer | None = None,
        on_change: StateListener | None = None,
    ):
        if normalizer is None:
            from ingestion.order.normalize import OrderPayloadNormalizer

            normalizer = OrderPayloadNormalizer()
        self._normalizer = normalizer
        self._state: NormalizedOrder = empty_order()
        self._listeners: list[StateListener] = [on_change] if on_change is not None else []
        self.updates = 0
        self.last_event: OrderEvent | None = None
        self._logger = get_logger(__name__)

    @property
    def state(self) -> NormalizedOrder:
        return self._state

    # -------- event entrypoints --------

    def on_order_details_updated(self, event: OrderEvent) -> None:
        self._replace(self._normalizer.normalize(raw=event.detail), event)

    def on_call_ended(self, event: OrderEvent) -> None:
        self._replace(empty_order(), event)

    def on_new_event(self, event: OrderEvent) -> None:
        if event.name == ORDER_DETAILS_UPDATED:
            self.on_order_details_updated(event)
        elif event.name == CALL_ENDED:
            self.on_call_ended(event)

    # -------- subscription lifecycle --------

    @contextmanager
    def attach(self, bus: EventBus) -> Iterator["OrderDetailsHandler"]:
        with ExitStack() as stack:
            stack.enter_context(bus.subscribe(ORDER_DETAILS_UPDATED, self.on_order_details_updated))
            stack.enter_context(bus.subscribe(CALL_ENDED, self.on_call_ended))
            yield self

    def _replace(self, order: NormalizedOrder, event: OrderEvent) -> None:
        self._state = order
        self.last_event = event
        self.updates += 1
        log_state_change(
            self._logger,
            "order state replaced",
            event_name=event.name,
            n_items=len(order.items),
            total_amount=order.total_amount,
            updates=self.updates,
        )
        for listener in list(self._listeners):
            listener(order)
