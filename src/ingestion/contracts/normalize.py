from __future__ import annotations

from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from order_engine.data.order.model import NormalizedOrder


class Normalizer(Protocol):
    """
    Normalizer contract.

    A Normalizer converts an untrusted order payload into a NormalizedOrder.

    Responsibilities:
        - decode the raw payload (encoded string or pre-structured value)
        - filter candidate items by required keys
        - compute the order total

    It MUST:
        - be pure (no side effects besides logging)
        - never raise to the caller
        - degrade every structural failure to the canonical empty order
        - compute the total itself (never read it from the payload)

    It MUST NOT:
        - hold presentation state
        - merge with a previous order
        - report partial success
    """

    def normalize(
        self,
        *,
        raw: Any,
    ) -> "NormalizedOrder":
        """
        Normalize a raw payload into a NormalizedOrder.

        Parameters
        ----------
        raw:
            Raw payload from an event detail (JSON string or structured value).

        Returns
        -------
        NormalizedOrder
            The filtered items and their rounded total, or the empty order.
        """
        ...
