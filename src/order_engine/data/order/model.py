from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from order_engine.utils.num import float_or_nan

REQUIRED_ITEM_KEYS: tuple[str, ...] = ("name", "quantity", "price")
SPECIAL_INSTRUCTIONS_KEY = "specialInstructions"

_MISSING = object()


@dataclass(frozen=True)
class ValidatedItem:
    """
    One kept order line.

    Values are carried exactly as found in the payload: presence of
    name / quantity / price is the only guarantee. Unknown keys are kept
    in `extra` so that `to_dict()` gives back the wire shape.
    """

    name: Any
    quantity: Any
    price: Any
    special_instructions: Any = _MISSING
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", dict(self.extra))

    @classmethod
    def from_mapping(cls, item: Mapping[str, Any]) -> "ValidatedItem":
        extra = {
            str(k): v
            for k, v in item.items()
            if k not in REQUIRED_ITEM_KEYS and k != SPECIAL_INSTRUCTIONS_KEY
        }
        return cls(
            name=item["name"],
            quantity=item["quantity"],
            price=item["price"],
            special_instructions=item.get(SPECIAL_INSTRUCTIONS_KEY, _MISSING),
            extra=extra,
        )

    @property
    def has_special_instructions(self) -> bool:
        return self.special_instructions is not _MISSING

    @property
    def note(self) -> Any | None:
        """Special instructions if present and truthy, else None."""
        if self.special_instructions is _MISSING or not self.special_instructions:
            return None
        return self.special_instructions

    @property
    def line_total(self) -> float:
        """price * quantity; NaN when either side is not number-like."""
        return float_or_nan(self.price) * float_or_nan(self.quantity)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
        }
        if self.has_special_instructions:
            out[SPECIAL_INSTRUCTIONS_KEY] = self.special_instructions
        out.update(self.extra)
        return out

    def __hash__(self) -> int:
        # fields may hold unhashable payload values (lists, dicts)
        try:
            return hash(self.name)
        except TypeError:
            return hash(repr(self.name))

    def __repr__(self) -> str:
        note = f", special_instructions={self.special_instructions!r}" if self.has_special_instructions else ""
        return f"ValidatedItem(name={self.name!r}, quantity={self.quantity!r}, price={self.price!r}{note})"


@dataclass(frozen=True)
class NormalizedOrder:
    """
    Normalized order snapshot.

    Invariants:
    - total_amount == round2(sum(price * quantity)) over items
    - total_amount is computed by the normalizer, never taken from input
    - a fresh instance is built for every normalization and every reset
    """

    items: tuple[ValidatedItem, ...] = ()
    total_amount: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalizedOrder):
            return NotImplemented
        if self.items != other.items:
            return False
        # NaN totals compare equal so that repeated normalization is comparable
        if math.isnan(self.total_amount) and math.isnan(other.total_amount):
            return True
        return self.total_amount == other.total_amount

    def __hash__(self) -> int:
        return hash(len(self.items))

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.total_amount,
        }


def empty_order() -> NormalizedOrder:
    """Return a fresh canonical empty order: {items: [], totalAmount: 0}."""
    return NormalizedOrder(items=(), total_amount=0.0)


EMPTY_ORDER = empty_order()
