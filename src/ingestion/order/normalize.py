from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from ingestion.contracts.normalize import Normalizer
from order_engine.data.order.model import REQUIRED_ITEM_KEYS, NormalizedOrder, ValidatedItem, empty_order
from order_engine.runtime.config import PanelConfig
from order_engine.utils.logger import get_logger, log_debug, log_exception, log_payload_integrity
from order_engine.utils.num import float_or_nan, is_real_number, round2

_LOG = get_logger(__name__)


class FailureKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    DECODE_FAILURE = "decode_failure"
    SHAPE_FAILURE = "shape_failure"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class NormalizeOutcome:
    """Tagged normalization result.

    `failure` is None when the payload decoded to a sequence (even if every
    element was dropped). Callers outside diagnostics only see `order`.
    """

    order: NormalizedOrder
    failure: FailureKind | None = None
    dropped: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None


class _GuardFailed(Exception):
    def __init__(self, kind: FailureKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind


def _reject_constant(token: str) -> Any:
    # JSON has no NaN / Infinity; Python's json accepts them unless told otherwise
    raise ValueError(f"non-standard JSON constant: {token}")


def _is_empty_input(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, (str, bytes, bytearray)):
        return len(raw) == 0
    if isinstance(raw, (bool, int, float)):
        return not raw or raw != raw
    return False


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise _GuardFailed(FailureKind.DECODE_FAILURE, str(e)) from e
    if isinstance(raw, str):
        try:
            return json.loads(raw, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            raise _GuardFailed(FailureKind.DECODE_FAILURE, str(e)) from e
    if isinstance(raw, pd.DataFrame):
        return _frame_records(raw)
    return raw


def _frame_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Row records with missing cells dropped, so presence checks see absent keys."""
    out: list[dict[str, Any]] = []
    for rec in df.to_dict(orient="records"):
        row: dict[str, Any] = {}
        for k, v in rec.items():
            if pd.api.types.is_scalar(v) and pd.isna(v):
                continue
            row[str(k)] = v.item() if isinstance(v, np.generic) else v
        out.append(row)
    return out


def _as_sequence(value: Any) -> Sequence[Any]:
    if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
        raise _GuardFailed(FailureKind.SHAPE_FAILURE, f"expected a sequence, got {type(value).__name__}")
    return value


def is_candidate_item(item: Any) -> bool:
    """Structural predicate: a mapping that has name, quantity and price keys."""
    if item is None or not isinstance(item, Mapping):
        return False
    return all(k in item for k in REQUIRED_ITEM_KEYS)


def has_numeric_amounts(item: Mapping[str, Any]) -> bool:
    return is_real_number(item["price"]) and is_real_number(item["quantity"])


def order_total(items: Sequence[ValidatedItem]) -> float:
    """round2(sum(price * quantity)); NaN propagates from non-numeric lines."""
    total = 0.0
    for item in items:
        total += float_or_nan(item.price) * float_or_nan(item.quantity)
    return round2(total)


class OrderPayloadNormalizer(Normalizer):
    """Normalize an untrusted order payload into a NormalizedOrder.

    Guard chain (first failure wins, every failure yields the empty order):
      empty input -> JSON decode -> sequence shape -> per-item filter -> total
    """

    def __init__(self, *, config: PanelConfig | None = None):
        self.config = config or PanelConfig()
        self.strict_numeric = bool(self.config.strict_numeric)

    def normalize(self, *, raw: Any) -> NormalizedOrder:
        return self.normalize_with_outcome(raw=raw).order

    def normalize_with_outcome(self, *, raw: Any) -> NormalizeOutcome:
        try:
            log_debug(_LOG, "order payload received", raw_type=type(raw).__name__, raw=raw)
            outcome = self._run_guards(raw)
        except _GuardFailed as e:
            log_payload_integrity(
                _LOG,
                "order payload rejected",
                failure=e.kind,
                reason=str(e),
                raw_type=type(raw).__name__,
                raw_preview=raw if isinstance(raw, (str, bytes, bytearray)) else None,
            )
            return NormalizeOutcome(order=empty_order(), failure=e.kind)
        except Exception as e:
            log_exception(
                _LOG,
                "order payload normalization failed",
                failure=FailureKind.INTERNAL_ERROR,
                error=str(e),
                raw_type=type(raw).__name__,
            )
            return NormalizeOutcome(order=empty_order(), failure=FailureKind.INTERNAL_ERROR)

        log_debug(
            _LOG,
            "order payload normalized",
            n_items=len(outcome.order.items),
            dropped=outcome.dropped,
            total_amount=outcome.order.total_amount,
        )
        return outcome

    def _run_guards(self, raw: Any) -> NormalizeOutcome:
        if _is_empty_input(raw):
            raise _GuardFailed(FailureKind.EMPTY_INPUT, "no order details data provided")

        candidates = _as_sequence(_decode(raw))

        kept: list[ValidatedItem] = []
        for candidate in candidates:
            if not is_candidate_item(candidate):
                continue
            if self.strict_numeric and not has_numeric_amounts(candidate):
                continue
            kept.append(ValidatedItem.from_mapping(candidate))

        order = NormalizedOrder(items=tuple(kept), total_amount=order_total(kept))
        return NormalizeOutcome(order=order, failure=None, dropped=len(candidates) - len(kept))


_DEFAULT = OrderPayloadNormalizer()


def normalize(raw: Any) -> NormalizedOrder:
    """Normalize with default settings; never raises."""
    return _DEFAULT.normalize(raw=raw)


def normalize_with_outcome(raw: Any) -> NormalizeOutcome:
    return _DEFAULT.normalize_with_outcome(raw=raw)
