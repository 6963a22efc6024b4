from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Any

import pandas as pd

from order_engine.data.order.model import NormalizedOrder, ValidatedItem
from order_engine.render.currency import format_currency
from order_engine.runtime.config import PanelConfig

CurrencyFormatter = Callable[[Any], str]

FRAME_COLUMNS = ["name", "quantity", "price", "line_total", "special_instructions"]


def formatter_for(config: PanelConfig | None = None) -> CurrencyFormatter:
    cfg = config or PanelConfig()
    return partial(format_currency, currency=cfg.currency, locale=cfg.locale)


def _item_lines(item: ValidatedItem, fmt: CurrencyFormatter) -> list[str]:
    lines = [f"  {item.quantity}x {item.name}  {fmt(item.line_total)}"]
    note = item.note
    if note is not None:
        lines.append(f"    Note: {note}")
    return lines


def render_order_details(order: NormalizedOrder, *, fmt: CurrencyFormatter = format_currency) -> list[str]:
    """Text rendering of the order panel, one display line per entry."""
    lines = ["Order Details", "Items:"]
    if order.items:
        for item in order.items:
            lines.extend(_item_lines(item, fmt))
    else:
        lines.append("  No items")
    lines.append(f"Total: {fmt(order.total_amount)}")
    return lines


def order_frame(order: NormalizedOrder) -> pd.DataFrame:
    """One row per kept item; an empty order gives an empty frame with the same columns."""
    if not order.items:
        return pd.DataFrame({c: pd.Series(dtype="object") for c in FRAME_COLUMNS}).astype({"line_total": "float64"})
    rows = [
        {
            "name": item.name,
            "quantity": item.quantity,
            "price": item.price,
            "line_total": item.line_total,
            "special_instructions": item.special_instructions if item.has_special_instructions else None,
        }
        for item in order.items
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame["line_total"] = frame["line_total"].astype("float64")
    # a missing note stays None, not a NaN from string-dtype inference
    frame["special_instructions"] = pd.Series([row["special_instructions"] for row in rows], dtype="object")
    return frame
