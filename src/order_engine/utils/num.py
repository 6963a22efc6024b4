from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

import numpy as np

_CENTS = Decimal("0.01")


def to_float(x: Any) -> float:
    """
    Normalize numeric-like objects to Python float.

    Accepts:
    - Python int / float
    - numpy scalar (via float())
    - numeric strings ("2", " 5.5 ")
    """
    if x is None:
        raise TypeError("Cannot convert None to float")

    # bool is an int subclass; reject it
    if isinstance(x, (bool, np.bool_)):
        raise TypeError(f"Cannot convert bool to float: {x!r}")

    if isinstance(x, complex):
        raise TypeError(f"Cannot convert complex to float: {x!r}")

    try:
        return float(x)
    except Exception as e:
        raise TypeError(f"Not convertible to float: {type(x).__name__}: {x!r}") from e


def is_real_number(x: Any) -> bool:
    """True for int / float / numpy numeric scalars, excluding bool."""
    if isinstance(x, (bool, np.bool_)):
        return False
    return isinstance(x, (int, float, np.integer, np.floating))


def float_or_nan(x: Any) -> float:
    try:
        return to_float(x)
    except TypeError:
        return math.nan


def round2(x: float) -> float:
    """Round to cents, half away from zero, on the exact binary value.

    round2(1.005) == 1.0 because 1.005 is stored as 1.00499999...
    Non-finite values are returned unchanged. Precision is raised so that
    totals up to the float maximum (309 integer digits) quantize exactly.
    """
    v = float(x)
    if not math.isfinite(v):
        return v
    with localcontext() as ctx:
        ctx.prec = 400
        return float(Decimal(v).quantize(_CENTS, rounding=ROUND_HALF_UP))
