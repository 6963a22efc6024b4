from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from order_engine.utils.num import float_or_nan

# symbol, fraction digits
_CURRENCIES: dict[str, tuple[str, int]] = {
    "USD": ("$", 2),
    "EUR": ("€", 2),
    "GBP": ("£", 2),
    "JPY": ("¥", 0),
}

# grouping separator, decimal separator, symbol after amount
_LOCALES: dict[str, tuple[str, str, bool]] = {
    "en-US": (",", ".", False),
    "en-GB": (",", ".", False),
    "de-DE": (".", ",", True),
    "fr-FR": ("\u202f", ",", True),
}


def _group(digits: str, sep: str) -> str:
    out: list[str] = []
    while len(digits) > 3:
        out.insert(0, digits[-3:])
        digits = digits[:-3]
    out.insert(0, digits)
    return sep.join(out)


def format_currency(amount: Any, *, currency: str = "USD", locale: str = "en-US") -> str:
    """Format `amount` as a currency display string.

    en-US / USD: 1234.5 -> "$1,234.50", -3 -> "-$3.00", NaN -> "$NaN".
    Unknown currencies are shown with their ISO code ("CHF 1.00");
    unknown locales fall back to en-US separators.
    """
    code = str(currency).upper()
    symbol, digits = _CURRENCIES.get(code, (f"{code}\u00a0", 2))
    group_sep, dec_sep, suffix = _LOCALES.get(locale, _LOCALES["en-US"])

    v = float_or_nan(amount)
    if math.isnan(v):
        body, negative = "NaN", False
    elif math.isinf(v):
        body, negative = "∞", v < 0
    else:
        with localcontext() as ctx:
            ctx.prec = 400
            q = Decimal(repr(abs(v))).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
        negative = v < 0
        int_part, _, frac_part = f"{q:f}".partition(".")
        body = _group(int_part, group_sep)
        if digits:
            body = f"{body}{dec_sep}{frac_part}"

    sign = "-" if negative else ""
    if suffix:
        return f"{sign}{body}\u00a0{symbol.strip()}"
    return f"{sign}{symbol}{body}"
