from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True)
class PanelConfig:
    """
    Order panel settings.

    - `currency` / `locale` : passed to the currency formatter
    - `strict_numeric`      : also require real numeric price/quantity when
                              filtering items (off: presence check only)
    """

    currency: str = "USD"
    locale: str = "en-US"
    strict_numeric: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.currency, str) or len(self.currency.strip()) != 3:
            raise ValueError(f"currency must be a 3-letter ISO code, got {self.currency!r}")
        object.__setattr__(self, "currency", self.currency.strip().upper())
        if not isinstance(self.locale, str) or not self.locale.strip():
            raise ValueError(f"locale must be a non-empty string, got {self.locale!r}")
        if not isinstance(self.strict_numeric, bool):
            raise ValueError(f"strict_numeric must be a bool, got {self.strict_numeric!r}")

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any] | None) -> "PanelConfig":
        if cfg is None:
            return cls()
        if not isinstance(cfg, Mapping):
            raise ValueError(f"panel config must be a mapping, got {type(cfg).__name__}")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in cfg.items() if k in known})

    @classmethod
    def from_file(cls, path: str | Path) -> "PanelConfig":
        with Path(path).open("r", encoding="utf-8") as f:
            cfg = json.load(f)
        return cls.from_mapping(cfg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "locale": self.locale,
            "strict_numeric": self.strict_numeric,
        }
