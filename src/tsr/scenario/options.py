"""Resolver tuning knobs.

The defaults are the values the completion endpoint has always used.
Change them through config, not here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping

from tsr.scenario.errors import InvalidInput


@dataclass(frozen=True)
class ResolverOptions:
    tolerance_pct: float = 0.5
    max_leverage: int = 100
    min_movement_pct: float = 0.01
    max_points: int = 5000

    def __post_init__(self) -> None:
        if not math.isfinite(self.tolerance_pct) or self.tolerance_pct < 0:
            raise InvalidInput(f"tolerance_pct must be >= 0, got {self.tolerance_pct}", field="tolerance_pct")
        if isinstance(self.max_leverage, bool) or int(self.max_leverage) != self.max_leverage or self.max_leverage < 1:
            raise InvalidInput(f"max_leverage must be an integer >= 1, got {self.max_leverage}", field="max_leverage")
        if not math.isfinite(self.min_movement_pct) or self.min_movement_pct <= 0:
            raise InvalidInput(f"min_movement_pct must be > 0, got {self.min_movement_pct}", field="min_movement_pct")
        if self.max_points < 2:
            raise InvalidInput(f"max_points must be >= 2, got {self.max_points}", field="max_points")

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "ResolverOptions":
        """Read the `resolver` section; unknown keys are ignored."""
        sec = cfg.get("resolver") or {}
        kw = {}
        for f in fields(cls):
            if sec.get(f.name) is None:
                continue
            try:
                kw[f.name] = int(sec[f.name]) if f.type in ("int", int) else float(sec[f.name])
            except (TypeError, ValueError):
                raise InvalidInput(f"resolver.{f.name} must be numeric, got {sec[f.name]!r}", field=f.name) from None
        return cls(**kw)
