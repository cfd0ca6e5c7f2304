from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, List

from tsr.data.prices import PricePoint, PriceSeries, ensure_utc
from tsr.scenario.errors import InvalidInput
from tsr.scenario.options import ResolverOptions
from tsr.scenario.types import ScenarioRequest


def _positive_finite(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number, got {value!r}", field=name)
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} must be a number, got {value!r}", field=name) from None
    if not math.isfinite(x):
        raise InvalidInput(f"{name} must be finite, got {value!r}", field=name)
    if x <= 0:
        raise InvalidInput(f"{name} must be > 0, got {value!r}", field=name)
    return x


def validate_request(req: ScenarioRequest) -> ScenarioRequest:
    """Check target and principal; return the request with both as floats."""
    return replace(
        req,
        target_percent=_positive_finite(req.target_percent, "target_percent"),
        principal=_positive_finite(req.principal, "principal"),
    )


def validate_series(series: PriceSeries, opts: ResolverOptions) -> PriceSeries:
    """Check the series and return it with float prices and aware UTC timestamps."""
    n = len(series)
    if n < 2:
        raise InvalidInput(f"price series needs at least 2 points, got {n}", field="series")
    if n > opts.max_points:
        raise InvalidInput(f"price series has {n} points, limit is {opts.max_points}", field="series")

    points: List[PricePoint] = []
    prev = None
    for i, pt in enumerate(series):
        price = _positive_finite(pt.price, f"series[{i}].price")
        if pt.ts is None:
            raise InvalidInput(f"series[{i}] has no timestamp", field="series")
        try:
            ts = ensure_utc(pt.ts)
        except (TypeError, ValueError):
            raise InvalidInput(f"series[{i}] has an unreadable timestamp {pt.ts!r}", field="series") from None
        if prev is not None and ts < prev:
            raise InvalidInput(
                f"price series not ascending at index {i}: {ts.isoformat()} < {prev.isoformat()}",
                field="series",
            )
        points.append(PricePoint(ts=ts, price=price))
        prev = ts
    return PriceSeries(points)
