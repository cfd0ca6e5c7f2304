from __future__ import annotations

from typing import Optional

from tsr.data.prices import PriceSeries
from tsr.logging import get_logger
from tsr.scenario.options import ResolverOptions
from tsr.scenario.rules import rule_for
from tsr.scenario.search import search
from tsr.scenario.types import Candidate, ScenarioRequest, ScenarioResult
from tsr.scenario.validation import validate_request, validate_series
from tsr.settlement.settle import build_result

log = get_logger("tsr.resolver")


def _search(series: PriceSeries, req: ScenarioRequest, opts: ResolverOptions) -> Candidate:
    prices = series.prices
    rule = rule_for(req.direction, req.mode)
    (i, j, move), lev, fallback = search(prices, rule, req.target_percent, opts)
    return Candidate(
        entry_idx=i,
        exit_idx=j,
        entry_price=prices[i],
        exit_price=prices[j],
        leverage=lev,
        natural_movement_pct=move,
        result_magnitude=move * lev,
        fallback=fallback,
    )


def find_candidate(series: PriceSeries, req: ScenarioRequest, opts: Optional[ResolverOptions] = None) -> Candidate:
    """Validate, search and return the chosen candidate (unsigned, unsettled)."""
    opts = opts or ResolverOptions()
    req = validate_request(req)
    return _search(validate_series(series, opts), req, opts)


def resolve(series: PriceSeries, req: ScenarioRequest, opts: Optional[ResolverOptions] = None) -> ScenarioResult:
    """Resolve one scenario.

    Raises InvalidInput for a malformed series or request and NotResolvable
    when no pair in the window moves the way direction and mode require.
    """
    opts = opts or ResolverOptions()
    req = validate_request(req)
    series = validate_series(series, opts)
    res = build_result(series, req, _search(series, req, opts))
    log.debug(
        "resolved",
        extra={"direction": res.direction.value, "mode": res.mode.value, "entry": res.entry_price,
               "exit": res.exit_price, "leverage": res.leverage, "result_pct": res.result_percent,
               "fallback": res.used_fallback},
    )
    return res
