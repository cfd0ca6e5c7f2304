"""Settlement arithmetic.

profit_amount = principal * result_percent / 100
final_balance = principal + profit_amount

Preview and commit both go through settle(), so a preview always predicts
the committed numbers exactly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from tsr.data.prices import PriceSeries
from tsr.scenario.errors import InvalidInput
from tsr.scenario.types import Candidate, ScenarioRequest, ScenarioResult


@dataclass(frozen=True)
class Settlement:
    profit_amount: float
    final_balance: float


def settle(result_percent: float, principal: float) -> Settlement:
    profit = principal * result_percent / 100
    final = principal + profit
    if not (math.isfinite(profit) and math.isfinite(final)):
        raise InvalidInput(
            f"settlement overflow: principal={principal!r} result_percent={result_percent!r}",
            field="principal",
        )
    return Settlement(profit_amount=profit, final_balance=final)


def build_result(series: PriceSeries, req: ScenarioRequest, cand: Candidate) -> ScenarioResult:
    """Sign the candidate by mode, settle it against the principal and attach the price window."""
    result_pct = req.mode.sign * cand.result_magnitude
    st = settle(result_pct, req.principal)
    return ScenarioResult(
        direction=req.direction,
        mode=req.mode,
        target_percent=req.target_percent,
        entry_price=cand.entry_price,
        exit_price=cand.exit_price,
        leverage=cand.leverage,
        natural_movement_pct=cand.natural_movement_pct,
        result_percent=result_pct,
        principal=req.principal,
        profit_amount=st.profit_amount,
        final_balance=st.final_balance,
        window_start=series.start_time,
        window_end=series.end_time,
        points_considered=len(series),
        used_fallback=cand.fallback,
    )
