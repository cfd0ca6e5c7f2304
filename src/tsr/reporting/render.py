from __future__ import annotations

from typing import TYPE_CHECKING, List

from tsr.scenario.types import ScenarioResult

if TYPE_CHECKING:
    from tsr.run.batch import BatchReport


def credit_description(cryptocurrency: str, result_percent: float) -> str:
    """Text attached to the balance credit when a bot completes."""
    if result_percent < 0:
        return f"Trading bot completed - {cryptocurrency} ({result_percent:.2f}% loss)"
    return f"Trading bot completed - {cryptocurrency} (+{result_percent:.2f}% profit)"


def _fmt_window(res: ScenarioResult) -> str:
    return f"[{res.window_start.isoformat()}..{res.window_end.isoformat()}]"


def _compact_scenario(res: ScenarioResult) -> List[str]:
    return [
        f"{res.trade_type} {res.mode.value} entry={res.entry_price:g} exit={res.exit_price:g} "
        f"lev={res.leverage}x move={res.natural_movement_pct:.3f}% result={res.result_percent:+.2f}% "
        f"pnl={res.profit_amount:+.2f} balance={res.final_balance:.2f} "
        f"points={res.points_considered} {_fmt_window(res)}"
        + (" fallback" if res.used_fallback else "")
    ]


def _pretty_scenario(res: ScenarioResult) -> List[str]:
    lines = [
        f"Scenario: {res.position_type} ({res.mode.value})",
        f"  buy:      {res.buy_price:g}",
        f"  sell:     {res.sell_price:g}",
        f"  leverage: {res.leverage}x",
        f"  movement: {res.natural_movement_pct:.3f}% (unleveraged)",
        f"  target:   {res.target_percent:.2f}%",
        f"  actual:   {res.result_percent:+.2f}%",
        f"  amount:   {res.principal:.2f} -> {res.final_balance:.2f} ({res.profit_amount:+.2f})",
        f"  window:   {_fmt_window(res)} points={res.points_considered}",
    ]
    if res.used_fallback:
        if res.overshoot_pct > 0:
            lines.append(f"  note: no match within tolerance, best available overshoots target by {res.overshoot_pct:.2f} pts")
        else:
            lines.append(f"  note: no match within tolerance, best available falls short by {-res.overshoot_pct:.2f} pts")
    return lines


def render_scenario(res: ScenarioResult, *, fmt: str = "compact") -> str:
    """Render one scenario.

    fmt:
      - compact: one line (default)
      - pretty : multi-line, target vs actual
    """
    fmt = (fmt or "compact").strip().lower()
    if fmt == "pretty":
        return "\n".join(_pretty_scenario(res))
    return "\n".join(_compact_scenario(res))


def render_batch(report: "BatchReport", *, fmt: str = "compact", max_jobs: int = 25) -> str:
    fmt = (fmt or "compact").strip().lower()
    lines: List[str] = [f"jobs={len(report.results)} ok={report.ok_count} failed={report.failed_count}"]
    for jr in report.results[:max_jobs]:
        if not jr.ok:
            lines.append(f"- {jr.bot_id} {jr.symbol} FAILED {jr.error_kind}: {jr.error}")
            continue
        if fmt == "pretty":
            lines.append(
                f"- {jr.bot_id} {jr.symbol} {jr.trade_type} {jr.leverage}x "
                f"target={jr.target_percent:.2f}% actual={jr.result_percent:+.2f}% "
                f"balance={jr.final_balance:.2f}" + (" (fallback)" if jr.used_fallback else "")
            )
        else:
            lines.append(f"- {jr.bot_id} {jr.result_percent:+.2f}% {jr.final_balance:.2f}")
    if len(report.results) > max_jobs:
        lines.append(f"... ({len(report.results) - max_jobs} more jobs truncated)")
    return "\n".join(lines)
