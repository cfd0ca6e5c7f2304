"""Batch completion of due bots.

Each job is planned on its own; a job that fails with InvalidInput or
NotResolvable is recorded in its JobResult and the batch carries on.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from tsr.completion.plan import BotSnapshot, CompletionPlan, CompletionRequest, CompletionSettings, plan_completion
from tsr.data.prices import PriceSeries
from tsr.logging import get_logger
from tsr.scenario.errors import InvalidInput, NotResolvable
from tsr.scenario.options import ResolverOptions

log = get_logger("tsr.batch")


@dataclass(frozen=True)
class BotJob:
    bot: BotSnapshot
    series: PriceSeries
    request: CompletionRequest

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "BotJob":
        """{"bot": {...trading_bots row...}, "prices": [{timestamp, price}, ...], "request": {...}}"""
        if not isinstance(d, Mapping):
            raise InvalidInput(f"job must be an object, got {type(d).__name__}", field="job")
        try:
            bot_row = d["bot"]
            rows = d["prices"]
        except KeyError as e:
            raise InvalidInput(f"job missing {e.args[0]!r}", field=str(e.args[0])) from None
        try:
            series = PriceSeries.from_records(rows)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInput(f"bad price rows: {e}", field="prices") from None
        request = d.get("request") or {}
        if not isinstance(bot_row, Mapping) or not isinstance(request, Mapping):
            raise InvalidInput("job bot and request must be objects", field="job")
        return cls(
            bot=BotSnapshot.from_row(bot_row),
            series=series,
            request=CompletionRequest.from_dict(request),
        )


@dataclass
class JobResult:
    bot_id: str
    symbol: str
    ok: bool
    error_kind: str = ""
    error: str = ""

    preview: bool = False
    trade_type: str = ""
    mode: str = ""
    target_percent: float = 0.0
    entry_price: float = 0.0
    exit_price: float = 0.0
    leverage: int = 0
    natural_movement_pct: float = 0.0
    result_percent: float = 0.0
    profit_amount: float = 0.0
    final_balance: float = 0.0
    points: int = 0
    used_fallback: bool = False

    @classmethod
    def from_plan(cls, plan: CompletionPlan, symbol: str) -> "JobResult":
        s = plan.scenario
        return cls(
            bot_id=plan.bot_id,
            symbol=symbol,
            ok=True,
            preview=plan.preview,
            trade_type=s.trade_type,
            mode=s.mode.value,
            target_percent=s.target_percent,
            entry_price=s.entry_price,
            exit_price=s.exit_price,
            leverage=s.leverage,
            natural_movement_pct=s.natural_movement_pct,
            result_percent=s.result_percent,
            profit_amount=s.profit_amount,
            final_balance=s.final_balance,
            points=s.points_considered,
            used_fallback=s.used_fallback,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BatchReport:
    results: List[JobResult] = field(default_factory=list)
    plans: List[CompletionPlan] = field(default_factory=list)

    @property
    def ok_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.ok_count

    def to_frame(self) -> pd.DataFrame:
        cols = list(JobResult.__dataclass_fields__)
        return pd.DataFrame([r.to_dict() for r in self.results], columns=cols)

    def export_csv(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(path, index=False)

    def export_json(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in self.results], f, ensure_ascii=False, indent=2)


def _job_ids(raw: Any) -> Tuple[str, str]:
    bot = raw.get("bot") if isinstance(raw, Mapping) else None
    if not isinstance(bot, Mapping):
        return "", ""
    return str(bot.get("id", bot.get("bot_id", ""))), str(bot.get("symbol", ""))


def run_batch(
    jobs: Sequence[Union[BotJob, Mapping[str, Any]]],
    options: Optional[ResolverOptions] = None,
    settings: Optional[CompletionSettings] = None,
    *,
    preview: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> BatchReport:
    """Plan every job; `preview` overrides each job's own preview flag when given.

    Raw job dicts are parsed here, one at a time, so a malformed job is
    recorded like any other failure.
    """
    report = BatchReport()
    log.debug("batch start", extra={"jobs": len(jobs), "preview": preview})
    for n, raw in enumerate(jobs):
        if isinstance(raw, BotJob):
            bot_id, symbol = raw.bot.bot_id, raw.bot.symbol
        else:
            bot_id, symbol = _job_ids(raw)
        try:
            job = raw if isinstance(raw, BotJob) else BotJob.from_dict(raw)
            req = job.request
            if preview is not None and preview != req.preview:
                req = CompletionRequest(req.direction, req.target_percent, req.unlucky, preview)
            plan = plan_completion(job.bot, job.series, req, options, settings, now=now)
        except InvalidInput as e:
            log.warning("job %d (%s) invalid input: %s", n, bot_id or "?", e, extra={"field": e.field})
            report.results.append(JobResult(bot_id, symbol, False, "invalid_input", str(e)))
            continue
        except NotResolvable as e:
            log.warning("job %d (%s) not resolvable: %s", n, bot_id, e)
            report.results.append(JobResult(bot_id, symbol, False, "not_resolvable", str(e)))
            continue
        report.plans.append(plan)
        report.results.append(JobResult.from_plan(plan, symbol))
    log.info("batch done: %d ok, %d failed", report.ok_count, report.failed_count)
    return report


def load_jobs(path: str) -> List[Mapping[str, Any]]:
    """Read raw job dicts; they are parsed per job by run_batch."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("jobs", [])
    if not isinstance(raw, list):
        raise InvalidInput(f"{path}: expected a list of jobs", field="jobs")
    return raw
