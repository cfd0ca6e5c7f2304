"""Completing a running bot: preview or commit.

plan_completion() resolves a scenario over the bot's price window and, for a
commit, builds the three payloads the persistence layer writes (trade row,
bot update, balance credit). Nothing here touches storage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from tsr.data.prices import PriceSeries, to_utc, utcnow
from tsr.logging import get_logger
from tsr.reporting.render import credit_description
from tsr.scenario.errors import InvalidInput
from tsr.scenario.options import ResolverOptions
from tsr.scenario.resolver import resolve
from tsr.scenario.types import Direction, Mode, ScenarioRequest, ScenarioResult

log = get_logger("tsr.completion")


@dataclass(frozen=True)
class CompletionSettings:
    target_min: float = 1.0
    target_max: float = 3.0

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "CompletionSettings":
        sec = cfg.get("completion") or {}
        return cls(
            target_min=float(sec.get("target_min", cls.target_min)),
            target_max=float(sec.get("target_max", cls.target_max)),
        )


@dataclass(frozen=True)
class BotSnapshot:
    bot_id: str
    user_id: str
    cryptocurrency: str
    symbol: str
    start_amount: float
    created_at: datetime
    status: str = "active"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BotSnapshot":
        """Build from a trading_bots row (id, user_id, cryptocurrency, symbol, start_amount, created_at, status)."""
        try:
            return cls(
                bot_id=str(row.get("id", row.get("bot_id"))),
                user_id=str(row["user_id"]),
                cryptocurrency=str(row.get("cryptocurrency") or row["symbol"]),
                symbol=str(row["symbol"]),
                start_amount=float(row["start_amount"]),
                created_at=to_utc(row["created_at"]),
                status=str(row.get("status", "active")),
            )
        except KeyError as e:
            raise InvalidInput(f"bot row missing {e.args[0]!r}", field=str(e.args[0])) from None
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"bad bot row: {e}", field="bot") from None


@dataclass(frozen=True)
class CompletionRequest:
    direction: Direction
    target_percent: float
    unlucky: bool = False
    preview: bool = False

    @property
    def mode(self) -> Mode:
        return Mode.from_unlucky(self.unlucky)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CompletionRequest":
        """Accept the admin payload keys (trade_type, target_profit_percent, is_unlucky, preview)."""
        direction = d.get("trade_type", d.get("direction"))
        target = d.get("target_profit_percent", d.get("target_percent"))
        if direction is None or target is None:
            raise InvalidInput("missing trade_type or target_profit_percent", field="request")
        try:
            target_f = float(target)
        except (TypeError, ValueError):
            raise InvalidInput(f"target_profit_percent must be a number, got {target!r}", field="target_percent") from None
        return cls(
            direction=Direction.parse(direction),
            target_percent=target_f,
            unlucky=d.get("is_unlucky", d.get("unlucky")) is True,
            preview=d.get("preview") is True,
        )


@dataclass
class CompletionPlan:
    bot_id: str
    preview: bool
    scenario: ScenarioResult
    trade_record: Optional[Dict[str, Any]] = None
    bot_update: Optional[Dict[str, Any]] = None
    balance_credit: Optional[Dict[str, Any]] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_id": self.bot_id,
            "preview": self.preview,
            "trade": self.scenario.to_dict(),
            "trade_record": self.trade_record,
            "bot_update": self.bot_update,
            "balance_credit": self.balance_credit,
        }


def _check_target(target: float, settings: CompletionSettings) -> None:
    if not math.isfinite(target) or not (settings.target_min <= target <= settings.target_max):
        raise InvalidInput(
            f"target_percent must be between {settings.target_min} and {settings.target_max}, got {target}",
            field="target_percent",
        )


def trade_record(bot: BotSnapshot, res: ScenarioResult, completed_at: datetime) -> Dict[str, Any]:
    return {
        "bot_id": bot.bot_id,
        "amount": bot.start_amount,
        "buy_price": res.buy_price,
        "sell_price": res.sell_price,
        "entry_price": res.entry_price,
        "exit_price": res.exit_price,
        "trade_type": res.trade_type,
        "leverage": res.leverage,
        "profit_amount": res.profit_amount,
        "profit_percentage": res.result_percent,
        "status": "completed",
        "started_at": bot.created_at.isoformat(),
        "completed_at": completed_at.isoformat(),
    }


def bot_update(res: ScenarioResult) -> Dict[str, Any]:
    return {
        "status": "completed",
        "current_balance": res.final_balance,
        "buy_price": res.buy_price,
        "sell_price": res.sell_price,
        "leverage": res.leverage,
        "position_type": res.position_type,
    }


def balance_credit(bot: BotSnapshot, res: ScenarioResult) -> Dict[str, Any]:
    # principal is returned together with the profit (or minus the loss)
    return {
        "user_id": bot.user_id,
        "amount": res.final_balance,
        "description": credit_description(bot.cryptocurrency, res.result_percent),
    }


def plan_completion(
    bot: BotSnapshot,
    series: PriceSeries,
    req: CompletionRequest,
    options: Optional[ResolverOptions] = None,
    settings: Optional[CompletionSettings] = None,
    now: Optional[datetime] = None,
) -> CompletionPlan:
    settings = settings or CompletionSettings()
    if bot.status != "active":
        raise InvalidInput(f"bot {bot.bot_id} is {bot.status!r}, only active bots can be completed", field="status")
    _check_target(req.target_percent, settings)

    # only prices observed while the bot was running
    try:
        window = series.since(bot.created_at)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"unreadable price timestamp: {e}", field="series") from None
    if len(window) < len(series):
        log.debug("dropped %d points before bot start", len(series) - len(window), extra={"bot_id": bot.bot_id})

    sreq = ScenarioRequest(
        direction=req.direction,
        mode=req.mode,
        target_percent=req.target_percent,
        principal=bot.start_amount,
    )
    res = resolve(window, sreq, options)

    plan = CompletionPlan(
        bot_id=bot.bot_id,
        preview=req.preview,
        scenario=res,
        meta={"symbol": bot.symbol, "points": res.points_considered},
    )
    if req.preview:
        log.info("preview %s %s %dx %.2f%%", bot.bot_id, res.trade_type, res.leverage, res.result_percent)
        return plan

    completed_at = now or utcnow()
    plan.trade_record = trade_record(bot, res, completed_at)
    plan.bot_update = bot_update(res)
    plan.balance_credit = balance_credit(bot, res)
    log.info(
        "commit %s %s %dx %.2f%% balance=%.2f",
        bot.bot_id, res.trade_type, res.leverage, res.result_percent, res.final_balance,
        extra={"bot_id": bot.bot_id, "fallback": res.used_fallback},
    )
    return plan
