"""Value types shared by search and settlement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from tsr.scenario.errors import InvalidInput


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInput(f"unknown direction {value!r} (expected long|short)", field="direction") from None


class Mode(str, Enum):
    PROFIT = "profit"
    LOSS = "loss"

    @classmethod
    def parse(cls, value: Any) -> "Mode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInput(f"unknown mode {value!r} (expected profit|loss)", field="mode") from None

    @classmethod
    def from_unlucky(cls, unlucky: bool) -> "Mode":
        return cls.LOSS if unlucky else cls.PROFIT

    @property
    def sign(self) -> int:
        return -1 if self is Mode.LOSS else 1


@dataclass(frozen=True)
class ScenarioRequest:
    direction: Direction
    mode: Mode
    target_percent: float
    principal: float

    def __post_init__(self) -> None:
        # plain strings ("LONG", "loss") are accepted and stored as enum members
        object.__setattr__(self, "direction", Direction.parse(self.direction))
        object.__setattr__(self, "mode", Mode.parse(self.mode))

    @classmethod
    def build(cls, direction: Any, mode: Any, target_percent: Any, principal: Any) -> "ScenarioRequest":
        """Parse loosely typed inputs (CLI, JSON) into a request; range checks happen in validation."""
        try:
            target = float(target_percent)
            amount = float(principal)
        except (TypeError, ValueError):
            raise InvalidInput(
                f"target_percent and principal must be numbers, got {target_percent!r}, {principal!r}",
                field="target_percent" if not _is_number(target_percent) else "principal",
            ) from None
        return cls(direction, mode, target, amount)


def _is_number(v: Any) -> bool:
    try:
        float(v)
    except (TypeError, ValueError):
        return False
    return True


@dataclass(frozen=True)
class Candidate:
    """One (pair, leverage) choice; entry_idx < exit_idx always."""

    entry_idx: int
    exit_idx: int
    entry_price: float
    exit_price: float
    leverage: int
    natural_movement_pct: float
    result_magnitude: float  # natural_movement_pct * leverage, unsigned
    fallback: bool = False


@dataclass(frozen=True)
class ScenarioResult:
    direction: Direction
    mode: Mode
    target_percent: float
    entry_price: float
    exit_price: float
    leverage: int
    natural_movement_pct: float
    result_percent: float  # signed; negative iff loss
    principal: float
    profit_amount: float
    final_balance: float
    window_start: datetime
    window_end: datetime
    points_considered: int
    used_fallback: bool = False

    @property
    def trade_type(self) -> str:
        return self.direction.value

    @property
    def position_type(self) -> str:
        return self.direction.value.upper()

    @property
    def buy_price(self) -> float:
        # short sells at entry and buys back at exit
        return self.entry_price if self.direction is Direction.LONG else self.exit_price

    @property
    def sell_price(self) -> float:
        return self.exit_price if self.direction is Direction.LONG else self.entry_price

    @property
    def is_loss(self) -> bool:
        return self.result_percent < 0

    @property
    def overshoot_pct(self) -> float:
        return abs(self.result_percent) - self.target_percent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "mode": self.mode.value,
            "target_percent": self.target_percent,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "leverage": self.leverage,
            "natural_movement_percent": self.natural_movement_pct,
            "result_percent": self.result_percent,
            "principal": self.principal,
            "profit_amount": self.profit_amount,
            "final_balance": self.final_balance,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "points_considered": self.points_considered,
            "used_fallback": self.used_fallback,
        }
