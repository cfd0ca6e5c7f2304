"""Per (direction, mode) pair rules.

Each rule answers two questions about a chronologically ordered pair
(first, later): does the pair move the way this scenario needs, and by how
much (unleveraged percent). Only the loop around the rules is shared;
the four formulas are written out one by one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from tsr.scenario.types import Direction, Mode


@dataclass(frozen=True)
class PairRule:
    direction: Direction
    mode: Mode
    pair_ok: Callable[[float, float], bool]
    movement: Callable[[float, float], float]

    @property
    def sign(self) -> int:
        return self.mode.sign


def _long_profit_ok(entry: float, exit_: float) -> bool:
    return exit_ > entry


def _long_profit_move(entry: float, exit_: float) -> float:
    return (exit_ - entry) / entry * 100


def _long_loss_ok(entry: float, exit_: float) -> bool:
    return exit_ < entry


def _long_loss_move(entry: float, exit_: float) -> float:
    return (entry - exit_) / entry * 100


def _short_profit_ok(entry: float, exit_: float) -> bool:
    return entry > exit_


def _short_profit_move(entry: float, exit_: float) -> float:
    return (entry - exit_) / entry * 100


def _short_loss_ok(entry: float, exit_: float) -> bool:
    return entry < exit_


def _short_loss_move(entry: float, exit_: float) -> float:
    return (exit_ - entry) / entry * 100


_RULES: Dict[Tuple[Direction, Mode], PairRule] = {
    (Direction.LONG, Mode.PROFIT): PairRule(Direction.LONG, Mode.PROFIT, _long_profit_ok, _long_profit_move),
    (Direction.LONG, Mode.LOSS): PairRule(Direction.LONG, Mode.LOSS, _long_loss_ok, _long_loss_move),
    (Direction.SHORT, Mode.PROFIT): PairRule(Direction.SHORT, Mode.PROFIT, _short_profit_ok, _short_profit_move),
    (Direction.SHORT, Mode.LOSS): PairRule(Direction.SHORT, Mode.LOSS, _short_loss_ok, _short_loss_move),
}


def rule_for(direction: Direction, mode: Mode) -> PairRule:
    return _RULES[(Direction(direction), Mode(mode))]
