"""Scenario search.

Given a validated price list and a request, pick the (entry, exit, leverage)
triple whose leveraged movement best matches the target:

  1. enumerate pairs i < j accepted by the rule, drop moves below the floor
  2. sweep leverage 1..max_leverage, keep hits inside target +- tolerance
  3. pick the closest hit, ties to the lower leverage
  4. otherwise fall back to the largest move with ceil(target / move) leverage

Pure function of its inputs; nothing is cached between calls.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional, Sequence, Tuple

from tsr.logging import get_logger
from tsr.scenario.errors import NotResolvable
from tsr.scenario.options import ResolverOptions
from tsr.scenario.rules import PairRule

log = get_logger("tsr.search")

Pair = Tuple[int, int, float]  # (entry_idx, exit_idx, natural movement pct)


def valid_pairs(prices: Sequence[float], rule: PairRule, min_movement_pct: float) -> Iterator[Pair]:
    """Yield rule-consistent pairs in index order, skipping moves below the floor."""
    n = len(prices)
    for i in range(n - 1):
        entry = prices[i]
        for j in range(i + 1, n):
            exit_ = prices[j]
            if not rule.pair_ok(entry, exit_):
                continue
            move = rule.movement(entry, exit_)
            if move < min_movement_pct:
                continue
            yield i, j, move


def sweep_leverage(pairs: Sequence[Pair], target: float, opts: ResolverOptions) -> List[Tuple[float, int, Pair]]:
    """Return (diff, leverage, pair) for every hit inside the tolerance window."""
    lo = target - opts.tolerance_pct
    hi = target + opts.tolerance_pct
    hits: List[Tuple[float, int, Pair]] = []
    for pair in pairs:
        move = pair[2]
        for lev in range(1, int(opts.max_leverage) + 1):
            mag = move * lev
            if mag > hi:
                break
            if mag >= lo:
                hits.append((abs(mag - target), lev, pair))
    return hits


def select(hits: List[Tuple[float, int, Pair]]) -> Optional[Tuple[float, int, Pair]]:
    if not hits:
        return None
    # stable sort keeps index order among equal (diff, leverage)
    return sorted(hits, key=lambda h: (h[0], h[1]))[0]


def largest_move(pairs: Sequence[Pair]) -> Optional[Pair]:
    best: Optional[Pair] = None
    for pair in pairs:
        if best is None or pair[2] > best[2]:
            best = pair
    return best


def search(prices: Sequence[float], rule: PairRule, target: float, opts: ResolverOptions) -> Tuple[Pair, int, bool]:
    """Return (pair, leverage, used_fallback) or raise NotResolvable."""
    pairs = list(valid_pairs(prices, rule, opts.min_movement_pct))
    hits = sweep_leverage(pairs, target, opts)
    log.debug(
        "search candidates",
        extra={"direction": rule.direction.value, "mode": rule.mode.value, "points": len(prices),
               "pairs": len(pairs), "hits": len(hits), "target": target},
    )

    best = select(hits)
    if best is not None:
        _, lev, pair = best
        return pair, lev, False

    pair = largest_move(pairs)
    if pair is None:
        log.debug("search unresolvable", extra={"direction": rule.direction.value, "mode": rule.mode.value})
        raise NotResolvable(rule.direction.value, rule.mode.value)

    lev = min(int(opts.max_leverage), max(1, math.ceil(target / pair[2])))
    log.debug(
        "search fallback",
        extra={"entry_idx": pair[0], "exit_idx": pair[1], "movement": pair[2], "leverage": lev,
               "result": pair[2] * lev, "target": target},
    )
    return pair, lev, True
