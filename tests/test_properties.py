import math
import random

import pytest

from tsr import Direction, Mode, NotResolvable, ResolverOptions, ScenarioRequest, resolve
from tsr.scenario.resolver import find_candidate

COMBOS = [(d, m) for d in Direction for m in Mode]


def _oracle(prices, direction, mode, target, tol=0.5, max_lev=100, floor=0.01):
    """Brute force straight from the pair table."""

    def ok_and_move(a, b):
        if direction is Direction.LONG and mode is Mode.PROFIT:
            return b > a, (b - a) / a * 100
        if direction is Direction.LONG and mode is Mode.LOSS:
            return b < a, (a - b) / a * 100
        if direction is Direction.SHORT and mode is Mode.PROFIT:
            return a > b, (a - b) / a * 100
        return a < b, (b - a) / a * 100

    pairs = []
    for i in range(len(prices)):
        for j in range(i + 1, len(prices)):
            ok, mv = ok_and_move(prices[i], prices[j])
            if ok and mv >= floor:
                pairs.append((i, j, mv))
    hits = []
    for i, j, mv in pairs:
        for lev in range(1, max_lev + 1):
            mag = mv * lev
            if target - tol <= mag <= target + tol:
                hits.append((abs(mag - target), lev, i, j))
    if hits:
        hits.sort(key=lambda h: (h[0], h[1]))
        _, lev, i, j = hits[0]
        return i, j, lev, False
    if not pairs:
        return None
    i, j, mv = max(pairs, key=lambda p: p[2])  # max() keeps the first maximum
    return i, j, min(max_lev, math.ceil(target / mv)), True


def _random_walk(rng, n):
    px = rng.uniform(0.5, 50_000)
    out = [px]
    for _ in range(n - 1):
        px *= 1 + rng.gauss(0, 0.004)
        if rng.random() < 0.1:
            px = out[-1]  # flat step
        out.append(round(px, 6))
    return out


def _cases(seed=7, count=120):
    rng = random.Random(seed)
    for _ in range(count):
        n = rng.randint(2, 40)
        d, m = rng.choice(COMBOS)
        yield _random_walk(rng, n), d, m, round(rng.uniform(0.2, 12.0), 3), round(rng.uniform(10, 50_000), 2)


@pytest.mark.parametrize("prices,direction,mode,target,principal", list(_cases()))
def test_invariants_hold(make_series, prices, direction, mode, target, principal):
    s = make_series(prices)
    r = ScenarioRequest(direction, mode, target, principal)
    expected = _oracle(prices, direction, mode, target)
    if expected is None:
        with pytest.raises(NotResolvable):
            resolve(s, r)
        return

    res = resolve(s, r)
    cand = find_candidate(s, r)
    assert (cand.entry_idx, cand.exit_idx, cand.leverage, cand.fallback) == expected

    assert isinstance(res.leverage, int)
    assert 1 <= res.leverage <= 100
    assert res.natural_movement_pct >= 0.01
    if mode is Mode.PROFIT:
        assert res.result_percent >= 0
    else:
        assert res.result_percent <= 0
    assert res.profit_amount == pytest.approx(principal * res.result_percent / 100)
    assert res.final_balance == pytest.approx(principal + res.profit_amount)
    assert res.entry_price == prices[cand.entry_idx]
    assert res.exit_price == prices[cand.exit_idx]
    assert resolve(s, r) == res


def test_oracle_agrees_under_custom_options(make_series):
    rng = random.Random(11)
    opts = ResolverOptions(tolerance_pct=0.1, max_leverage=20, min_movement_pct=0.05)
    for _ in range(40):
        prices = _random_walk(rng, rng.randint(2, 25))
        d, m = rng.choice(COMBOS)
        target = round(rng.uniform(0.5, 6.0), 2)
        expected = _oracle(prices, d, m, target, tol=0.1, max_lev=20, floor=0.05)
        r = ScenarioRequest(d, m, target, 100.0)
        if expected is None:
            with pytest.raises(NotResolvable):
                find_candidate(make_series(prices), r, opts)
            continue
        cand = find_candidate(make_series(prices), r, opts)
        assert (cand.entry_idx, cand.exit_idx, cand.leverage, cand.fallback) == expected
