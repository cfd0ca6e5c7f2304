from datetime import timedelta

import pytest

from tsr import (
    Direction,
    InvalidInput,
    Mode,
    PricePoint,
    PriceSeries,
    ResolverOptions,
    ScenarioRequest,
    resolve,
)


def req(target=2.0, principal=1000.0):
    return ScenarioRequest(Direction.LONG, Mode.PROFIT, target, principal)


def test_series_too_short(make_series):
    with pytest.raises(InvalidInput) as ei:
        resolve(make_series([100]), req())
    assert ei.value.field == "series"
    with pytest.raises(InvalidInput):
        resolve(make_series([]), req())


def test_series_too_long(make_series):
    with pytest.raises(InvalidInput, match="limit"):
        resolve(make_series([100, 101, 102]), req(), ResolverOptions(max_points=2))


def test_descending_timestamps(make_series):
    s = make_series([100, 101, 102])
    swapped = PriceSeries([s[1], s[0], s[2]])
    with pytest.raises(InvalidInput, match="not ascending"):
        resolve(swapped, req())


def test_equal_timestamps_are_accepted(make_series):
    s = make_series([100, 101])
    same = PriceSeries([s[0], PricePoint(ts=s[0].ts, price=102.0)])
    assert resolve(same, req()).exit_price == 102.0


@pytest.mark.parametrize("bad", [0.0, -1.0, float("nan"), float("inf")])
def test_bad_prices(make_series, bad):
    with pytest.raises(InvalidInput, match=r"series\[1\]\.price"):
        resolve(make_series([100, bad, 103]), req())


@pytest.mark.parametrize("target", [0.0, -2.0, float("nan"), float("inf")])
def test_bad_target(make_series, target):
    with pytest.raises(InvalidInput) as ei:
        resolve(make_series([100, 102]), req(target=target))
    assert ei.value.field == "target_percent"


@pytest.mark.parametrize("principal", [0.0, -10.0, float("nan")])
def test_bad_principal(make_series, principal):
    with pytest.raises(InvalidInput) as ei:
        resolve(make_series([100, 102]), req(principal=principal))
    assert ei.value.field == "principal"


def test_target_above_preview_range_is_still_searched(make_series):
    res = resolve(make_series([100, 150]), req(target=50.0))
    assert res.leverage == 1
    assert res.result_percent == pytest.approx(50.0)


def test_request_build_parses_strings():
    r = ScenarioRequest.build("SHORT", "Loss", "1.5", "250")
    assert r == ScenarioRequest(Direction.SHORT, Mode.LOSS, 1.5, 250.0)


@pytest.mark.parametrize(
    "args,field",
    [
        (("sideways", "profit", 2, 100), "direction"),
        (("long", "breakeven", 2, 100), "mode"),
        (("long", "profit", "lots", 100), "target_percent"),
        (("long", "profit", 2, None), "principal"),
    ],
)
def test_request_build_rejects(args, field):
    with pytest.raises(InvalidInput) as ei:
        ScenarioRequest.build(*args)
    assert ei.value.field == field


def test_mode_from_unlucky():
    assert Mode.from_unlucky(True) is Mode.LOSS
    assert Mode.from_unlucky(False) is Mode.PROFIT


@pytest.mark.parametrize(
    "kw",
    [{"tolerance_pct": -0.1}, {"max_leverage": 0}, {"max_leverage": 2.5}, {"min_movement_pct": 0}, {"max_points": 1}],
)
def test_bad_options(kw):
    with pytest.raises(InvalidInput):
        ResolverOptions(**kw)


def test_invalid_input_is_a_value_error(make_series):
    with pytest.raises(ValueError):
        resolve(make_series([100]), req())


def test_window_reflects_timestamps(make_series):
    s = make_series([100, 99, 102], step_minutes=30)
    res = resolve(s, req())
    assert res.window_end - res.window_start == timedelta(minutes=60)


@pytest.mark.parametrize("direction,mode", [("long", "loss"), ("LONG", "LOSS"), (" Short ", "Profit")])
def test_plain_string_fields_are_normalized(make_series, direction, mode):
    r = ScenarioRequest(direction, mode, 2.0, 1000.0)
    assert isinstance(r.direction, Direction)
    assert isinstance(r.mode, Mode)
    res = resolve(make_series([100, 102, 98, 101, 97, 103]), r)
    assert res.direction is Direction.parse(direction)
    assert (res.result_percent < 0) == (r.mode is Mode.LOSS)


def test_unknown_string_field_is_invalid_input():
    with pytest.raises(InvalidInput) as ei:
        ScenarioRequest("long", "breakeven", 2.0, 1000.0)
    assert ei.value.field == "mode"


def test_numeric_strings_are_coerced(make_series):
    s = make_series([100, 101])
    strs = PriceSeries([PricePoint(ts=s[0].ts, price="100"), PricePoint(ts=s[1].ts, price="102")])
    res = resolve(strs, ScenarioRequest("long", "profit", "2", "1000"))
    assert (res.entry_price, res.exit_price, res.leverage) == (100.0, 102.0, 1)
    assert res.final_balance == pytest.approx(1020.0)


def test_naive_timestamps_count_as_utc(make_series):
    s = make_series([100, 101, 102])
    mixed = PriceSeries([
        PricePoint(ts=s[0].ts.replace(tzinfo=None), price=100.0),
        s[1],
        PricePoint(ts=s[2].ts.replace(tzinfo=None), price=102.0),
    ])
    res = resolve(mixed, req())
    assert res.window_start == s[0].ts
    assert res.window_end.utcoffset() == timedelta(0)


def test_mixed_naive_aware_out_of_order(make_series):
    s = make_series([100, 101])
    mixed = PriceSeries([s[1], PricePoint(ts=s[0].ts.replace(tzinfo=None), price=100.0)])
    with pytest.raises(InvalidInput, match="not ascending"):
        resolve(mixed, req())


def test_unreadable_timestamp(make_series):
    s = make_series([100, 101])
    bad = PriceSeries([s[0], PricePoint(ts="not a time", price=101.0)])
    with pytest.raises(InvalidInput) as ei:
        resolve(bad, req())
    assert ei.value.field == "series"
