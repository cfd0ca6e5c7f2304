import logging
from datetime import datetime, timedelta, timezone

import pytest

from tsr.data.prices import PricePoint, PriceSeries

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _series(prices, step_minutes=5, start=T0):
    return PriceSeries(
        PricePoint(ts=start + timedelta(minutes=step_minutes * i), price=float(p))
        for i, p in enumerate(prices)
    )


@pytest.fixture
def make_series():
    return _series


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
