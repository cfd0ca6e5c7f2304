"""Observed price history (read-only input of the resolver).

A PriceSeries is an ordered list of PricePoint with a lazily built pandas
view, the same shape as a bar series but with a single price column.

Loaders never sort. Ordering is checked by the resolver's validation so a
mis-ordered feed is reported instead of silently repaired.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, overload

import pandas as pd

_TS_KEYS = ("timestamp", "ts", "time")
_PX_KEYS = ("price", "close", "p")


@dataclass(frozen=True)
class PricePoint:
    ts: datetime  # tz-aware, UTC
    price: float


def to_utc(value: Any) -> datetime:
    """Normalize ISO strings, datetimes, pandas timestamps and epoch ms to aware UTC datetimes."""
    if isinstance(value, bool):
        raise TypeError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(float(value)):
            raise ValueError(f"Unsupported timestamp value: {value!r}")
        ts = pd.to_datetime(int(value), unit="ms", utc=True)
    else:
        ts = pd.to_datetime(value, utc=True)
    if ts is None or ts is pd.NaT:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    return ts.to_pydatetime()


def ensure_utc(value: Any) -> datetime:
    """Like to_utc, but aware datetimes pass through unchanged and naive ones are read as UTC."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return to_utc(value)


def _pick(row: Mapping[str, Any], keys: Sequence[str], what: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    raise KeyError(f"Price row missing {what} (expected one of {', '.join(keys)}): {sorted(row)}")


class PriceSeries:
    def __init__(self, points: Iterable[PricePoint]):
        self.points: List[PricePoint] = list(points)
        self._df: Optional[pd.DataFrame] = None

    @staticmethod
    def from_records(rows: Iterable[Mapping[str, Any]]) -> "PriceSeries":
        """Build from price-history rows; extra columns (symbol, volume, ...) are ignored."""
        pts = []
        for row in rows:
            ts = to_utc(_pick(row, _TS_KEYS, "timestamp"))
            px = float(_pick(row, _PX_KEYS, "price"))
            pts.append(PricePoint(ts=ts, price=px))
        return PriceSeries(pts)

    @staticmethod
    def from_pairs(pairs: Iterable[tuple]) -> "PriceSeries":
        return PriceSeries(PricePoint(ts=to_utc(t), price=float(p)) for t, p in pairs)

    @staticmethod
    def from_df(df: pd.DataFrame) -> "PriceSeries":
        """Accept either a DatetimeIndex with a price column, or timestamp/price columns."""
        cols = {str(c).lower(): c for c in df.columns}
        px_col = next((cols[k] for k in _PX_KEYS if k in cols), None)
        if px_col is None:
            raise KeyError(f"DataFrame has no price column (expected one of {', '.join(_PX_KEYS)})")
        ts_col = next((cols[k] for k in _TS_KEYS if k in cols), None)
        if ts_col is not None:
            stamps = df[ts_col].tolist()
        elif isinstance(df.index, pd.DatetimeIndex):
            stamps = list(df.index)
        else:
            raise KeyError("DataFrame has neither a timestamp column nor a DatetimeIndex")
        return PriceSeries.from_pairs(zip(stamps, df[px_col].tolist()))

    @staticmethod
    def from_file(path: str) -> "PriceSeries":
        p = path.lower()
        if p.endswith(".csv"):
            df = pd.read_csv(path)
        elif p.endswith(".json"):
            df = pd.read_json(path, orient="records", convert_dates=False)
        else:
            raise RuntimeError(f"Unsupported price file format for {path} (use .csv or .json)")
        return PriceSeries.from_df(df)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self.points)

    @overload
    def __getitem__(self, i: int) -> PricePoint: ...

    @overload
    def __getitem__(self, i: slice) -> List[PricePoint]: ...

    def __getitem__(self, i):
        return self.points[i]

    @property
    def prices(self) -> List[float]:
        return [p.price for p in self.points]

    @property
    def df(self) -> pd.DataFrame:
        if self._df is None:
            idx = pd.DatetimeIndex([p.ts for p in self.points], name="ts")
            if idx.tz is None:
                idx = idx.tz_localize("UTC")
            self._df = pd.DataFrame({"price": self.prices}, index=idx)
        return self._df

    def to_df(self) -> pd.DataFrame:
        return self.df.copy()

    def since(self, start: Any) -> "PriceSeries":
        """Points at or after `start`, order kept. Raises TypeError/ValueError on unreadable timestamps."""
        start = ensure_utc(start)
        return PriceSeries(p for p in self.points if ensure_utc(p.ts) >= start)

    @property
    def start_time(self) -> Optional[datetime]:
        return self.points[0].ts if self.points else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.points[-1].ts if self.points else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
