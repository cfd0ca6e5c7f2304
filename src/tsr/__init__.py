"""Trade-scenario resolver.

Public surface:
  - resolve(series, request, options) -> ScenarioResult
  - settle(result_percent, principal) -> Settlement
"""

from __future__ import annotations

from tsr.data.prices import PricePoint, PriceSeries
from tsr.scenario.errors import InvalidInput, NotResolvable, ScenarioError
from tsr.scenario.options import ResolverOptions
from tsr.scenario.resolver import resolve
from tsr.scenario.types import Direction, Mode, ScenarioRequest, ScenarioResult
from tsr.settlement.settle import Settlement, settle

__version__ = "0.3.0"

__all__ = [
    "Direction",
    "InvalidInput",
    "Mode",
    "NotResolvable",
    "PricePoint",
    "PriceSeries",
    "ResolverOptions",
    "ScenarioError",
    "ScenarioRequest",
    "ScenarioResult",
    "Settlement",
    "resolve",
    "settle",
]
