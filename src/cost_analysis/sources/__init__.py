"""Cost data sources supplying raw rollups for a scope and period."""

from .base import CostDataSource, InMemoryCostSource
from .http import HttpCostSource

__all__ = ["CostDataSource", "HttpCostSource", "InMemoryCostSource"]
