"""Hierarchical cost rollups with lazy per-node fetching."""

from .cache import CacheEntry, CacheState, HierarchicalRollupCache, HierarchyNode
from .session import CostReportSession

__all__ = [
    "CacheEntry",
    "CacheState",
    "CostReportSession",
    "HierarchicalRollupCache",
    "HierarchyNode",
]
