"""
Hierarchical rollup cache for team/project drill-down.

Each node (a team or a project) keeps its expanded flag and one cache cell
per period. A cell is Pending, Ok or Error. The cell is marked Pending
before the fetch is issued, so rapid toggles never start a second fetch
for the same (node, period). Every issued fetch is tagged with a sequence
number per key; only the latest issued fetch may write its result.

All methods must be called from the event loop thread. toggle() and
refresh() schedule fetches as tasks on the running loop.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import FetchError
from ..models import DEFAULT_PERIOD, CostResponse, Period, Scope, ScopeKind
from ..sources.base import CostDataSource

logger = logging.getLogger(__name__)


class CacheState(Enum):
    """State of one (node, period) cache cell."""

    PENDING = "pending"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class CacheEntry:
    """One cache cell and the sequence number of the fetch behind it."""

    state: CacheState
    sequence: int
    response: CostResponse | None = None
    error: FetchError | None = None

    @classmethod
    def pending(cls, sequence: int) -> "CacheEntry":
        return cls(state=CacheState.PENDING, sequence=sequence)

    @classmethod
    def ok(cls, sequence: int, response: CostResponse) -> "CacheEntry":
        return cls(state=CacheState.OK, sequence=sequence, response=response)

    @classmethod
    def failed(cls, sequence: int, error: FetchError) -> "CacheEntry":
        return cls(state=CacheState.ERROR, sequence=sequence, error=error)

    @property
    def is_pending(self) -> bool:
        return self.state is CacheState.PENDING

    @property
    def is_ok(self) -> bool:
        return self.state is CacheState.OK

    @property
    def is_error(self) -> bool:
        return self.state is CacheState.ERROR


@dataclass
class HierarchyNode:
    """An expandable team or project entry. Owned by the rollup cache."""

    scope: Scope
    expanded: bool = False
    cache: dict[Period, CacheEntry] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.scope.id

    @property
    def kind(self) -> ScopeKind:
        return self.scope.kind


class HierarchicalRollupCache:
    """Lazily fetches and caches per-node cost data."""

    def __init__(self, source: CostDataSource, period: Period = DEFAULT_PERIOD):
        """
        Initialize the cache.

        Args:
            source: Cost data source used for node fetches
            period: Initially active period
        """
        self.source = source
        self.period = period
        self._nodes: dict[Scope, HierarchyNode] = {}
        self._issued: dict[tuple[Scope, Period], int] = {}
        self._tasks: set[asyncio.Task] = set()
        self._fetches = 0
        self._stale_dropped = 0
        self._errors = 0

    def node(self, scope: Scope) -> HierarchyNode:
        """Get the node for a scope, creating it on first use."""
        if scope.kind not in (ScopeKind.TEAM, ScopeKind.PROJECT):
            raise ValueError(f"The {scope.kind.value} scope is not a hierarchy node")

        node = self._nodes.get(scope)
        if node is None:
            node = HierarchyNode(scope=scope)
            self._nodes[scope] = node
        return node

    def entry(self, scope: Scope, period: Period | None = None) -> CacheEntry | None:
        """Cache cell for a node and period, or None if never fetched."""
        node = self._nodes.get(scope)
        if node is None:
            return None
        return node.cache.get(period or self.period)

    def is_expanded(self, scope: Scope) -> bool:
        node = self._nodes.get(scope)
        return node.expanded if node else False

    def toggle(self, scope: Scope, period: Period | None = None) -> asyncio.Task | None:
        """
        Expand or collapse a node.

        Expanding a node with no cache cell for the period issues exactly
        one fetch. Collapsing never fetches and never evicts.

        Returns:
            The fetch task, or None when no fetch was issued
        """
        period = period or self.period
        node = self.node(scope)
        node.expanded = not node.expanded

        if not node.expanded:
            logger.debug(f"Collapsed {scope.key}")
            return None

        if period in node.cache:
            logger.debug(f"Cache {node.cache[period].state.value} for {scope.key} ({period.value})")
            return None

        return self._issue(node, period)

    def ensure_loaded(self, scope: Scope, period: Period | None = None) -> asyncio.Task | None:
        """Issue a fetch for an expanded node with no cell for the period."""
        period = period or self.period
        node = self.node(scope)
        if not node.expanded or period in node.cache:
            return None
        return self._issue(node, period)

    def expand_all(
        self, scopes: Iterable[Scope], period: Period | None = None
    ) -> list[asyncio.Task]:
        """Expand every given node and fetch whatever is missing for the period."""
        period = period or self.period
        tasks = []
        for scope in scopes:
            if self.is_expanded(scope):
                task = self.ensure_loaded(scope, period)
            else:
                task = self.toggle(scope, period)
            if task is not None:
                tasks.append(task)
        return tasks

    def refresh(self, scope: Scope, period: Period | None = None) -> asyncio.Task:
        """
        Force a new fetch for a node and period.

        The current cell stays readable until the new result arrives.
        Other periods of the node are untouched.
        """
        period = period or self.period
        return self._issue(self.node(scope), period)

    def on_period_change(self, period: Period):
        """Switch the active period without fetching or evicting anything."""
        if period is not self.period:
            logger.info(f"Active period changed from {self.period.value} to {period.value}")
        self.period = period

    def responses(self, kind: ScopeKind, period: Period | None = None) -> dict[str, CostResponse]:
        """Successfully fetched responses of one node kind, keyed by node id."""
        period = period or self.period
        result = {}
        for scope, node in self._nodes.items():
            if scope.kind is not kind:
                continue
            entry = node.cache.get(period)
            if entry is not None and entry.is_ok:
                result[scope.id] = entry.response
        return result

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "nodes": len(self._nodes),
            "expanded": sum(1 for node in self._nodes.values() if node.expanded),
            "fetches": self._fetches,
            "in_flight": len(self._tasks),
            "stale_dropped": self._stale_dropped,
            "errors": self._errors,
        }

    def _issue(self, node: HierarchyNode, period: Period) -> asyncio.Task:
        key = (node.scope, period)
        sequence = self._issued.get(key, 0) + 1
        self._issued[key] = sequence

        # Mark before the fetch starts so a second toggle sees the cell
        if period not in node.cache:
            node.cache[period] = CacheEntry.pending(sequence)

        self._fetches += 1
        logger.debug(f"Issuing fetch #{sequence} for {node.scope.key} ({period.value})")

        task = asyncio.get_running_loop().create_task(self._load(node, period, sequence))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load(self, node: HierarchyNode, period: Period, sequence: int):
        try:
            response = await self.source.fetch_cost_data(node.scope, period)
            entry = CacheEntry.ok(sequence, response)
        except FetchError as e:
            logger.warning(f"Failed to fetch {node.scope.key} costs for {period.value}: {e}")
            entry = CacheEntry.failed(sequence, e)
        except Exception as e:
            logger.error(f"Unexpected error fetching {node.scope.key} costs for {period.value}: {e}")
            entry = CacheEntry.failed(
                sequence, FetchError(str(e), scope=node.scope, period=period)
            )

        if self._issued.get((node.scope, period)) != sequence:
            self._stale_dropped += 1
            logger.debug(
                f"Dropping stale fetch #{sequence} for {node.scope.key} ({period.value})"
            )
            return

        if entry.is_error:
            self._errors += 1
        node.cache[period] = entry

    async def drain(self):
        """Wait until no fetch is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self):
        """Cancel in-flight fetches and drop every node."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._nodes.clear()
        self._issued.clear()
