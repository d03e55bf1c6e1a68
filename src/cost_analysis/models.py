"""
Cost data models for rollup reporting.

Defines periods, scopes and the read-only response snapshots supplied by
the cost data source. Responses are replaced wholesale on refetch and are
never mutated after validation.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Relative tolerance when checking total_cost against the per-resource sum
TOTAL_TOLERANCE = 0.01


class Period(str, Enum):
    """Trailing time window over which costs are aggregated."""

    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"

    @property
    def days(self) -> int:
        """Number of days covered by the period."""
        return _PERIOD_DAYS[self]

    @property
    def label(self) -> str:
        """Human readable label, e.g. "30 days"."""
        return f"{self.days} days"

    @classmethod
    def parse(cls, value: "str | Period") -> "Period":
        """
        Parse a period string such as "7d".

        Raises:
            ValueError: If the value is not one of 7d, 30d, 90d
        """
        if isinstance(value, Period):
            return value
        normalized = str(value).strip().lower()
        for period in cls:
            if period.value == normalized:
                return period
        valid = ", ".join(p.value for p in cls)
        raise ValueError(f'Invalid period "{value}". Must be one of: {valid}')


_PERIOD_DAYS = {
    Period.SEVEN_DAYS: 7,
    Period.THIRTY_DAYS: 30,
    Period.NINETY_DAYS: 90,
}

DEFAULT_PERIOD = Period.THIRTY_DAYS


class ScopeKind(Enum):
    """Aggregation boundary for a cost query."""

    SYSTEM = "system"
    TEAM = "team"
    PROJECT = "project"
    APP = "app"


class Scope(BaseModel):
    """Tagged scope: the whole system, or one team, project or app."""

    model_config = ConfigDict(frozen=True)

    kind: ScopeKind
    id: str | None = None

    @model_validator(mode="after")
    def validate_id(self):
        """System scopes carry no id; every other scope requires one."""
        if self.kind is ScopeKind.SYSTEM:
            if self.id is not None:
                raise ValueError("System scope does not take an id")
        elif not self.id or not self.id.strip():
            raise ValueError(f"{self.kind.value.title()} scope requires an id")
        return self

    @classmethod
    def system(cls) -> "Scope":
        return cls(kind=ScopeKind.SYSTEM)

    @classmethod
    def team(cls, team_id: str) -> "Scope":
        return cls(kind=ScopeKind.TEAM, id=team_id)

    @classmethod
    def project(cls, project_id: str) -> "Scope":
        return cls(kind=ScopeKind.PROJECT, id=project_id)

    @classmethod
    def app(cls, app_id: str) -> "Scope":
        return cls(kind=ScopeKind.APP, id=app_id)

    @property
    def key(self) -> str:
        """Stable string key: "system" or "<kind>:<id>", e.g. "team:t1"."""
        if self.kind is ScopeKind.SYSTEM:
            return "system"
        return f"{self.kind.value}:{self.id}"

    def __str__(self) -> str:
        return self.key


def _check_total(model_name: str, cpu: float, memory: float, disk: float, total: float):
    """Warn when a supplied total disagrees with its per-resource parts."""
    calculated = cpu + memory + disk
    tolerance = max(abs(total) * TOTAL_TOLERANCE, 0.01)
    if abs(calculated - total) > tolerance:
        logger.warning(
            f"{model_name} total_cost {total} doesn't match sum of resource costs {calculated:.4f}"
        )


class CostSummary(BaseModel):
    """Rolled-up costs for one scope and period."""

    cpu_cost: float = Field(ge=0)
    memory_cost: float = Field(ge=0)
    disk_cost: float = Field(ge=0)
    total_cost: float = Field(ge=0)
    projected_monthly_cost: float = Field(0.0, ge=0)
    avg_cpu_cores: float = Field(0.0, ge=0)
    avg_memory_gb: float = Field(0.0, ge=0)
    avg_disk_gb: float = Field(0.0, ge=0)
    days_in_period: int = Field(0, ge=0)

    @model_validator(mode="after")
    def validate_total(self):
        # The source owns total_cost; never recompute it here
        _check_total("CostSummary", self.cpu_cost, self.memory_cost, self.disk_cost, self.total_cost)
        return self

    @classmethod
    def empty(cls) -> "CostSummary":
        return cls(cpu_cost=0.0, memory_cost=0.0, disk_cost=0.0, total_cost=0.0)


class AppCostBreakdown(BaseModel):
    """Costs of a single app within a scope and period."""

    app_id: str
    app_name: str
    cpu_cost: float = Field(ge=0)
    memory_cost: float = Field(ge=0)
    disk_cost: float = Field(ge=0)
    total_cost: float = Field(ge=0)

    @model_validator(mode="after")
    def validate_total(self):
        _check_total(
            f"App {self.app_id}", self.cpu_cost, self.memory_cost, self.disk_cost, self.total_cost
        )
        return self


class DailyCostPoint(BaseModel):
    """Total cost of one day in the system-wide trend series."""

    date: date
    total_cost: float = Field(ge=0)


class CostResponse(BaseModel):
    """Team or project costs: summary plus unranked per-app breakdown."""

    summary: CostSummary
    breakdown: list[AppCostBreakdown] = Field(default_factory=list)
    period: Period | None = None
    period_days: int | None = None

    @field_validator("breakdown", mode="before")
    @classmethod
    def validate_breakdown(cls, v: Any) -> Any:
        # Server omits breakdown for app-level queries
        return [] if v is None else v


class DashboardCostResponse(BaseModel):
    """System-wide costs with a daily trend and the top apps by cost."""

    summary: CostSummary
    trend: list[DailyCostPoint] = Field(default_factory=list)
    top_apps: list[AppCostBreakdown] = Field(default_factory=list)

    @field_validator("trend")
    @classmethod
    def validate_trend_order(cls, v: list[DailyCostPoint]) -> list[DailyCostPoint]:
        """The trend series must be chronological."""
        for previous, current in zip(v, v[1:]):
            if current.date < previous.date:
                raise ValueError(
                    f"Trend points out of order: {current.date} follows {previous.date}"
                )
        return v


class Team(BaseModel):
    """A team that owns apps."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class Project(BaseModel):
    """A project grouping apps."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
