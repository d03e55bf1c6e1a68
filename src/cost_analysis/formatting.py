"""
Display formatting for cost values.

Pure functions converting cost amounts into currency strings and
CPU/memory/disk triples into percentage shares for charts.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum

from pydantic import BaseModel

from .trend import Trend

# Rendered in place of a cost that is not available (not loaded, or failed)
PLACEHOLDER = "—"

# Share used for each resource when all three costs are zero
ZERO_TOTAL_PERCENT = 33.3


class ResourceKind(Enum):
    """Resource types a cost is attributed to."""

    CPU = "CPU"
    MEMORY = "Memory"
    DISK = "Disk"


class ResourceShare(BaseModel):
    """One resource's slice of a total cost."""

    kind: ResourceKind
    value: float
    percent: float


def to_fixed(value: float, places: int) -> str:
    """
    Render a number with a fixed number of decimals, rounding half up.

    Rounds the exact binary value of the float, so 1.2345 (stored just
    below 1.2345) renders as "1.23" while 0.125 renders as "0.13".

    Args:
        value: Number to render
        places: Decimal places

    Returns:
        Fixed-point string
    """
    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-places)
    # Enough digits for every integer digit plus the requested decimals
    with localcontext() as ctx:
        ctx.prec = max(28, exact.adjusted() + places + 2)
        return str(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def format_currency(value: float) -> str:
    """
    Format a cost for display.

    Zero renders as "$0.00", sub-cent amounts as "<$0.01", and amounts of
    1000 or more in thousands with a "k" suffix.

    Raises:
        ValueError: If the value is negative or not finite
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot format non-finite cost {value}")
    if value < 0:
        raise ValueError(f"Cannot format negative cost {value}")

    if value == 0:
        return "$0.00"
    if value < 0.01:
        return "<$0.01"
    if value >= 1000:
        return f"${to_fixed(value / 1000, 2)}k"
    return f"${to_fixed(value, 2)}"


def resource_shares(cpu: float, memory: float, disk: float) -> list[ResourceShare]:
    """
    Split a CPU/memory/disk cost triple into percentage shares.

    Order is always CPU, Memory, Disk. Percentages are not re-normalized.
    A zero total yields three equal 33.3% placeholder segments.
    """
    total = cpu + memory + disk
    if total == 0:
        return [
            ResourceShare(kind=ResourceKind.CPU, value=0, percent=ZERO_TOTAL_PERCENT),
            ResourceShare(kind=ResourceKind.MEMORY, value=0, percent=ZERO_TOTAL_PERCENT),
            ResourceShare(kind=ResourceKind.DISK, value=0, percent=ZERO_TOTAL_PERCENT),
        ]
    return [
        ResourceShare(kind=ResourceKind.CPU, value=cpu, percent=cpu / total * 100),
        ResourceShare(kind=ResourceKind.MEMORY, value=memory, percent=memory / total * 100),
        ResourceShare(kind=ResourceKind.DISK, value=disk, percent=disk / total * 100),
    ]


def format_share_label(share: ResourceShare, total: float) -> str:
    """Legend text for a share, e.g. "$1.20 (10.0%)"."""
    percent = to_fixed(share.percent, 1) if total > 0 else "0.0"
    return f"{format_currency(share.value)} ({percent}%)"


def format_percent_change(trend: Trend) -> str | None:
    """Badge text such as "+12.5% vs prior period", or None for no change."""
    if trend.percent <= 0:
        return None
    sign = "+" if trend.is_up else "-"
    return f"{sign}{to_fixed(trend.percent, 1)}% vs prior period"


def cell_or_placeholder(value: float | None) -> str:
    """Formatted cost, or the placeholder when no value is available."""
    if value is None:
        return PLACEHOLDER
    return format_currency(value)
