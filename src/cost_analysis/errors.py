"""
Exception types for cost analysis.

Per-node fetch failures are absorbed by the rollup cache; only list
failures escalate to the caller of the hierarchy root.
"""

from typing import Any


class CostAnalysisError(Exception):
    """Base exception for cost analysis errors."""

    pass


class FetchError(CostAnalysisError):
    """Failure retrieving cost data for a scope and period."""

    def __init__(
        self,
        message: str,
        scope: Any | None = None,
        period: Any | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.scope = scope
        self.period = period
        self.status_code = status_code


class ListFetchError(CostAnalysisError):
    """Failure listing teams or projects."""

    def __init__(self, message: str, resource: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.status_code = status_code


class ConfigurationError(CostAnalysisError):
    """Configuration-related errors."""

    pass
