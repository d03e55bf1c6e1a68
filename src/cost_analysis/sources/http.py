"""
HTTP cost data source.

Talks to the deployment platform API:

    GET /api/dashboard/costs?period=30d        system-wide summary, trend, top apps
    GET /api/teams/{id}/costs?period=30d       team summary and per-app breakdown
    GET /api/projects/{id}/costs?period=30d    project summary and per-app breakdown
    GET /api/apps/{id}/costs?period=30d        app summary (no breakdown)
    GET /api/teams                             team list
    GET /api/projects                          project list
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..errors import ConfigurationError, FetchError, ListFetchError
from ..models import (
    CostResponse,
    DashboardCostResponse,
    Period,
    Project,
    Scope,
    ScopeKind,
    Team,
)
from .base import CostDataSource

logger = logging.getLogger(__name__)


class HttpCostSource(CostDataSource):
    """Cost data source backed by the platform's REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the HTTP source.

        Args:
            base_url: API base URL, e.g. https://deploy.example.com
            token: Optional bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used for testing)
        """
        if not base_url:
            raise ConfigurationError("A base URL is required for the cost API")

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(cls, api_config: dict[str, Any]) -> "HttpCostSource":
        """Create a source from the ``api`` configuration section."""
        return cls(
            base_url=api_config.get("base_url", ""),
            token=api_config.get("token") or None,
            timeout=float(api_config.get("timeout", 30)),
        )

    # Collection segment per scope kind
    _COLLECTIONS = {
        ScopeKind.TEAM: "teams",
        ScopeKind.PROJECT: "projects",
        ScopeKind.APP: "apps",
    }

    @classmethod
    def _cost_path(cls, scope: Scope) -> str:
        if scope.kind is ScopeKind.SYSTEM:
            return "/api/dashboard/costs"
        return f"/api/{cls._COLLECTIONS[scope.kind]}/{quote(scope.id, safe='')}/costs"

    async def fetch_cost_data(
        self, scope: Scope, period: Period
    ) -> CostResponse | DashboardCostResponse:
        path = self._cost_path(scope)
        logger.debug(f"Fetching {scope.key} costs for {period.value} from {path}")

        try:
            response = await self._client.get(path, params={"period": period.value})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Cost request for {scope.key} failed with HTTP {e.response.status_code}",
                scope=scope,
                period=period,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                f"Cost request for {scope.key} failed: {e}", scope=scope, period=period
            ) from e
        except ValueError as e:
            raise FetchError(
                f"Invalid JSON in cost response for {scope.key}: {e}", scope=scope, period=period
            ) from e

        try:
            if scope.kind is ScopeKind.SYSTEM:
                return DashboardCostResponse.model_validate(payload)
            return CostResponse.model_validate(payload)
        except ValidationError as e:
            raise FetchError(
                f"Malformed cost response for {scope.key}: {e.error_count()} validation errors",
                scope=scope,
                period=period,
            ) from e

    async def _list(self, path: str, resource: str) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            items = response.json()
        except httpx.HTTPStatusError as e:
            raise ListFetchError(
                f"Listing {resource} failed with HTTP {e.response.status_code}",
                resource=resource,
                status_code=e.response.status_code,
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise ListFetchError(f"Listing {resource} failed: {e}", resource=resource) from e

        if not isinstance(items, list):
            raise ListFetchError(f"Expected a list of {resource}", resource=resource)
        return items

    async def list_teams(self) -> list[Team]:
        items = await self._list("/api/teams", "teams")
        try:
            return [Team.model_validate(item) for item in items]
        except ValidationError as e:
            raise ListFetchError(f"Malformed team list: {e}", resource="teams") from e

    async def list_projects(self) -> list[Project]:
        items = await self._list("/api/projects", "projects")
        try:
            return [Project.model_validate(item) for item in items]
        except ValidationError as e:
            raise ListFetchError(f"Malformed project list: {e}", resource="projects") from e

    async def close(self):
        await self._client.aclose()
