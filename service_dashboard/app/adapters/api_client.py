"""
REST client for the business backend.
"""

from typing import Any, Callable, Dict, Mapping, Optional
import httpx

from shared.logging import get_logger, request_id_var
from shared.errors import (
    ApiError,
    NetworkError,
    RequestTimeoutError,
    error_for_status,
)

DEFAULT_TIMEOUT = 30.0
MAX_RAW_ERROR_LENGTH = 200

TokenProvider = Callable[[], Optional[str]]


class ApiClient:
    """Thin async wrapper around the ``/api`` endpoints.

    Every response is the backend envelope ``{"success", "message", "data",
    "count"}``. Any failure, whether transport, HTTP status or an envelope
    with ``success: false``, is raised as an ``ApiError`` whose ``message``
    is fit for display.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        token_provider: Optional[TokenProvider] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token_provider = token_provider
        self.logger = get_logger("dashboard.api_client")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        request_id = request_id_var.get()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a request and return the decoded success envelope."""
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=dict(params) if params else None,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as exc:
            self.logger.warning("API request timed out", method=method, url=url)
            raise RequestTimeoutError(details={"url": url, "error": str(exc)}) from exc
        except httpx.HTTPError as exc:
            self.logger.error("API request failed", method=method, url=url, error=str(exc))
            raise NetworkError(str(exc) or "Network error", details={"url": url}) from exc

        if response.status_code >= 400:
            message = self._error_message(response)
            self.logger.warning(
                "API request rejected",
                method=method,
                url=url,
                status_code=response.status_code,
                error=message,
            )
            raise error_for_status(response.status_code, message, {"url": url})

        if response.status_code == 204 or not response.content:
            return {"success": True}

        try:
            body = response.json()
        except ValueError:
            self.logger.error("Failed to parse JSON response", method=method, url=url)
            raise ApiError("Invalid JSON response from server", response.status_code, {"url": url})

        if isinstance(body, dict) and body.get("success") is False:
            raise ApiError(
                body.get("message") or body.get("error") or "Request failed",
                response.status_code,
                {"url": url},
            )

        self.logger.debug("API request succeeded", method=method, url=url, status_code=response.status_code)
        return body if isinstance(body, dict) else {"success": True, "data": body}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Best display message for a failed response."""
        fallback = f"HTTP error! status: {response.status_code}"
        text = response.text
        if not text:
            return fallback
        try:
            payload = response.json()
        except ValueError:
            return text if len(text) < MAX_RAW_ERROR_LENGTH else fallback
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return fallback

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, payload: Optional[Any] = None) -> Dict[str, Any]:
        return await self.request("POST", path, json=payload)

    async def put(self, path: str, payload: Optional[Any] = None) -> Dict[str, Any]:
        return await self.request("PUT", path, json=payload)

    async def delete(self, path: str, payload: Optional[Any] = None) -> Dict[str, Any]:
        if payload is None:
            return await self.request("DELETE", path)
        return await self.request("DELETE", path, json=payload)


class EntityApi:
    """CRUD endpoints of one resource, e.g. ``/employees``."""

    def __init__(self, client: ApiClient, resource: str):
        self.client = client
        self.resource = "/" + resource.strip("/")

    async def get_all(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return await self.client.get(self.resource, params)

    async def get_by_id(self, entity_id: int) -> Dict[str, Any]:
        return await self.client.get(f"{self.resource}/{entity_id}")

    async def get_stats(self) -> Dict[str, Any]:
        return await self.client.get(f"{self.resource}/stats")

    async def create(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.client.post(self.resource, dict(payload))

    async def update(self, entity_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.client.put(f"{self.resource}/{entity_id}", dict(payload))

    async def delete(self, entity_id: int) -> Dict[str, Any]:
        return await self.client.delete(f"{self.resource}/{entity_id}")


class ProjectApi(EntityApi):
    """Project endpoints, including team assignments."""

    def __init__(self, client: ApiClient):
        super().__init__(client, "projects")

    async def assign_employee(self, project_id: int, employee_id: int,
                              payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.client.post(f"{self.resource}/{project_id}/employees/{employee_id}", dict(payload))

    async def remove_employee(self, project_id: int, employee_id: int) -> Dict[str, Any]:
        return await self.client.delete(f"{self.resource}/{project_id}/employees/{employee_id}")


class ExpenseApi(EntityApi):
    """Expense endpoints, including the approval workflow."""

    def __init__(self, client: ApiClient):
        super().__init__(client, "expenses")

    async def get_categories(self) -> Dict[str, Any]:
        return await self.client.get(f"{self.resource}/categories")

    async def approve(self, expense_id: int) -> Dict[str, Any]:
        return await self.client.put(f"{self.resource}/{expense_id}/approve")

    async def reject(self, expense_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
        return await self.client.put(f"{self.resource}/{expense_id}/reject", {"rejection_reason": reason})

    async def bulk_delete(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.client.delete(f"{self.resource}/bulk", dict(payload))


class DashboardApi:
    """Read-only dashboard summary."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_stats(self) -> Dict[str, Any]:
        return await self.client.get("/dashboard/stats")
