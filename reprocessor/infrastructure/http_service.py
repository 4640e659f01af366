"""HTTP client for a remote job executor exposing the reprocessing API."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlparse

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from reprocessor.core.errors import QueryError, ServiceError
from reprocessor.core.schema import JobStatusSnapshot, LaunchJobRequest, LogicOption, TriggerLogRecord

logger = logging.getLogger(__name__)


class HttpReprocessingService:
    """Client for the executor's REST endpoints."""

    def __init__(
        self,
        api_base: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._base_url = api_base.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "detail", "error"):
                if body.get(key):
                    return str(body[key])
        if isinstance(body, list) and body and isinstance(body[0], dict) and body[0].get("message"):
            return str(body[0]["message"])
        return f"HTTP {response.status_code}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        error_cls: type[ServiceError] = ServiceError,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, params=params, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise error_cls(f"{operation}: {exc}") from exc
        if response.is_error:
            message = self._error_message(response)
            logger.warning("%s %s returned %s: %s", method, url, response.status_code, message)
            raise error_cls(message)
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"{operation} returned a non-JSON body") from exc

    @staticmethod
    def _items(payload: Any, key: str, error_cls: type[ServiceError] = ServiceError) -> list[Any]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get(key), list):
            return payload[key]
        raise error_cls(f"expected a list under '{key}'")

    @staticmethod
    def _validate(model: type[BaseModel], payload: Any, *, operation: str) -> Any:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise ServiceError(f"{operation} returned an invalid payload: {exc.errors()[0].get('msg')}") from exc

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def list_target_types(self) -> list[str]:
        payload = await self._request("GET", "/target-types", operation="list_target_types")
        return [str(item) for item in self._items(payload, "items")]

    async def count_records(self, target_type: str, filter: str) -> int:
        payload = await self._request(
            "GET",
            "/records/count",
            operation="count_records",
            error_cls=QueryError,
            params={"target_type": target_type, "filter": filter},
        )
        count = payload.get("count") if isinstance(payload, dict) else payload
        try:
            return int(count)
        except (TypeError, ValueError) as exc:
            raise QueryError("count_records returned an invalid count") from exc

    async def preview_query(self, target_type: str, filter: str) -> list[dict[str, Any]]:
        payload = await self._request(
            "GET",
            "/records/preview",
            operation="preview_query",
            error_cls=QueryError,
            params={"target_type": target_type, "filter": filter},
        )
        return [dict(row) for row in self._items(payload, "records", QueryError) if isinstance(row, dict)]

    async def list_logic_options(self, target_type: str, trigger_context: str) -> list[LogicOption]:
        payload = await self._request(
            "GET",
            "/logic-options",
            operation="list_logic_options",
            params={"target_type": target_type, "trigger_context": trigger_context},
        )
        return [self._validate(LogicOption, item, operation="list_logic_options") for item in self._items(payload, "items")]

    async def describe_fields(self, target_type: str) -> list[str]:
        payload = await self._request(
            "GET", "/fields", operation="describe_fields", params={"target_type": target_type}
        )
        return [str(item) for item in self._items(payload, "fields")]

    async def launch_job(self, request: LaunchJobRequest) -> str:
        payload = await self._request("POST", "/jobs", operation="launch_job", json=request.model_dump())
        job_id = payload.get("job_id") if isinstance(payload, dict) else payload
        if not job_id:
            raise ServiceError("launch_job returned no job id")
        return str(job_id)

    async def get_job_status(self, job_id: str) -> JobStatusSnapshot:
        payload = await self._request("GET", f"/jobs/{quote(job_id, safe='')}", operation="get_job_status")
        return self._validate(JobStatusSnapshot, payload, operation="get_job_status")

    async def list_trigger_logs(self, record_id: str) -> list[TriggerLogRecord]:
        payload = await self._request(
            "GET", "/trigger-logs", operation="list_trigger_logs", params={"record_id": record_id}
        )
        return [
            self._validate(TriggerLogRecord, item, operation="list_trigger_logs") for item in self._items(payload, "items")
        ]

    async def is_logging_enabled(self) -> bool:
        payload = await self._request("GET", "/trigger-logs/enabled", operation="is_logging_enabled")
        if isinstance(payload, dict):
            return bool(payload.get("enabled"))
        return bool(payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["HttpReprocessingService"]
