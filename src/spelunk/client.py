"""Async client for the Splunk search jobs REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from spelunk.errors import TransportError
from spelunk.models import JobStatus

logger = logging.getLogger(__name__)

MANAGEMENT_PORT = ":8089"
WEB_PORT = ":8000"


class SplunkClient:
    """Thin wrapper over the four job operations the session needs."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        verify_ssl: bool = True,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            verify=verify_ssl,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> SplunkClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- Helpers -----------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        if not response.is_success:
            logger.error(
                "Splunk API error %d on %s %s: %s",
                response.status_code,
                method,
                path,
                response.text,
            )
            raise TransportError(
                f"API Error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise TransportError(f"Malformed JSON response: {exc}") from exc

    # -- Job operations ----------------------------------------------------

    async def create_job(self, query: str) -> str:
        """Dispatch *query* and return the new job's search id."""
        response = await self._request(
            "POST",
            "/services/search/jobs",
            data={"search": query, "output_mode": "json", "exec_mode": "normal"},
        )
        payload = self._json(response)
        sid = payload.get("sid") if isinstance(payload, dict) else None
        if not sid:
            raise TransportError(f"No sid in response: {response.text}")
        return str(sid)

    async def poll_status(self, sid: str) -> JobStatus:
        response = await self._request(
            "GET", f"/services/search/jobs/{sid}", params={"output_mode": "json"}
        )
        payload = self._json(response)
        try:
            content = payload["entry"][0]["content"]
            return JobStatus.from_content(content)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise TransportError(
                f"Failed to parse job status response: {response.text}"
            ) from exc

    async def fetch_results(
        self, sid: str, count: int = 100, offset: int = 0
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            f"/services/search/jobs/{sid}/results",
            params={"output_mode": "json", "count": count, "offset": offset},
        )
        payload = self._json(response)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict)]

    async def kill_job(self, sid: str) -> None:
        await self._request("DELETE", f"/services/search/jobs/{sid}")

    def share_url(self, sid: str) -> str:
        """Search app URL for *sid*, assuming the web UI on port 8000."""
        web_url = self.base_url.replace(MANAGEMENT_PORT, WEB_PORT)
        return f"{web_url}/en-US/app/search/search?sid={sid}"
