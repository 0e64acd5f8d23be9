from __future__ import annotations

from typing import Any

import httpx

from dopplervars.clients.base import BaseHTTPClient

DEFAULT_BASE_URL = "https://api.doppler.com"
DEFAULT_PAGE_SIZE = 10_000


class DopplerClient(BaseHTTPClient):
    """Read-only client for the Doppler v3 API."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        max_retries: int = 0,
        backoff_factor: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            transport=transport,
        )
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _error_reason(self, response: httpx.Response) -> str | None:
        # Doppler errors look like {"messages": ["..."], "success": false}
        try:
            data = response.json()
        except ValueError:
            return None
        messages = data.get("messages") if isinstance(data, dict) else None
        if isinstance(messages, list) and messages:
            return "; ".join(str(m) for m in messages)
        return None

    async def me(self) -> dict[str, Any]:
        """Describe the token: workplace, ``type`` (e.g. ``service_token``) and name."""
        return await self.get("/v3/me")

    async def list_projects(self, per_page: int = DEFAULT_PAGE_SIZE) -> list[dict[str, Any]]:
        data = await self.get("/v3/projects", params={"page": 1, "per_page": per_page})
        return data.get("projects") or []

    async def list_configs(
        self, project: str, per_page: int = DEFAULT_PAGE_SIZE
    ) -> list[dict[str, Any]]:
        data = await self.get(
            "/v3/configs",
            params={"project": project, "page": 1, "per_page": per_page},
        )
        return data.get("configs") or []

    async def list_secrets(self, project: str, config: str) -> dict[str, dict[str, Any]]:
        """Return ``{NAME: {"raw": ..., "computed": ...}}`` for a project config."""
        data = await self.get(
            "/v3/configs/config/secrets",
            params={"project": project, "config": config},
        )
        return data.get("secrets") or {}
