from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dopplervars.core.errors import ProviderError

logger = structlog.get_logger()


class HTTPClientError(ProviderError):
    """Base class for HTTP failures talking to a remote API."""


class RetryableHTTPError(HTTPClientError):
    """HTTP errors that may be retried."""


class PermanentHTTPError(HTTPClientError):
    """HTTP errors that should not be retried."""


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


class BaseHTTPClient:
    """Base async JSON client with optional retries."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 0,
        backoff_factor: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {"Accept": "application/json"}

    def _error_reason(self, response: httpx.Response) -> str | None:
        """Human readable reason from an error response body, if the API sends one."""
        return None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute HTTP request, retrying only when max_retries > 0."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RetryableHTTPError),
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff_factor, max=30),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(method, path, params=params, headers=headers)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    headers=req_headers,
                )

                if is_retryable_status(response.status_code):
                    logger.warning(
                        "http_retryable_error",
                        status=response.status_code,
                        method=method,
                        url=url,
                    )
                    raise RetryableHTTPError(
                        f"HTTP {response.status_code} from {method} {url}",
                        details={"status": response.status_code},
                    )

                response.raise_for_status()
                return response.json() if response.content else {}

        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            reason = self._error_reason(exc.response)
            logger.error(
                "http_permanent_error",
                status=status,
                method=method,
                url=url,
                reason=reason,
            )
            message = f"HTTP {status} from {method} {path}"
            if reason:
                message = f"{message}: {reason}"
            raise PermanentHTTPError(message, details={"status": status}) from exc
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(f"network error calling {method} {url}: {exc}") from exc

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Execute GET request."""
        return await self._request("GET", path, params=params, headers=headers)
