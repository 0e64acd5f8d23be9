"""HTTP clients for remote APIs."""

from dopplervars.clients.base import (
    BaseHTTPClient,
    HTTPClientError,
    PermanentHTTPError,
    RetryableHTTPError,
)
from dopplervars.clients.doppler import DopplerClient

__all__ = [
    "BaseHTTPClient",
    "DopplerClient",
    "HTTPClientError",
    "PermanentHTTPError",
    "RetryableHTTPError",
]
