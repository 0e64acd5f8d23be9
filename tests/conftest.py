"""Root test configuration."""

import logging
from pathlib import Path

import pytest
import structlog

from dopplervars.config.settings import Settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the real ~/.doppler directory."""
    return Settings(
        local_settings_path=tmp_path / ".doppler" / ".doppler.yaml",
        api_base_url="https://api.doppler.test",
    )


class FakeCredentialStore:
    """In-memory stand-in for the OS keychain."""

    def __init__(self, entries: dict[tuple[str, str], str] | None = None):
        self.entries = entries or {}
        self.calls: list[tuple[str, str]] = []

    def get_credential(self, service: str, account: str) -> str | None:
        self.calls.append((service, account))
        return self.entries.get((service, account))


@pytest.fixture
def credential_store() -> FakeCredentialStore:
    return FakeCredentialStore()
