from __future__ import annotations

from typing import Awaitable, Callable

import structlog

from dopplervars.core.errors import UnresolvedSecretAddressError
from dopplervars.resolver.singleflight import FlightState, SingleFlight

logger = structlog.get_logger()

SecretMap = dict[str, str]


class VariableResolver:
    """
    Resolves ``${doppler:NAME}`` addresses against one shared secret fetch.

    However many addresses are looked up, and however concurrently, the
    underlying fetch runs once per resolver; a failed fetch is reported to
    every caller.
    """

    def __init__(self, fetch: Callable[[], Awaitable[SecretMap]]):
        self._flight: SingleFlight[SecretMap] = SingleFlight(fetch)

    @property
    def fetch_state(self) -> FlightState:
        return self._flight.state

    async def secrets(self) -> SecretMap:
        """The full secret map (fetched on first use)."""
        return await self._flight.run()

    async def resolve(self, address: str) -> dict[str, str]:
        secrets = await self.secrets()
        if address not in secrets:
            logger.warning("doppler_secret_unresolved", address=address)
            raise UnresolvedSecretAddressError(address)
        return {"value": secrets[address]}
