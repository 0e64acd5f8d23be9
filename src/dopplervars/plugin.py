"""
Deployment tool integration.

``DopplerSecretsPlugin`` registers a ``doppler`` variable source with a host
deployment tool, so that ``${doppler:DATABASE_URL}`` in a service config
resolves to the secret's value, and declares the ``doppler`` top-level
config block::

    doppler:
      project: backend
      config: dev
      stages:
        production:
          token: ${env:DOPPLER_PRODUCTION_TOKEN}
          config: prd

Every ``${doppler:...}`` reference in one run shares a single secret fetch.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Protocol

import structlog

from dopplervars.cli.ux import select_choice
from dopplervars.config.local import LocalCredentialLoader
from dopplervars.config.precedence import ResolvedRequest, build_request
from dopplervars.config.schema import CONFIG_SCHEMA, parse_doppler_block
from dopplervars.config.settings import Settings, get_settings
from dopplervars.resolver.engine import Prompter, SecretResolutionEngine
from dopplervars.resolver.variables import VariableResolver

logger = structlog.get_logger()

VARIABLE_SOURCE_NAME = "doppler"


class ConfigSchemaHandler(Protocol):
    def define_top_level_property(self, name: str, schema: Mapping[str, Any]) -> None: ...


class DeploymentHost(Protocol):
    """What the plugin needs from the host deployment tool."""

    configuration_input: Mapping[str, Any]
    service_dir: str
    config_schema_handler: ConfigSchemaHandler


def build_variable_resolver(
    request: ResolvedRequest,
    *,
    service_dir: str | os.PathLike[str] | None = None,
    settings: Settings | None = None,
    prompter: Prompter | None = None,
    local_loader: LocalCredentialLoader | None = None,
    engine: SecretResolutionEngine | None = None,
) -> VariableResolver:
    """Wire an engine for ``request`` into a VariableResolver."""
    engine = engine or SecretResolutionEngine(
        service_dir=service_dir,
        settings=settings or get_settings(),
        local_loader=local_loader,
        prompter=prompter,
    )

    async def fetch() -> dict[str, str]:
        return await engine.resolve_secrets(request)

    return VariableResolver(fetch)


class DopplerSecretsPlugin:
    """Doppler variable source for a deployment host."""

    def __init__(
        self,
        host: DeploymentHost,
        *,
        settings: Settings | None = None,
        prompter: Prompter | None = None,
        engine: SecretResolutionEngine | None = None,
    ):
        self.host = host
        self.settings = settings
        self.prompter = prompter if prompter is not None else select_choice
        self.engine = engine
        self._resolver: VariableResolver | None = None

        self.configuration_variables_sources = {
            VARIABLE_SOURCE_NAME: {"resolve": self.resolve_doppler_secret},
        }
        host.config_schema_handler.define_top_level_property(VARIABLE_SOURCE_NAME, CONFIG_SCHEMA)

    def build_request(self, options: Mapping[str, Any] | None) -> ResolvedRequest:
        configuration = self.host.configuration_input or {}
        stage = (configuration.get("provider") or {}).get("stage")
        doppler_block = parse_doppler_block(configuration.get(VARIABLE_SOURCE_NAME))
        params = (options or {}).get("param")
        return build_request(params, doppler_block, stage)

    def _get_resolver(self, options: Mapping[str, Any] | None) -> VariableResolver:
        if self._resolver is None:
            request = self.build_request(options)
            logger.debug(
                "doppler_request_built",
                project=request.project_id,
                config=request.config_id,
                has_token=bool(request.access_token),
                local_fallback=request.local_fallback,
                non_interactive=request.non_interactive,
            )
            self._resolver = build_variable_resolver(
                request,
                service_dir=self.host.service_dir,
                settings=self.settings,
                prompter=self.prompter,
                engine=self.engine,
            )
        return self._resolver

    async def resolve_doppler_secret(
        self,
        address: str,
        options: Mapping[str, Any] | None = None,
        **_: Any,
    ) -> dict[str, str]:
        """Variable source hook: ``${doppler:<address>}`` -> ``{"value": ...}``."""
        return await self._get_resolver(options).resolve(address)
