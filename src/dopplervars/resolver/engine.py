"""
Doppler secret resolution.

Turns a ResolvedRequest into the secret map for one Doppler project config:

1. pick the access token (request, then local Doppler CLI login)
2. pick the project and config (service token binding, request, local
   CLI scope, interactive prompt)
3. download the secrets and keep each entry's ``computed`` value
"""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence

import structlog

from dopplervars.clients.doppler import DopplerClient
from dopplervars.config.local import LocalCredentialLoader, LocalSettings
from dopplervars.config.precedence import ResolvedRequest
from dopplervars.config.settings import Settings, get_settings
from dopplervars.core.errors import (
    AmbiguousServiceTokenBindingError,
    LocalSettingsUnavailableError,
    MissingConfigError,
    MissingProjectError,
    MissingTokenError,
    NoConfigsAvailableError,
    NoProjectsAvailableError,
    SelectionRequiredError,
    ServiceTokenMismatchError,
)

logger = structlog.get_logger()

SERVICE_TOKEN_TYPE = "service_token"


@dataclass(frozen=True)
class Choice:
    title: str
    value: str


Prompter = Callable[[str, Sequence[Choice], int | None], Awaitable[str | None]]


class SecretsAPI(Protocol):
    """The subset of the Doppler API the engine needs."""

    async def me(self) -> dict[str, Any]: ...

    async def list_projects(self, per_page: int = ...) -> list[dict[str, Any]]: ...

    async def list_configs(self, project: str, per_page: int = ...) -> list[dict[str, Any]]: ...

    async def list_secrets(self, project: str, config: str) -> dict[str, dict[str, Any]]: ...


def mask_token(token: str | None) -> str:
    """Mask a token for logs, keeping only its type prefix (``dp.st.***``)."""
    if not token:
        return "***"
    parts = token.split(".")
    if len(parts) >= 3:
        return ".".join(parts[:2]) + ".***"
    return "***"


def flatten_secrets(secrets: dict[str, dict[str, Any]]) -> dict[str, str]:
    """Map each secret name to its ``computed`` value, skipping entries without one."""
    flat: dict[str, str] = {}
    for name, record in secrets.items():
        computed = record.get("computed") if isinstance(record, dict) else None
        if computed is None:
            logger.warning("doppler_secret_without_value", name=name)
            continue
        flat[name] = str(computed)
    return flat


def _stdin_is_tty() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


class SecretResolutionEngine:
    """Resolves token, project and config, then fetches the secret map."""

    def __init__(
        self,
        *,
        service_dir: str | os.PathLike[str] | None = None,
        settings: Settings | None = None,
        local_loader: LocalCredentialLoader | None = None,
        client_factory: Callable[[str], SecretsAPI] | None = None,
        prompter: Prompter | None = None,
        is_tty: Callable[[], bool] = _stdin_is_tty,
    ):
        self.settings = settings or get_settings()
        self.service_dir = service_dir or os.getcwd()
        self.local_loader = local_loader or LocalCredentialLoader(
            settings_path=self.settings.local_settings_path,
            keyring_service=self.settings.keyring_service,
        )
        self.client_factory = client_factory or self._default_client
        self.prompter = prompter
        self.is_tty = is_tty
        self._local: LocalSettings | None = None

    def _default_client(self, token: str) -> DopplerClient:
        return DopplerClient(
            token,
            self.settings.api_base_url,
            timeout=self.settings.http_timeout,
            max_retries=self.settings.http_max_retries,
        )

    async def _local_settings(self) -> LocalSettings:
        # file read and keychain lookup may block (e.g. a keychain unlock dialog)
        if self._local is None:
            self._local = await asyncio.to_thread(self.local_loader.load, self.service_dir)
        return self._local

    def _use_local(self, request: ResolvedRequest) -> bool:
        if request.local_fallback is None:
            return self.settings.local_fallback
        return request.local_fallback

    def _prompter_for(self, request: ResolvedRequest) -> Prompter | None:
        """The prompter to use for ``request``, or None when prompting is impossible."""
        if request.non_interactive or self.prompter is None or not self.is_tty():
            return None
        return self.prompter

    def is_service_token(self, token: str) -> bool:
        return token.startswith(self.settings.service_token_prefix)

    async def resolve_token(self, request: ResolvedRequest) -> str:
        """Pick the access token, falling back to the local Doppler CLI login."""
        if request.access_token:
            return request.access_token

        if self._use_local(request):
            local = await self._local_settings()
            if local.access_token:
                logger.info("doppler_token_from_local_settings", service_dir=str(self.service_dir))
                return local.access_token

            if request.local_fallback is True:
                raise LocalSettingsUnavailableError(
                    details={
                        "settings_file": str(self.local_loader.settings_path),
                        "settings_found": local.found,
                    }
                )

        raise MissingTokenError()

    async def resolve_secrets(self, request: ResolvedRequest) -> dict[str, str]:
        """
        Resolve the secret map for a request.

        Raises:
            ConfigurationError subclasses when token/project/config cannot be
            determined, ProviderError subclasses when Doppler has nothing usable
            or a call fails.
        """
        token = await self.resolve_token(request)
        client = self.client_factory(token)

        service_token = self.is_service_token(token)
        if self.settings.verify_identity:
            identity = await client.me()
            logger.info(
                "doppler_token_identity",
                token=mask_token(token),
                token_type=identity.get("type"),
                workplace=(identity.get("workplace") or {}).get("slug"),
            )
            service_token = service_token or identity.get("type") == SERVICE_TOKEN_TYPE

        if service_token:
            project_id, config_id = await self._bound_project_config(client, request)
        else:
            project_id = await self._select_project(client, request)
            config_id = await self._select_config(client, request, project_id)

        secrets = await client.list_secrets(project_id, config_id)
        logger.info(
            "doppler_secrets_fetched",
            project=project_id,
            config=config_id,
            count=len(secrets),
        )
        return flatten_secrets(secrets)

    async def _bound_project_config(
        self, client: SecretsAPI, request: ResolvedRequest
    ) -> tuple[str, str]:
        """Project and config a service token is bound to."""
        projects = [p["slug"] for p in await client.list_projects(self.settings.page_size)]
        project_id = self._single_binding(projects, "project")
        if request.project_id and request.project_id != project_id:
            raise ServiceTokenMismatchError(
                "doppler project does not match service token",
                details={"requested": request.project_id, "bound": project_id},
            )

        configs = [
            c["name"] for c in await client.list_configs(project_id, self.settings.page_size)
        ]
        config_id = self._single_binding(configs, "config")
        if request.config_id and request.config_id != config_id:
            raise ServiceTokenMismatchError(
                "doppler config does not match service token",
                details={"requested": request.config_id, "bound": config_id},
            )

        logger.info(
            "doppler_service_token_binding",
            project=project_id,
            config=config_id,
        )
        return project_id, config_id

    @staticmethod
    def _single_binding(candidates: list[str], kind: str) -> str:
        if not candidates:
            raise AmbiguousServiceTokenBindingError(f"cannot find associated doppler {kind}")
        if len(candidates) > 1:
            raise AmbiguousServiceTokenBindingError(
                f"multiple associated doppler {kind}s",
                details={"candidates": ",".join(candidates)},
            )
        return candidates[0]

    async def _select_project(self, client: SecretsAPI, request: ResolvedRequest) -> str:
        projects = [p["slug"] for p in await client.list_projects(self.settings.page_size)]
        if not projects:
            raise NoProjectsAvailableError()

        local_project = None
        if self._use_local(request):
            local_project = (await self._local_settings()).project_id
        project_id = await self._choose(
            kind="project",
            available=projects,
            requested=request.project_id,
            local=local_project,
            request=request,
        )
        if not project_id:
            raise MissingProjectError()
        return project_id

    async def _select_config(
        self, client: SecretsAPI, request: ResolvedRequest, project_id: str
    ) -> str:
        configs = [
            c["name"] for c in await client.list_configs(project_id, self.settings.page_size)
        ]
        if not configs:
            raise NoConfigsAvailableError(details={"project": project_id})

        local_config = None
        if self._use_local(request):
            local_config = (await self._local_settings()).config_id
        config_id = await self._choose(
            kind="config",
            available=configs,
            requested=request.config_id,
            local=local_config,
            request=request,
        )
        if not config_id:
            raise MissingConfigError(details={"project": project_id})
        return config_id

    async def _choose(
        self,
        *,
        kind: str,
        available: list[str],
        requested: str | None,
        local: str | None,
        request: ResolvedRequest,
    ) -> str | None:
        if requested and requested in available:
            logger.info(f"doppler_{kind}_selected", value=requested, source="request")
            return requested

        prompter = self._prompter_for(request)

        if requested:
            # never swap an explicit but unknown choice for the cached one
            logger.warning(f"doppler_{kind}_unavailable", requested=requested)
        elif local and local in available and (request.local_fallback is True or not prompter):
            # an explicit localFallback adopts the cached choice, otherwise it
            # is only the prompt default
            logger.info(f"doppler_{kind}_selected", value=local, source="local_settings")
            return local

        if prompter is None:
            details: dict[str, Any] = {"available": len(available)}
            if requested:
                details["requested"] = requested
            raise SelectionRequiredError(f"{kind} selection required", details=details)

        initial = available.index(local) if local in available else None
        choices = [Choice(title=name, value=name) for name in available]
        selected = await prompter(f"Select a Doppler {kind}", choices, initial)
        if selected:
            logger.info(f"doppler_{kind}_selected", value=selected, source="prompt")
        return selected
