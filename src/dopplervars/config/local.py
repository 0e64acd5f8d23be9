"""
Local Doppler CLI credentials.

Reads ``~/.doppler/.doppler.yaml`` (written by ``doppler login`` and
``doppler setup``) and the OS keychain entry the CLI stores the token in.
Everything here is optional: a machine without the Doppler CLI simply
yields empty settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import keyring
import structlog
import yaml
from keyring.errors import KeyringError

from dopplervars.config.scoped import (
    get_scoped_value,
    select_config,
    select_project,
    select_token,
)

logger = structlog.get_logger()

KEYRING_ENCODED_PREFIX = "go-keyring-encoded:"


class CredentialStore(Protocol):
    """Looks up a locally stored secret by service name and account."""

    def get_credential(self, service: str, account: str) -> str | None: ...


class KeyringCredentialStore:
    """Credential store backed by the OS keychain via ``keyring``."""

    def get_credential(self, service: str, account: str) -> str | None:
        return keyring.get_password(service, account)


@dataclass(frozen=True)
class LocalSettings:
    """Token, project and config cached by the Doppler CLI for a directory."""

    access_token: str | None = None
    project_id: str | None = None
    config_id: str | None = None
    found: bool = False

    @classmethod
    def empty(cls) -> LocalSettings:
        return cls()


def decode_keyring_token(stored: str | None) -> str | None:
    """Decode a token as stored by the Doppler CLI keyring integration."""
    if not stored:
        return None
    if stored.startswith(KEYRING_ENCODED_PREFIX):
        encoded = stored[len(KEYRING_ENCODED_PREFIX) :]
        return bytes.fromhex(encoded).decode("utf-8") or None
    return stored


class LocalCredentialLoader:
    """Loads Doppler CLI settings scoped to a service directory."""

    def __init__(
        self,
        settings_path: Path | None = None,
        credential_store: CredentialStore | None = None,
        keyring_service: str = "doppler-cli",
    ):
        self.settings_path = settings_path or Path.home() / ".doppler" / ".doppler.yaml"
        self.credential_store = credential_store or KeyringCredentialStore()
        self.keyring_service = keyring_service

    def _read_scopes(self) -> dict[str, Any] | None:
        """Return the ``scoped`` mapping, or None when the file is absent."""
        if not self.settings_path.exists():
            logger.debug("local_settings_missing", path=str(self.settings_path))
            return None

        try:
            with open(self.settings_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(
                "failed_to_load_local_settings",
                path=str(self.settings_path),
                error=str(e),
            )
            return {}

        scoped = data.get("scoped") if isinstance(data, dict) else None
        return scoped if isinstance(scoped, dict) else {}

    def _lookup_token(self, account: str) -> str | None:
        try:
            stored = self.credential_store.get_credential(self.keyring_service, account)
        except KeyringError as e:
            logger.warning("keyring_lookup_failed", error=type(e).__name__)
            return None

        try:
            return decode_keyring_token(stored)
        except ValueError:
            # bad hex or non-utf8 payload
            logger.warning("keyring_token_undecodable", service=self.keyring_service)
            return None

    def load(self, service_dir: str | os.PathLike[str]) -> LocalSettings:
        """
        Load the settings that apply to ``service_dir``.

        Returns:
            LocalSettings; all fields are None when the file is absent
        """
        scopes = self._read_scopes()
        if scopes is None:
            return LocalSettings.empty()

        account = get_scoped_value(scopes, service_dir, select_token)
        project_id = get_scoped_value(scopes, service_dir, select_project)
        config_id = get_scoped_value(scopes, service_dir, select_config)

        access_token = self._lookup_token(str(account)) if account else None

        logger.debug(
            "local_settings_loaded",
            service_dir=str(service_dir),
            has_token=access_token is not None,
            project=project_id,
            config=config_id,
        )

        return LocalSettings(
            access_token=access_token,
            project_id=str(project_id) if project_id else None,
            config_id=str(config_id) if config_id else None,
            found=True,
        )


def load_local_settings(
    service_dir: str | os.PathLike[str],
    settings_path: Path | None = None,
    credential_store: CredentialStore | None = None,
) -> LocalSettings:
    """Convenience function to load local Doppler settings for a directory."""
    loader = LocalCredentialLoader(settings_path, credential_store)
    return loader.load(service_dir)
