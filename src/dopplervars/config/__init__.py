"""
dopplervars configuration.

Provides:
- Pydantic-based runtime settings (environment variables, .env files)
- Schema of the ``doppler`` block in deployment configs
- Precedence merging of CLI params and declared config
- Local Doppler CLI settings and keychain token lookup
"""

from dopplervars.config.local import (
    KeyringCredentialStore,
    LocalCredentialLoader,
    LocalSettings,
    load_local_settings,
)
from dopplervars.config.precedence import (
    ResolvedRequest,
    build_request,
    merge_sources,
    parse_cli_params,
)
from dopplervars.config.schema import CONFIG_SCHEMA, DopplerConfig, parse_doppler_block
from dopplervars.config.scoped import get_scoped_value
from dopplervars.config.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Schema
    "CONFIG_SCHEMA",
    "DopplerConfig",
    "parse_doppler_block",
    # Precedence
    "ResolvedRequest",
    "build_request",
    "merge_sources",
    "parse_cli_params",
    # Local settings
    "KeyringCredentialStore",
    "LocalCredentialLoader",
    "LocalSettings",
    "get_scoped_value",
    "load_local_settings",
]
