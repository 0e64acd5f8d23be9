"""
Command implementations for the ``dopplervars`` CLI.

Commands:
    dopplervars get NAME          - Print one secret value
    dopplervars export            - Print all secrets (env or json)
    dopplervars local             - Show the Doppler CLI scope for a directory
    dopplervars schema            - Print the ``doppler`` block JSON schema
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shlex
import sys
from pathlib import Path
from typing import Any, Callable

import structlog
import yaml

from dopplervars.cli.ux import error, info, is_interactive, print_key_value, select_choice
from dopplervars.config.local import LocalCredentialLoader
from dopplervars.config.precedence import build_request
from dopplervars.config.schema import CONFIG_SCHEMA, parse_doppler_block
from dopplervars.config.settings import Settings, get_settings
from dopplervars.core.errors import (
    ConfigurationError,
    DopplerVarsError,
    format_error_message,
    main_with_error_handling,
)
from dopplervars.plugin import VARIABLE_SOURCE_NAME, build_variable_resolver
from dopplervars.resolver.engine import SecretResolutionEngine, mask_token
from dopplervars.resolver.variables import VariableResolver

logger = structlog.get_logger()

DEFAULT_CONFIG_FILES = ("serverless.yml", "serverless.yaml")


def find_config_file(service_dir: Path, explicit: str | None = None) -> Path | None:
    """
    Find the deployment config holding the ``doppler`` block.

    Search order:
    1. Explicit path (--config flag)
    2. serverless.yml / serverless.yaml in the service directory
    """
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise ConfigurationError("config file not found", details={"path": explicit})
        return path

    for name in DEFAULT_CONFIG_FILES:
        candidate = service_dir / name
        if candidate.exists():
            return candidate
    return None


def load_deployment_config(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "could not parse deployment config", details={"path": str(path)}
        ) from e
    if not isinstance(data, dict):
        raise ConfigurationError("deployment config must be a mapping", details={"path": str(path)})
    logger.debug("loaded_deployment_config", path=str(path))
    return data


def _make_resolver(
    *,
    service_dir: str | None,
    config_file: str | None,
    stage: str | None,
    params: list[str] | None,
    settings: Settings | None = None,
) -> VariableResolver:
    settings = settings or get_settings()
    directory = Path(service_dir or os.getcwd()).resolve()

    document = load_deployment_config(find_config_file(directory, config_file))
    stage = stage or (document.get("provider") or {}).get("stage")
    doppler_block = parse_doppler_block(document.get(VARIABLE_SOURCE_NAME))
    request = build_request(params, doppler_block, stage)

    engine = SecretResolutionEngine(
        service_dir=directory,
        settings=settings,
        prompter=select_choice,
        is_tty=is_interactive,
    )

    return build_variable_resolver(request, engine=engine)


def _report(func: Callable[..., int]) -> Callable[..., int]:
    """Print DopplerVarsError messages before the exit code is returned."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        try:
            return func(*args, **kwargs)
        except DopplerVarsError as e:
            error(format_error_message(e))
            raise

    return wrapper


@main_with_error_handling()
@_report
def get_command(
    address: str,
    *,
    service_dir: str | None = None,
    config_file: str | None = None,
    stage: str | None = None,
    params: list[str] | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the value of one Doppler secret."""
    resolver = _make_resolver(
        service_dir=service_dir,
        config_file=config_file,
        stage=stage,
        params=params,
        settings=settings,
    )
    result = asyncio.run(resolver.resolve(address))
    sys.stdout.write(f"{result['value']}\n")
    return 0


def _format_env(secrets: dict[str, str]) -> str:
    return "".join(
        f"{name}={shlex.quote(value)}\n" for name, value in sorted(secrets.items())
    )


@main_with_error_handling()
@_report
def export_command(
    *,
    output_format: str = "env",
    service_dir: str | None = None,
    config_file: str | None = None,
    stage: str | None = None,
    params: list[str] | None = None,
    settings: Settings | None = None,
) -> int:
    """Print every secret of the resolved project config."""
    resolver = _make_resolver(
        service_dir=service_dir,
        config_file=config_file,
        stage=stage,
        params=params,
        settings=settings,
    )
    secrets = asyncio.run(resolver.secrets())

    if output_format == "json":
        sys.stdout.write(json.dumps(secrets, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(_format_env(secrets))
    return 0


@main_with_error_handling()
@_report
def local_command(
    *,
    service_dir: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Show what the Doppler CLI has cached for a directory."""
    settings = settings or get_settings()
    directory = Path(service_dir or os.getcwd()).resolve()
    loader = LocalCredentialLoader(
        settings_path=settings.local_settings_path,
        keyring_service=settings.keyring_service,
    )
    local = loader.load(directory)

    if not local.found:
        info(f"No Doppler CLI settings at {settings.local_settings_path}")
        return 0

    print_key_value(
        {
            "Directory": str(directory),
            "Token": mask_token(local.access_token) if local.access_token else "(none)",
            "Project": local.project_id or "(none)",
            "Config": local.config_id or "(none)",
        },
        title="Doppler CLI scope",
    )
    return 0


def schema_command() -> int:
    """Print the JSON schema of the ``doppler`` config block."""
    sys.stdout.write(json.dumps(CONFIG_SCHEMA, indent=2) + "\n")
    return 0
