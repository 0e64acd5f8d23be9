"""
Merging of Doppler settings from CLI params and the declared config block.

Precedence, field by field:
1. CLI params (``--param doppler-token=...``)
2. ``doppler.stages.<stage>`` in the deployment config
3. ``doppler`` top-level keys in the deployment config
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

CLI_PARAM_PREFIX = "doppler-"

# field name -> (CLI param key, declared config key)
FIELD_SOURCES: dict[str, tuple[str, str]] = {
    "access_token": ("doppler-token", "token"),
    "project_id": ("doppler-project", "project"),
    "config_id": ("doppler-config", "config"),
    "local_fallback": ("doppler-local-fallback", "localFallback"),
    "non_interactive": ("doppler-non-interactive", "nonInteractive"),
}


@dataclass(frozen=True)
class ResolvedRequest:
    """Doppler settings for one deployment run after precedence is applied."""

    access_token: str | None = None
    project_id: str | None = None
    config_id: str | None = None
    local_fallback: bool | None = None
    non_interactive: bool = False


def _parse_cli_value(value: str | None) -> str | bool:
    if value is None or value == "true":
        return True
    if value == "false":
        return False
    return value


def parse_cli_params(params: Iterable[str] | None) -> dict[str, str | bool]:
    """
    Parse ``key=value`` CLI params, keeping only ``doppler-`` keys.

    A bare key (``doppler-non-interactive``) and the literals ``true`` and
    ``false`` are parsed as booleans.
    """
    parsed: dict[str, str | bool] = {}
    for param in params or []:
        if not param.startswith(CLI_PARAM_PREFIX):
            continue
        key, sep, value = param.partition("=")
        parsed[key] = _parse_cli_value(value if sep else None)
    return parsed


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def merge_sources(
    cli_params: Mapping[str, Any] | None,
    stage_config: Mapping[str, Any] | None,
    global_config: Mapping[str, Any] | None,
) -> ResolvedRequest:
    """Combine the three layers into a ResolvedRequest."""
    cli_params = cli_params or {}
    stage_config = stage_config or {}
    global_config = global_config or {}

    merged = {
        field: _first_present(
            cli_params.get(cli_key),
            stage_config.get(config_key),
            global_config.get(config_key),
        )
        for field, (cli_key, config_key) in FIELD_SOURCES.items()
    }

    return ResolvedRequest(
        access_token=_as_str(merged["access_token"]),
        project_id=_as_str(merged["project_id"]),
        config_id=_as_str(merged["config_id"]),
        local_fallback=_as_bool(merged["local_fallback"]),
        non_interactive=bool(_as_bool(merged["non_interactive"])),
    )


def _as_str(value: Any) -> str | None:
    # a bare ``doppler-token`` flag carries no value
    if value is None or isinstance(value, bool):
        return None
    return str(value)


def _as_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    # ``--param doppler-local-fallback=yes`` and friends
    return str(value).strip().lower() in ("1", "yes", "on", "true")


def build_request(
    params: Iterable[str] | None,
    doppler_block: Mapping[str, Any] | None,
    stage: str | None,
) -> ResolvedRequest:
    """
    Build the request for a run from raw CLI params and the ``doppler`` block.

    Args:
        params: Raw ``key=value`` CLI params
        doppler_block: Declared ``doppler`` config (may be None)
        stage: Current deployment stage name
    """
    doppler_block = doppler_block or {}
    stages = doppler_block.get("stages") or {}
    stage_config = stages.get(stage) if stage else None

    return merge_sources(parse_cli_params(params), stage_config, doppler_block)
