"""
Shape of the ``doppler`` block in a deployment config.

The block is declared to the host tool as a JSON schema (``CONFIG_SCHEMA``)
so it can validate user configs upstream; ``parse_doppler_block`` applies
the same shape locally.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from dopplervars.core.errors import ValidationError


class StageDopplerConfig(BaseModel):
    """Per-stage overrides of the ``doppler`` block."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    token: Optional[str] = Field(None, description="Doppler access token")
    project: Optional[str] = Field(None, description="Doppler project slug")
    config: Optional[str] = Field(None, description="Doppler config name")
    local_fallback: Optional[bool] = Field(
        None,
        alias="localFallback",
        description="Use token/project/config cached by the Doppler CLI",
    )
    non_interactive: Optional[bool] = Field(
        None,
        alias="nonInteractive",
        description="Never prompt for project/config selection",
    )


class DopplerConfig(StageDopplerConfig):
    """Top-level ``doppler`` block."""

    stages: Dict[str, StageDopplerConfig] = Field(
        default_factory=dict,
        description="Overrides keyed by stage name",
    )


def _strip_titles(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {k: _strip_titles(v) for k, v in schema.items() if k != "title"}
    if isinstance(schema, list):
        return [_strip_titles(v) for v in schema]
    return schema


def build_config_schema() -> dict[str, Any]:
    """JSON schema for the ``doppler`` block, keyed by the YAML names."""
    return _strip_titles(DopplerConfig.model_json_schema(by_alias=True))


CONFIG_SCHEMA: dict[str, Any] = build_config_schema()


def parse_doppler_block(data: Any) -> dict[str, Any]:
    """
    Validate a declared ``doppler`` block.

    Returns:
        The block as a plain dict using the YAML key names, without unset keys

    Raises:
        ValidationError: If the block does not match the schema
    """
    if data is None:
        return {}
    try:
        block = DopplerConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "invalid doppler config block",
            details={"errors": e.error_count()},
        ) from e
    return block.model_dump(by_alias=True, exclude_none=True)
