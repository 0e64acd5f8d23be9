"""
Secret resolution: engine, single-flight fetch and address lookup.
"""

from dopplervars.resolver.engine import (
    Choice,
    SecretResolutionEngine,
    flatten_secrets,
    mask_token,
)
from dopplervars.resolver.singleflight import FlightState, SingleFlight
from dopplervars.resolver.variables import VariableResolver

__all__ = [
    "Choice",
    "FlightState",
    "SecretResolutionEngine",
    "SingleFlight",
    "VariableResolver",
    "flatten_secrets",
    "mask_token",
]
