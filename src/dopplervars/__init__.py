"""
dopplervars: Doppler secrets as deployment config variables.

Resolves ``${doppler:NAME}`` references for a deployment tool with layered
settings (CLI params, per-stage config, global config, local Doppler CLI
login) and a single secret fetch per run.
"""

from dopplervars.config.precedence import ResolvedRequest, build_request
from dopplervars.plugin import DopplerSecretsPlugin, build_variable_resolver
from dopplervars.resolver.engine import SecretResolutionEngine
from dopplervars.resolver.variables import VariableResolver

__version__ = "0.1.0"

__all__ = [
    "DopplerSecretsPlugin",
    "ResolvedRequest",
    "SecretResolutionEngine",
    "VariableResolver",
    "build_request",
    "build_variable_resolver",
]
