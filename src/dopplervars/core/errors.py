"""
Errors raised while resolving Doppler secrets.

Three families, each with its own process exit code:

* ConfigurationError (10): nothing says which token, project or config to use
* ProviderError (11): Doppler failed or has nothing to offer
* ValidationError (12): a bad ``doppler`` block or an unknown secret name

Anything else is reported as 127.
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class DopplerVarsError(Exception):
    """Root of the dopplervars error tree; ``details`` end up in logs."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DopplerVarsError):
    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(DopplerVarsError):
    exit_code = ExitCode.PROVIDER_ERROR


class ValidationError(DopplerVarsError):
    exit_code = ExitCode.VALIDATION_ERROR


class MissingTokenError(ConfigurationError):
    """No access token in the declared config, CLI params or local settings."""

    def __init__(self, message: str = "missing doppler access token", **kwargs: Any):
        super().__init__(message, **kwargs)


class LocalSettingsUnavailableError(ConfigurationError):
    """Local fallback was explicitly requested but yielded no token."""

    def __init__(
        self,
        message: str = "local doppler settings unavailable",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)


class MissingProjectError(ConfigurationError):
    def __init__(self, message: str = "missing doppler project", **kwargs: Any):
        super().__init__(message, **kwargs)


class MissingConfigError(ConfigurationError):
    def __init__(self, message: str = "missing doppler config", **kwargs: Any):
        super().__init__(message, **kwargs)


class NoProjectsAvailableError(ProviderError):
    def __init__(self, message: str = "no available doppler projects", **kwargs: Any):
        super().__init__(message, **kwargs)


class NoConfigsAvailableError(ProviderError):
    def __init__(self, message: str = "no available doppler configs", **kwargs: Any):
        super().__init__(message, **kwargs)


class AmbiguousServiceTokenBindingError(ConfigurationError):
    """A service token resolved to zero or several projects/configs."""


class ServiceTokenMismatchError(ConfigurationError):
    """The requested project/config conflicts with the service token binding."""


class SelectionRequiredError(ConfigurationError):
    """A project/config choice is needed but prompting is disabled."""


class UnresolvedSecretAddressError(ValidationError):
    """The requested secret name is not present in the fetched secrets."""

    def __init__(self, address: str):
        super().__init__(
            f'could not resolve doppler secret "{address}"',
            details={"address": address},
        )
        self.address = address


INTERRUPTED_EXIT_CODE = 130

F = TypeVar("F", bound=Callable[..., int])


def exit_code_for(exc: BaseException) -> int:
    """Exit code a command returns when it fails with ``exc``."""
    if isinstance(exc, DopplerVarsError):
        return int(exc.exit_code)
    if isinstance(exc, KeyboardInterrupt):
        return INTERRUPTED_EXIT_CODE
    return int(ExitCode.UNKNOWN_ERROR)


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Turn exceptions escaping a command into its exit code.

    DopplerVarsError subclasses return their own ``exit_code``, Ctrl-C
    returns 130 and anything else returns 127. Tracebacks are printed only
    when asked for, either here or by the error class.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except (KeyboardInterrupt, Exception) as exc:
                code = exit_code_for(exc)
                if log_errors:
                    _log_failure(func.__name__, exc, code)
                if show_traceback or getattr(exc, "show_traceback", False):
                    traceback.print_exc(file=sys.stderr)
                return code

        return wrapper  # type: ignore[return-value]

    return decorator


def _log_failure(command: str, exc: BaseException, code: int) -> None:
    if isinstance(exc, KeyboardInterrupt):
        logger.info("command_interrupted", command=command)
    elif isinstance(exc, DopplerVarsError):
        logger.error(
            "command_failed",
            command=command,
            error_type=type(exc).__name__,
            error=exc.message,
            exit_code=code,
            **exc.details,
        )
    else:
        logger.error(
            "command_crashed",
            command=command,
            error_type=type(exc).__name__,
            error=str(exc),
            exit_code=code,
        )


def format_error_message(error: DopplerVarsError) -> str:
    """``message (key=value, ...)`` for terminal output."""
    if not error.details:
        return error.message
    details = ", ".join(f"{key}={value}" for key, value in error.details.items())
    return f"{error.message} ({details})"
