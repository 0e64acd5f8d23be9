"""Tests for core/errors.py."""

from dopplervars.core.errors import (
    AmbiguousServiceTokenBindingError,
    ConfigurationError,
    ExitCode,
    LocalSettingsUnavailableError,
    MissingTokenError,
    NoProjectsAvailableError,
    ProviderError,
    UnresolvedSecretAddressError,
    ValidationError,
    exit_code_for,
    format_error_message,
    main_with_error_handling,
)


class TestErrorHierarchy:
    """Tests for the error taxonomy."""

    def test_exit_codes(self):
        """Each family maps to its exit code."""
        assert MissingTokenError().exit_code == ExitCode.CONFIG_ERROR
        assert NoProjectsAvailableError().exit_code == ExitCode.PROVIDER_ERROR
        assert UnresolvedSecretAddressError("X").exit_code == ExitCode.VALIDATION_ERROR

    def test_default_messages(self):
        """Defaults name the missing element."""
        assert str(MissingTokenError()) == "missing doppler access token"
        assert str(NoProjectsAvailableError()) == "no available doppler projects"
        assert "local doppler settings" in str(LocalSettingsUnavailableError())

    def test_unresolved_address_names_address(self):
        """The message includes the requested address."""
        error = UnresolvedSecretAddressError("STRIPE_KEY")
        assert 'could not resolve doppler secret "STRIPE_KEY"' == str(error)
        assert error.address == "STRIPE_KEY"
        assert error.details == {"address": "STRIPE_KEY"}

    def test_families(self):
        """Specific errors derive from their family."""
        assert issubclass(AmbiguousServiceTokenBindingError, ConfigurationError)
        assert issubclass(NoProjectsAvailableError, ProviderError)
        assert issubclass(UnresolvedSecretAddressError, ValidationError)


class TestMainWithErrorHandling:
    """Tests for main_with_error_handling."""

    def test_success(self):
        @main_with_error_handling()
        def command() -> int:
            return 0

        assert command() == 0

    def test_known_error(self):
        """Known errors return their exit code."""

        @main_with_error_handling()
        def command() -> int:
            raise MissingTokenError()

        assert command() == ExitCode.CONFIG_ERROR

    def test_unknown_error(self):
        """Unexpected exceptions return 127."""

        @main_with_error_handling()
        def command() -> int:
            raise RuntimeError("boom")

        assert command() == ExitCode.UNKNOWN_ERROR

    def test_keyboard_interrupt(self):
        @main_with_error_handling(log_errors=False)
        def command() -> int:
            raise KeyboardInterrupt

        assert command() == 130


def test_format_error_message():
    """Details are appended to the message."""
    error = ConfigurationError("bad", details={"path": "x.yml"})
    assert format_error_message(error) == "bad (path=x.yml)"
    assert format_error_message(ConfigurationError("plain")) == "plain"


def test_exit_code_for():
    """Maps any exception to the code a command returns."""
    assert exit_code_for(MissingTokenError()) == 10
    assert exit_code_for(KeyboardInterrupt()) == 130
    assert exit_code_for(RuntimeError("boom")) == 127
