"""Tests for cli/ux.py."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dopplervars.cli import ux
from dopplervars.resolver.engine import Choice


class TestIsInteractive:
    """Tests for is_interactive."""

    @pytest.mark.parametrize("var", ux.CI_ENV_VARS)
    def test_ci_is_never_interactive(self, monkeypatch, var):
        monkeypatch.setenv(var, "true")
        monkeypatch.setattr("sys.stdin", MagicMock(isatty=MagicMock(return_value=True)))

        assert ux.is_interactive() is False

    def test_tty(self, monkeypatch):
        for var in ux.CI_ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setattr("sys.stdin", MagicMock(isatty=MagicMock(return_value=True)))

        assert ux.is_interactive() is True

    def test_pipe(self, monkeypatch):
        for var in ux.CI_ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setattr("sys.stdin", MagicMock(isatty=MagicMock(return_value=False)))

        assert ux.is_interactive() is False


class TestOutput:
    """Messages go to stderr."""

    def test_error_and_info(self, capsys):
        ux.error("missing doppler project")
        ux.info("nothing cached")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "missing doppler project" in captured.err
        assert "nothing cached" in captured.err

    def test_print_key_value(self, capsys):
        ux.print_key_value({"Project": "backend", "Config": "dev"}, title="Scope")

        err = capsys.readouterr().err
        assert "Scope" in err
        assert "Project:" in err
        assert "backend" in err


@pytest.mark.asyncio
class TestSelectChoice:
    """Tests for select_choice."""

    async def test_initial_choice_is_default(self):
        question = MagicMock()
        question.ask_async = AsyncMock(return_value="prd")

        with patch("dopplervars.cli.ux.questionary.select", return_value=question) as select:
            result = await ux.select_choice(
                "Select a Doppler config", [Choice("dev", "dev"), Choice("prd", "prd")], 1
            )

        assert result == "prd"
        kwargs = select.call_args.kwargs
        assert kwargs["default"].value == "prd"
        assert [c.value for c in kwargs["choices"]] == ["dev", "prd"]

    async def test_no_default(self):
        question = MagicMock()
        question.ask_async = AsyncMock(return_value=None)

        with patch("dopplervars.cli.ux.questionary.select", return_value=question) as select:
            result = await ux.select_choice("Select a Doppler project", [Choice("a", "a")])

        assert result is None
        assert select.call_args.kwargs["default"] is None
