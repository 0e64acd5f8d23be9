"""Tests for the dopplervars CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml

from dopplervars.cli import commands
from dopplervars.cli.main import build_parser, main
from dopplervars.config.precedence import ResolvedRequest
from dopplervars.core.errors import ExitCode, MissingTokenError


@pytest.fixture
def service_dir(tmp_path):
    directory = tmp_path / "service"
    directory.mkdir()
    (directory / "serverless.yml").write_text(
        yaml.safe_dump(
            {
                "service": "backend",
                "provider": {"stage": "dev"},
                "doppler": {"project": "backend", "stages": {"dev": {"config": "dev"}}},
            }
        )
    )
    return directory


@pytest.fixture
def engine_cls():
    """Patch the engine used by the commands and expose its instance."""
    with patch("dopplervars.cli.commands.SecretResolutionEngine") as cls:
        cls.return_value.resolve_secrets = AsyncMock(
            return_value={"API_KEY": "abc", "MOTD": "it's on", "EMPTY": ""}
        )
        yield cls


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_default_name(self, service_dir):
        assert commands.find_config_file(service_dir) == service_dir / "serverless.yml"

    def test_none_found(self, tmp_path):
        assert commands.find_config_file(tmp_path) is None

    def test_explicit_missing(self, tmp_path):
        with pytest.raises(commands.ConfigurationError):
            commands.find_config_file(tmp_path, "missing.yml")

    def test_non_mapping_config(self, tmp_path):
        path = tmp_path / "serverless.yml"
        path.write_text("- a\n- b\n")

        with pytest.raises(commands.ConfigurationError):
            commands.load_deployment_config(path)


class TestReport:
    """Tests for the error reporting wrapper."""

    def test_prints_and_reraises(self, capsys):
        @commands._report
        def command() -> int:
            raise MissingTokenError()

        with pytest.raises(MissingTokenError):
            command()

        assert "missing doppler access token" in capsys.readouterr().err
        assert command.__name__ == "command"

    def test_passes_exit_code_through(self):
        @commands._report
        def command() -> int:
            return 0

        assert command() == 0


class TestGetCommand:
    """Tests for get_command."""

    def test_prints_value(self, service_dir, settings, engine_cls, capsys):
        exit_code = commands.get_command(
            "API_KEY", service_dir=str(service_dir), settings=settings
        )

        assert exit_code == 0
        assert capsys.readouterr().out == "abc\n"
        engine_cls.return_value.resolve_secrets.assert_awaited_once_with(
            ResolvedRequest(project_id="backend", config_id="dev")
        )

    def test_stage_and_params(self, service_dir, settings, engine_cls):
        """--stage and --param feed into the request."""
        commands.get_command(
            "API_KEY",
            service_dir=str(service_dir),
            stage="production",
            params=["doppler-config=prd", "doppler-token=dp.st.x"],
            settings=settings,
        )

        engine_cls.return_value.resolve_secrets.assert_awaited_once_with(
            ResolvedRequest(access_token="dp.st.x", project_id="backend", config_id="prd")
        )

    def test_unknown_secret(self, service_dir, settings, engine_cls, capsys):
        exit_code = commands.get_command("NOPE", service_dir=str(service_dir), settings=settings)

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert "NOPE" in capsys.readouterr().err

    def test_resolution_error(self, service_dir, settings, engine_cls, capsys):
        engine_cls.return_value.resolve_secrets = AsyncMock(side_effect=MissingTokenError())

        exit_code = commands.get_command("API_KEY", service_dir=str(service_dir), settings=settings)

        assert exit_code == ExitCode.CONFIG_ERROR
        assert "missing doppler access token" in capsys.readouterr().err


class TestExportCommand:
    """Tests for export_command."""

    def test_env_format(self, service_dir, settings, engine_cls, capsys):
        exit_code = commands.export_command(service_dir=str(service_dir), settings=settings)

        assert exit_code == 0
        assert capsys.readouterr().out == "API_KEY=abc\nEMPTY=''\nMOTD='it'\"'\"'s on'\n"

    def test_json_format(self, service_dir, settings, engine_cls, capsys):
        exit_code = commands.export_command(
            output_format="json", service_dir=str(service_dir), settings=settings
        )

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {
            "API_KEY": "abc",
            "EMPTY": "",
            "MOTD": "it's on",
        }


class TestLocalCommand:
    """Tests for local_command."""

    def test_missing_settings_file(self, tmp_path, settings, capsys):
        exit_code = commands.local_command(service_dir=str(tmp_path), settings=settings)

        assert exit_code == 0
        assert "No Doppler CLI settings" in capsys.readouterr().err

    def test_shows_scope(self, tmp_path, settings, capsys):
        settings.local_settings_path.parent.mkdir(parents=True)
        settings.local_settings_path.write_text(
            yaml.safe_dump(
                {
                    "scoped": {
                        "/": {"token": "account-1"},
                        str(tmp_path.resolve()): {
                            "enclave.project": "backend",
                            "enclave.config": "dev",
                        },
                    }
                }
            )
        )

        with patch(
            "dopplervars.config.local.keyring.get_password", return_value="dp.ct.abcdef"
        ) as get_password:
            exit_code = commands.local_command(service_dir=str(tmp_path), settings=settings)

        assert exit_code == 0
        get_password.assert_called_once_with("doppler-cli", "account-1")
        err = capsys.readouterr().err
        assert "dp.ct.***" in err
        assert "abcdef" not in err
        assert "backend" in err


class TestMain:
    """Tests for argument parsing and dispatch."""

    def test_parser(self):
        args = build_parser().parse_args(
            ["get", "API_KEY", "--stage", "prod", "--param", "doppler-project=a", "--param", "x=y"]
        )

        assert args.command == "get"
        assert args.address == "API_KEY"
        assert args.stage == "prod"
        assert args.params == ["doppler-project=a", "x=y"]

    def test_schema(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["schema"])

        assert exc_info.value.code == 0
        schema = json.loads(capsys.readouterr().out)
        assert "localFallback" in schema["properties"]

    def test_dispatches_export(self):
        with patch.object(commands, "export_command", MagicMock(return_value=0)) as export:
            with pytest.raises(SystemExit) as exc_info:
                main(["export", "--format", "json", "--service-dir", "/srv/app"])

        assert exc_info.value.code == 0
        export.assert_called_once_with(
            output_format="json",
            service_dir="/srv/app",
            config_file=None,
            stage=None,
            params=[],
        )

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
