"""
Tests for CLI commands.

Uses typer's CliRunner; the integration client is replaced by a scripted one.
"""

import pytest
from typer.testing import CliRunner

from feedrelay import __version__
from feedrelay.cli.main import app
from feedrelay.config.settings import load_run_settings
from feedrelay.testing import ScriptedIntegrationClient

runner = CliRunner()

PROJECT_CONFIG = """
name: campus
integration:
  format: {format}
  server:
    base_url: https://integration.example.com
polling:
  interval: 0
  abort_threshold: 3
logging:
  console_enabled: false
feeds:
  - path: feeds/person.txt
    record_type: person
    operation: store
"""


@pytest.fixture
def project(tmp_path, write_flatfile):
    def _make(fmt="flatfile", records=3):
        (tmp_path / "config.yaml").write_text(PROJECT_CONFIG.format(format=fmt))
        write_flatfile("person.txt", records)
        return tmp_path

    return _make


@pytest.fixture
def scripted_client(monkeypatch):
    client = ScriptedIntegrationClient()
    monkeypatch.setattr("feedrelay.cli.run.HttpIntegrationClient", lambda options: client)
    return client


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"feedrelay version {__version__}" in result.output

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "feedrelay version" in result.output


class TestHelp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "feedrelay" in result.output.lower()

    @pytest.mark.parametrize("command", ["run", "validate", "config", "init"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestRun:
    def test_successful_run(self, project, scripted_client):
        project_dir = project(records=3)
        scripted_client.completed["person.txt"] = [3]

        result = runner.invoke(app, ["run", "--project-dir", str(project_dir), "--no-notify"])

        assert result.exit_code == 0, result.output
        assert "SUCCESS" in result.output
        assert scripted_client.submitted == [("person.txt", "person", "store")]
        assert not (project_dir / "feeds" / "person.txt").exists()
        assert len(list((project_dir / "logs").glob("feedrelay_*.log"))) == 1
        assert len(list((project_dir / "archive").glob("feeds_*.zip"))) == 1

    def test_run_with_errors_exits_non_zero(self, project, scripted_client):
        project_dir = project(records=3)
        scripted_client.submit_failures["person.txt"] = "HTTP 500"

        result = runner.invoke(app, ["run", "--project-dir", str(project_dir), "--no-notify"])

        assert result.exit_code == 1
        assert "ERRORS" in result.output

    def test_aborted_run_is_a_warning(self, project, scripted_client):
        project_dir = project(records=3)
        scripted_client.completed["person.txt"] = [1]

        result = runner.invoke(app, ["run", "--project-dir", str(project_dir), "--no-notify"])

        assert result.exit_code == 0
        assert "WARNINGS" in result.output

    def test_invalid_format_is_fatal(self, project, scripted_client):
        project_dir = project(fmt="Bogus")

        result = runner.invoke(app, ["run", "--project-dir", str(project_dir), "--no-notify"])

        assert result.exit_code == 1
        assert "GLOBAL CONFIGURATION ERROR" in result.output
        assert scripted_client.submitted == []
        assert (project_dir / "feeds" / "person.txt").exists()

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["run", "--project-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestValidate:
    def test_valid_project(self, project):
        result = runner.invoke(app, ["validate", "--project-dir", str(project())])
        assert result.exit_code == 0
        assert "All 1 feed files are valid" in result.output

    def test_missing_feed_file(self, project):
        project_dir = project()
        (project_dir / "feeds" / "person.txt").unlink()

        result = runner.invoke(app, ["validate", "--project-dir", str(project_dir)])

        assert result.exit_code == 1
        assert "1 of 1 feed files are invalid" in result.output

    def test_invalid_format(self, project):
        result = runner.invoke(app, ["validate", "--project-dir", str(project(fmt="Bogus"))])
        assert result.exit_code == 1
        assert "Invalid integration format" in result.output

    def test_validate_keeps_feed_files(self, project):
        project_dir = project()
        runner.invoke(app, ["validate", "--project-dir", str(project_dir)])
        assert (project_dir / "feeds" / "person.txt").exists()


class TestInit:
    def test_creates_project(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["init", "campus"])

        assert result.exit_code == 0
        project_dir = tmp_path / "campus"
        assert (project_dir / "config.yaml").exists()
        assert (project_dir / ".gitignore").exists()
        for directory in ("feeds", "logs", "archive"):
            assert (project_dir / directory).is_dir()
        assert "name: campus" in (project_dir / "config.yaml").read_text()

    def test_generated_config_loads(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("FEEDRELAY_BASE_URL", "https://integration.example.com")
        monkeypatch.setenv("FEEDRELAY_USERNAME", "integration-user")
        monkeypatch.setenv("FEEDRELAY_PASSWORD", "secret")
        runner.invoke(app, ["init", "campus"])

        settings = load_run_settings(tmp_path / "campus")
        assert settings.server.base_url == "https://integration.example.com"
        assert settings.archive.name_format == "feeds_%Y%m%d.zip"

    def test_generated_config_requires_credentials(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        for name in ("FEEDRELAY_BASE_URL", "FEEDRELAY_USERNAME", "FEEDRELAY_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        runner.invoke(app, ["init", "campus"])

        result = runner.invoke(app, ["validate", "--project-dir", str(tmp_path / "campus")])

        assert result.exit_code == 1
        assert "FEEDRELAY_BASE_URL" in result.output

    def test_existing_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "campus").mkdir()

        result = runner.invoke(app, ["init", "campus"])

        assert result.exit_code == 1
        assert "already exists" in result.output


class TestConfig:
    def test_lists_environments(self, project):
        project_dir = project()
        (project_dir / "config.prod.yaml").write_text("polling:\n  interval: 60\n")

        result = runner.invoke(app, ["config", "--project-dir", str(project_dir)])

        assert result.exit_code == 0
        assert "default" in result.output
        assert "prod" in result.output

    def test_show_environment(self, project):
        result = runner.invoke(app, ["config", "--project-dir", str(project()), "--env", "default"])
        assert result.exit_code == 0
        assert "base_url" in result.output

    def test_unknown_environment(self, project):
        result = runner.invoke(app, ["config", "--project-dir", str(project()), "--env", "staging"])
        assert result.exit_code == 1

    def test_no_config_files(self, tmp_path):
        result = runner.invoke(app, ["config", "--project-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No configuration files found" in result.output
