"""
Tests for configuration loading and typed run settings.
"""

from pathlib import Path

import pytest

from feedrelay.config.loader import Config, load_config
from feedrelay.config.resolver import find_unresolved, resolve_config, substitute
from feedrelay.config.settings import RunSettings, load_run_settings
from feedrelay.exceptions import ConfigurationError

BASE_CONFIG = """
name: campus
integration:
  format: flatfile
  server:
    base_url: https://integration.example.com/
    username: ${FEEDRELAY_TEST_USER}
    password: secret
polling:
  interval: 5
  abort_threshold: 4
logging:
  dir: logs/{env}
feeds:
  - path: feeds/person.txt
    record_type: person
    operation: store
"""


@pytest.fixture
def project(tmp_path):
    (tmp_path / "config.yaml").write_text(BASE_CONFIG)
    return tmp_path


class TestLoadConfig:
    def test_missing_config(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("name: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_config(tmp_path)

    def test_feeds_required(self, tmp_path):
        (tmp_path / "config.yaml").write_text("name: campus\n")
        with pytest.raises(ConfigurationError, match="'feeds' is required"):
            load_config(tmp_path)

    def test_section_must_be_mapping(self, tmp_path):
        (tmp_path / "config.yaml").write_text("polling: 5\nfeeds: []\n")
        with pytest.raises(ConfigurationError, match="'polling' must be a dictionary"):
            load_config(tmp_path)

    def test_env_overlay_is_merged(self, project):
        (project / "config.prod.yaml").write_text("polling:\n  interval: 60\n")
        config = load_config(project, env="prod")

        assert config.get("polling.interval") == 60
        assert config.get("polling.abort_threshold") == 4
        assert config.get("logging.dir") == "logs/prod"

    def test_environment_variables_are_substituted(self, project, monkeypatch):
        monkeypatch.setenv("FEEDRELAY_TEST_USER", "integration-user")
        config = load_config(project)
        assert config["integration.server.username"] == "integration-user"

    def test_unset_variables_are_left_as_written(self, monkeypatch):
        monkeypatch.delenv("FEEDRELAY_UNSET", raising=False)
        assert resolve_config({"a": "${FEEDRELAY_UNSET}"}) == {"a": "${FEEDRELAY_UNSET}"}

    def test_default_used_when_variable_unset(self, monkeypatch):
        monkeypatch.delenv("FEEDRELAY_UNSET", raising=False)
        monkeypatch.setenv("FEEDRELAY_EMPTY", "")
        monkeypatch.setenv("FEEDRELAY_SET", "value")

        assert substitute("${FEEDRELAY_UNSET:-fallback}") == "fallback"
        assert substitute("${FEEDRELAY_EMPTY:-fallback}") == "fallback"
        assert substitute("${FEEDRELAY_EMPTY}") == ""
        assert substitute("${FEEDRELAY_SET:-fallback}") == "value"
        assert substitute("logs/{env}", env="prod") == "logs/prod"

    def test_find_unresolved(self):
        data = {"server": {"base_url": "https://x", "password": "${SIS_PASSWORD}"}, "hosts": ["${SIS_HOST}"]}
        assert list(find_unresolved(data, "integration")) == [
            ("integration.server.password", "SIS_PASSWORD"),
            ("integration.hosts[0]", "SIS_HOST"),
        ]

    def test_dict_like_access(self):
        config = Config({"integration": {"format": "xml"}, "feeds": []})
        assert "integration.format" in config
        assert "integration.server" not in config
        assert isinstance(config["integration"], Config)
        assert list(config) == ["integration", "feeds"]
        with pytest.raises(KeyError):
            config["missing"]


class TestRunSettings:
    def test_from_config(self, project, monkeypatch):
        monkeypatch.setenv("FEEDRELAY_TEST_USER", "integration-user")
        settings = load_run_settings(project)

        assert settings.name == "campus"
        assert settings.integration_format == "flatfile"
        assert settings.server.base_url == "https://integration.example.com"
        assert settings.server.username == "integration-user"
        assert settings.polling.interval == 5.0
        assert settings.polling.abort_threshold == 4
        assert settings.logging.dir == project / "logs" / "dev"
        assert settings.archive.dir == project / "archive"
        assert settings.archive.enabled
        assert not settings.notification.enabled
        assert settings.feeds[0].path == project / "feeds" / "person.txt"

    def test_format_is_kept_as_written(self, project, monkeypatch):
        monkeypatch.setenv("FEEDRELAY_TEST_USER", "integration-user")
        config = load_config(project)
        config.data["integration"]["format"] = "Bogus"
        assert RunSettings.from_config(config, project).integration_format == "Bogus"

    def test_base_url_required(self, tmp_path):
        config = Config({"integration": {"server": {}}, "feeds": []})
        with pytest.raises(ConfigurationError, match="base_url"):
            RunSettings.from_config(config, tmp_path)

    def test_unset_credentials_are_rejected(self, project, monkeypatch):
        monkeypatch.delenv("FEEDRELAY_TEST_USER", raising=False)
        with pytest.raises(ConfigurationError, match="integration.server.username") as exc_info:
            load_run_settings(project)
        assert exc_info.value.details == {"unresolved": ["FEEDRELAY_TEST_USER"]}

    def test_unset_base_url_is_rejected(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FEEDRELAY_UNSET_URL", raising=False)
        config = Config({"integration": {"server": {"base_url": "${FEEDRELAY_UNSET_URL}"}}, "feeds": []})
        with pytest.raises(ConfigurationError, match="FEEDRELAY_UNSET_URL"):
            RunSettings.from_config(config, tmp_path)

    def test_disabled_notification_ignores_placeholders(self, tmp_path):
        config = Config({
            "integration": {"server": {"base_url": "https://x"}},
            "notification": {"enabled": False, "password": "${FEEDRELAY_SMTP_PASSWORD}"},
            "feeds": [],
        })
        assert not RunSettings.from_config(config, tmp_path).notification.enabled

    @pytest.mark.parametrize("polling", [{"interval": -1}, {"interval": "soon"}, {"abort_threshold": 0}])
    def test_bad_polling_values(self, tmp_path, polling):
        config = Config({"integration": {"server": {"base_url": "https://x"}}, "polling": polling, "feeds": []})
        with pytest.raises(ConfigurationError, match="polling"):
            RunSettings.from_config(config, tmp_path)

    def test_feed_entry_must_be_complete(self, tmp_path):
        config = Config({
            "integration": {"server": {"base_url": "https://x"}},
            "feeds": [{"path": "person.txt", "record_type": "person"}],
        })
        with pytest.raises(ConfigurationError, match="operation"):
            RunSettings.from_config(config, tmp_path)

    def test_notification_needs_recipients(self, tmp_path):
        config = Config({
            "integration": {"server": {"base_url": "https://x"}},
            "notification": {"enabled": True},
            "feeds": [],
        })
        with pytest.raises(ConfigurationError, match="recipients"):
            RunSettings.from_config(config, tmp_path)

    def test_recipients_may_be_comma_separated(self, tmp_path):
        config = Config({
            "integration": {"server": {"base_url": "https://x"}},
            "notification": {"enabled": True, "recipients": "ops@example.com, sis@example.com"},
            "feeds": [],
        })
        settings = RunSettings.from_config(config, tmp_path)
        assert settings.notification.recipients == ("ops@example.com", "sis@example.com")

    def test_absolute_paths_are_kept(self, tmp_path):
        absolute = tmp_path / "elsewhere" / "person.txt"
        config = Config({
            "integration": {"server": {"base_url": "https://x"}},
            "feeds": [{"path": str(absolute), "record_type": "person", "operation": "store"}],
        })
        settings = RunSettings.from_config(config, Path("/project"))
        assert settings.feeds[0].path == absolute
