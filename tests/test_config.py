"""Tests for contentful_migrations.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the standalone
server bootstrap path: validate_config() and load_config().
"""

import logging

import pytest

from contentful_migrations.config import Config, load_config, validate_config

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config(): credential and range checks."""

    def test_valid_config(self):
        validate_config(Config(space_id="space1", access_token="CFPAT-x"))

    def test_empty_space_id(self):
        config = Config(space_id="  ", access_token="CFPAT-x")
        with pytest.raises(ValueError, match="Space id cannot be empty"):
            validate_config(config)

    def test_empty_token(self):
        config = Config(space_id="space1", access_token="")
        with pytest.raises(ValueError, match="Management token cannot be empty"):
            validate_config(config)

    def test_empty_host(self):
        config = Config(space_id="space1", access_token="t", host=" ")
        with pytest.raises(ValueError, match="host cannot be empty"):
            validate_config(config)

    def test_trailing_slash_stripped(self):
        config = Config(space_id="s", access_token="t", host="https://cma.local/")
        validate_config(config)
        assert config.host == "https://cma.local"
        assert config.base_url == "https://cma.local"

    def test_bare_host_gets_https(self):
        assert Config(space_id="s", access_token="t").base_url == (
            "https://api.contentful.com"
        )

    def test_invalid_storage(self):
        config = Config(space_id="s", access_token="t", storage="file")
        with pytest.raises(ValueError, match="Invalid migration storage 'file'"):
            validate_config(config)

    @pytest.mark.parametrize("value", [0, 101])
    def test_max_parallel_out_of_range(self, value):
        config = Config(space_id="s", access_token="t", max_parallel_requests=value)
        with pytest.raises(ValueError, match="max_parallel_requests"):
            validate_config(config)

    @pytest.mark.parametrize("value", [0, 1001])
    def test_page_size_out_of_range(self, value):
        config = Config(space_id="s", access_token="t", page_size=value)
        with pytest.raises(ValueError, match="page_size"):
            validate_config(config)

    def test_insecure_logs_warning(self, caplog):
        config = Config(space_id="s", access_token="t", insecure=True)
        with caplog.at_level(logging.WARNING):
            validate_config(config)
        assert "SSL verification disabled" in caplog.text

    def test_secure_no_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            validate_config(Config(space_id="s", access_token="t"))
        assert "SSL verification disabled" not in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("CONTENTFUL_SPACE_ID", "env-space")
    monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "env-token")


class TestLoadConfig:
    """Tests for load_config(): env vars and CLI overrides."""

    def test_load_from_env_vars(self, credentials):
        config = load_config()
        assert config.space_id == "env-space"
        assert config.access_token == "env-token"
        assert config.host == "api.contentful.com"
        assert config.storage == "tag"
        assert config.max_parallel_requests == 2
        assert config.page_size == 1000

    def test_cli_args_override_env(self, credentials):
        config = load_config(
            space_id="cli-space", access_token="cli-token", storage="content"
        )
        assert config.space_id == "cli-space"
        assert config.access_token == "cli-token"
        assert config.storage == "content"

    def test_missing_space_raises(self):
        with pytest.raises(ValueError, match="Space id not found"):
            load_config(access_token="t")

    def test_missing_token_raises(self):
        with pytest.raises(ValueError, match="Management token not found"):
            load_config(space_id="s")

    def test_credentials_whitespace_stripped(self, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_SPACE_ID", "  space1 ")
        monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", " token\n")
        config = load_config()
        assert config.space_id == "space1"
        assert config.access_token == "token"

    def test_storage_normalised(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_MIGRATIONS_STORAGE", " Content ")
        assert load_config().storage == "content"

    def test_invalid_storage_rejected(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_MIGRATIONS_STORAGE", "file")
        with pytest.raises(ValueError, match="Invalid migration storage"):
            load_config()

    def test_host_from_env(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_HOST", "api.eu.contentful.com")
        assert load_config().base_url == "https://api.eu.contentful.com"

    @pytest.mark.parametrize("value", ["true", "1", "yes", "on", "TRUE"])
    def test_insecure_truthy_values(self, credentials, monkeypatch, value):
        monkeypatch.setenv("CONTENTFUL_INSECURE", value)
        assert load_config().insecure is True

    @pytest.mark.parametrize("value", ["false", "0", "no", ""])
    def test_insecure_falsy_values(self, credentials, monkeypatch, value):
        monkeypatch.setenv("CONTENTFUL_INSECURE", value)
        assert load_config().insecure is False

    def test_cli_flags_override_env(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_INSECURE", "false")
        monkeypatch.setenv("CONTENTFUL_DEBUG", "false")
        config = load_config(insecure=True, debug=True)
        assert config.insecure is True
        assert config.debug is True

    def test_max_parallel_from_env(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_MAX_PARALLEL_REQUESTS", "8")
        assert load_config().max_parallel_requests == 8

    @pytest.mark.parametrize("value", ["abc", "0", "-1", "101"])
    def test_max_parallel_invalid(self, credentials, monkeypatch, value):
        monkeypatch.setenv("CONTENTFUL_MAX_PARALLEL_REQUESTS", value)
        with pytest.raises(ValueError, match="CONTENTFUL_MAX_PARALLEL_REQUESTS"):
            load_config()

    def test_page_size_from_env(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_PAGE_SIZE", "250")
        assert load_config().page_size == 250

    def test_page_size_too_high(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_PAGE_SIZE", "5000")
        with pytest.raises(ValueError, match="between 1 and 1000"):
            load_config()


class TestLoadConfigWithYamlFallbacks:
    """YAML values fill in only what CLI and env leave unset."""

    def test_yaml_fallback_used(self):
        config = load_config(
            yaml_fallbacks={
                "space_id": "yaml-space",
                "access_token": "yaml-token",
                "storage": "content",
                "field_id": "version",
                "migration_content_type_id": "migrations",
                "page_size": 200,
            }
        )
        assert config.space_id == "yaml-space"
        assert config.storage == "content"
        assert config.field_id == "version"
        assert config.migration_content_type_id == "migrations"
        assert config.page_size == 200

    def test_env_overrides_yaml(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_MAX_PARALLEL_REQUESTS", "4")
        config = load_config(
            yaml_fallbacks={"space_id": "yaml-space", "max_parallel_requests": 9}
        )
        assert config.space_id == "env-space"
        assert config.max_parallel_requests == 4

    def test_cli_overrides_env_and_yaml(self, credentials):
        config = load_config(
            space_id="cli-space", yaml_fallbacks={"space_id": "yaml-space"}
        )
        assert config.space_id == "cli-space"

    def test_boolean_fallbacks(self, credentials):
        config = load_config(yaml_fallbacks={"insecure": True, "debug": True})
        assert config.insecure is True
        assert config.debug is True

    def test_boolean_env_overrides_yaml(self, credentials, monkeypatch):
        monkeypatch.setenv("CONTENTFUL_INSECURE", "0")
        assert load_config(yaml_fallbacks={"insecure": True}).insecure is False

    def test_empty_fallbacks_same_as_none(self, credentials):
        assert load_config(yaml_fallbacks={}) == load_config()
