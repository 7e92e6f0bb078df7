"""Tests for the hierarchical YAML config loader.

Covers env var interpolation, ``!include`` handling, file discovery,
merging and the starter config written by ``ensure_config()``.
"""

import pytest
import yaml

from contentful_migrations.config_loader import (
    CONFIG_ENV_VAR,
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
)
from contentful_migrations.config_schema import build_config


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def project_config(tmp_path):
    return tmp_path / ".migrations" / "config.yml"


@pytest.fixture
def global_config(tmp_path):
    return tmp_path / "home" / ".config" / "contentful_migrations" / "config.yml"


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("CM_TOKEN", "CFPAT-1")
        assert interpolate_env_vars("${CM_TOKEN}") == "CFPAT-1"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("CM_MISSING", raising=False)
        assert interpolate_env_vars("x${CM_MISSING}y") == "xy"

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("CM_ENV", raising=False)
        assert interpolate_env_vars("${CM_ENV:-staging}") == "staging"
        monkeypatch.setenv("CM_ENV", "")
        assert interpolate_env_vars("${CM_ENV:-staging}") == "staging"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("CM_ENV", "qa")
        assert interpolate_env_vars("${CM_ENV:-staging}") == "qa"

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("cost ${5") == "cost ${5"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("CM_SPACE", "space1")
        data = {
            "contentful": {"space_id": "${CM_SPACE}", "page_size": 100},
            "envs": ["${CM_SPACE}-a", True],
        }
        assert _interpolate_recursive(data) == {
            "contentful": {"space_id": "space1", "page_size": 100},
            "envs": ["space1-a", True],
        }


# -------------------------------------------------------------------------
# YAML !include support
# -------------------------------------------------------------------------


class TestIncludeDirective:
    def test_include_relative_file(self, tmp_path):
        _write(tmp_path / "secrets.yml", "access_token: CFPAT-2\n")
        main = _write(tmp_path / "config.yml", "contentful: !include secrets.yml\n")

        assert _load_yaml_with_includes(main) == {
            "contentful": {"access_token": "CFPAT-2"}
        }

    def test_nested_includes(self, tmp_path):
        _write(tmp_path / "c.yml", "val: deep\n")
        _write(tmp_path / "b.yml", "inner: !include c.yml\n")
        a = _write(tmp_path / "a.yml", "outer: !include b.yml\n")

        assert _load_yaml_with_includes(a) == {"outer": {"inner": {"val": "deep"}}}

    def test_include_nonexistent_raises(self, tmp_path):
        main = _write(tmp_path / "config.yml", "data: !include missing.yml\n")
        with pytest.raises(FileNotFoundError, match="missing.yml"):
            _load_yaml_with_includes(main)

    def test_circular_include_raises(self, tmp_path):
        a = _write(tmp_path / "a.yml", "x: !include b.yml\n")
        _write(tmp_path / "b.yml", "y: !include a.yml\n")

        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(a)

    def test_self_include_raises(self, tmp_path):
        a = _write(tmp_path / "a.yml", "x: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(a)

    def test_global_safe_loader_not_polluted(self, tmp_path):
        cfg = _write(tmp_path / "test.yml", "x: !include other.yml\n")
        with pytest.raises(yaml.constructor.ConstructorError):
            with open(cfg) as fh:
                yaml.safe_load(fh)


# -------------------------------------------------------------------------
# Discovery and merge
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_empty_filesystem_returns_empty(self):
        assert discover_config_files() == []

    def test_precedence_order(
        self, tmp_path, monkeypatch, project_config, global_config
    ):
        explicit = _write(tmp_path / "explicit.yml", "{}\n")
        _write(project_config, "{}\n")
        _write(global_config, "{}\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(explicit))

        assert discover_config_files() == [
            explicit.resolve(),
            project_config,
            global_config,
        ]

    def test_yaml_extension(self, tmp_path):
        alternate = _write(tmp_path / ".migrations" / "config.yaml", "{}\n")
        assert discover_config_files() == [alternate]


class TestLoadHierarchicalConfig:
    def test_zero_config_returns_empty_dict(self):
        assert load_hierarchical_config() == {}

    def test_project_replaces_global_sections(self, project_config, global_config):
        _write(
            global_config,
            "contentful:\n  space_id: global\n  storage: content\n"
            "logging:\n  level: DEBUG\n",
        )
        _write(project_config, "contentful:\n  space_id: project\n")

        raw = load_hierarchical_config()
        # Sections are replaced as a whole, not deep-merged
        assert raw["contentful"] == {"space_id": "project"}
        assert raw["logging"] == {"level": "DEBUG"}

    def test_interpolation_after_merge(self, monkeypatch, project_config):
        monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "CFPAT-env")
        _write(
            project_config,
            "contentful:\n  access_token: ${CONTENTFUL_MANAGEMENT_TOKEN}\n"
            "transfer:\n  source_environment: ${SOURCE_ENV:-staging}\n",
        )

        unified = build_config(load_hierarchical_config())
        assert unified.contentful.access_token == "CFPAT-env"
        assert unified.transfer.source_environment == "staging"

    def test_non_dict_root_skipped(self, project_config, caplog):
        _write(project_config, "- just\n- a list\n")
        assert load_hierarchical_config() == {}
        assert "non-dict root" in caplog.text


class TestEnsureConfig:
    def test_noop_when_exists(self, project_config):
        _write(project_config, "contentful: {}\n")
        assert ensure_config() == project_config
        assert project_config.read_text() == "contentful: {}\n"

    def test_creates_starter_file(self, tmp_path):
        path = ensure_config()
        assert path == tmp_path / ".migrations" / "config.yml"
        assert "CONTENTFUL_MANAGEMENT_TOKEN" in path.read_text()
        # The starter file is all comments, so it loads as zero-config
        assert load_hierarchical_config() == {}

    def test_uses_explicit_target(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "cm.yml"
        assert ensure_config(target) == target
        assert target.exists()
