"""
Tests for configuration loading, resolution and monitor settings.
"""

import pytest

from sfbwatch.config import Config, MonitorSettings, load_config, resolve_config
from sfbwatch.config.loader import _merge_dict
from sfbwatch.config.settings import DEFAULT_CHECK_INTERVAL_MS, DEFAULT_WATCH_PATH
from sfbwatch.exceptions import ConfigurationError


class TestConfig:
    """Tests for Config class."""

    def test_sections(self):
        cfg = Config({"monitor": {"watch_path": "/data"}, "storage": {"type": "memory"}})
        assert cfg.monitor == {"watch_path": "/data"}
        assert cfg.storage == {"type": "memory"}
        assert cfg.logging == {}

    def test_dot_notation(self):
        cfg = Config({"storage": {"type": "duckdb"}})
        assert cfg.get("storage.type") == "duckdb"
        assert cfg["storage.type"] == "duckdb"

    def test_dot_notation_missing_returns_default(self):
        cfg = Config({"a": 1})
        assert cfg.get("a.b.c", "fallback") == "fallback"

    def test_contains(self):
        cfg = Config({"a": {"b": 1}})
        assert "a" in cfg
        assert "a.b" in cfg
        assert "a.c" not in cfg
        assert "z" not in cfg

    def test_getitem_missing_raises(self):
        with pytest.raises(KeyError):
            _ = Config({"a": 1})["missing"]

    def test_iter(self):
        assert list(Config({"a": 1, "b": 2})) == ["a", "b"]

    def test_validate_section_must_be_mapping(self):
        cfg = Config({"monitor": "bad"})
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            cfg.validate()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_basic_config(self, tmp_path):
        (tmp_path / "config.yaml").write_text("monitor:\n  watch_path: /data/exports\n")
        cfg = load_config(tmp_path)
        assert cfg.get("monitor.watch_path") == "/data/exports"

    def test_missing_config_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="config.yaml"):
            load_config(tmp_path)

    def test_missing_config_optional(self, tmp_path):
        assert load_config(tmp_path, required=False).data == {}

    def test_env_overlay(self, tmp_path):
        (tmp_path / "config.yaml").write_text("monitor:\n  watch_path: /base\n  batch_size: 10\n")
        (tmp_path / "config.prod.yaml").write_text("monitor:\n  batch_size: 50\nstorage:\n  type: memory\n")
        cfg = load_config(tmp_path, env="prod")
        assert cfg.get("monitor.watch_path") == "/base"
        assert cfg.get("monitor.batch_size") == 50
        assert cfg.get("storage.type") == "memory"

    def test_empty_config_returns_empty_dict(self, tmp_path):
        (tmp_path / "config.yaml").write_text("")
        assert load_config(tmp_path).data == {}

    def test_invalid_yaml_raises(self, tmp_path):
        (tmp_path / "config.yaml").write_text(":\n  :\n  invalid: [")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_config(tmp_path)

    def test_non_mapping_raises(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(tmp_path)

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFB_TEST_WATCH", "/mnt/exports")
        (tmp_path / "config.yaml").write_text("monitor:\n  watch_path: ${SFB_TEST_WATCH}\n")
        assert load_config(tmp_path).get("monitor.watch_path") == "/mnt/exports"

    def test_env_placeholder_substitution(self, tmp_path):
        (tmp_path / "config.yaml").write_text("storage:\n  path: data/sfbwatch_{env}.duckdb\n")
        cfg = load_config(tmp_path, env="staging")
        assert cfg.get("storage.path") == "data/sfbwatch_staging.duckdb"


class TestResolveConfig:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("SFB_UNSET_VAR", raising=False)
        assert resolve_config({"a": "${SFB_UNSET_VAR:-/fallback}"}) == {"a": "/fallback"}

    def test_set_variable_wins_over_default(self, monkeypatch):
        monkeypatch.setenv("SFB_SET_VAR", "real")
        assert resolve_config({"a": "${SFB_SET_VAR:-fallback}"}) == {"a": "real"}

    def test_unset_without_default_left_as_is(self, monkeypatch):
        monkeypatch.delenv("SFB_UNSET_VAR", raising=False)
        assert resolve_config({"a": "${SFB_UNSET_VAR}"}) == {"a": "${SFB_UNSET_VAR}"}

    def test_nested_and_lists(self):
        data = {"a": {"b": ["x_{env}", 1, None]}}
        assert resolve_config(data, "prod") == {"a": {"b": ["x_prod", 1, None]}}


class TestMergeDict:
    """Tests for _merge_dict helper."""

    def test_nested_merge(self):
        base = {"a": {"x": 1, "y": 2}}
        _merge_dict(base, {"a": {"y": 3, "z": 4}})
        assert base == {"a": {"x": 1, "y": 3, "z": 4}}

    def test_override_non_dict_with_dict(self):
        base = {"a": 1}
        _merge_dict(base, {"a": {"nested": True}})
        assert base == {"a": {"nested": True}}


class TestMonitorSettings:
    def test_defaults(self):
        settings = MonitorSettings()
        assert settings.watch_path == DEFAULT_WATCH_PATH
        assert settings.check_interval_ms == DEFAULT_CHECK_INTERVAL_MS == 900_000
        assert settings.batch_size == 100

    def test_from_config(self):
        cfg = Config({"monitor": {"watch_path": "/data", "check_interval_ms": 5000, "unknown": 1}})
        settings = MonitorSettings.from_config(cfg)
        assert settings.watch_path == "/data"
        assert settings.check_interval_ms == 5000

    def test_from_config_accepts_digit_strings(self):
        settings = MonitorSettings.from_config({"monitor": {"check_interval_ms": "60000"}})
        assert settings.check_interval_ms == 60_000

    def test_from_empty_config(self):
        assert MonitorSettings.from_config({}) == MonitorSettings()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"check_interval_ms": 0},
            {"batch_size": -1},
            {"yield_every": True},
            {"max_errors": "10"},
            {"watch_path": ""},
            {"file_pattern": "(unclosed"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            MonitorSettings(**kwargs)

    def test_with_overrides(self):
        settings = MonitorSettings(watch_path="/a")
        assert settings.with_overrides() is settings
        assert settings.with_overrides(watch_path="", check_interval_ms=None) is settings

        changed = settings.with_overrides(watch_path="/b", check_interval_ms=1000)
        assert (changed.watch_path, changed.check_interval_ms) == ("/b", 1000)
        assert settings.watch_path == "/a"
