"""
Unit tests for configuration loading and settings.
"""

import json

import pytest

from mcp_tester.config.config_loader import ConfigLoader, ConfigSource
from mcp_tester.config.settings import Settings
from mcp_tester.utils.exceptions import ConfigurationException


class TestConfigLoader:
    """Source loading and merging"""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("session:\n  request_timeout: 12\n", encoding="utf-8")
        assert ConfigLoader(environ={}).load_from_file(path) == {"session": {"request_timeout": 12}}

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"benchmark": {"iterations": 7}}), encoding="utf-8")
        assert ConfigLoader(environ={}).load_from_file(path)["benchmark"]["iterations"] == 7

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            ConfigLoader(environ={}).load_from_file(tmp_path / "nope.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("a = 1", encoding="utf-8")
        with pytest.raises(ConfigurationException):
            ConfigLoader(environ={}).load_from_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationException):
            ConfigLoader(environ={}).load_from_file(path)

    def test_environment_prefix_and_nesting(self):
        loader = ConfigLoader(environ={
            "MCP_TESTER_SESSION__REQUEST_TIMEOUT": "2.5",
            "MCP_TESTER_BENCHMARK__ITERATIONS": "20",
            "MCP_TESTER_LOGGING__FILE_ENABLED": "true",
            "UNRELATED": "x",
        })
        config = loader.load_from_environment()
        assert config == {
            "session": {"request_timeout": 2.5},
            "benchmark": {"iterations": 20},
            "logging": {"file_enabled": True},
        }

    def test_legacy_target_variable(self):
        loader = ConfigLoader(environ={"TARGET_MCP_SERVER": "node ./server.js"})
        assert loader.load_from_environment() == {"target": {"command": "node ./server.js"}}

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MCP_TESTER_REPORT__FORMAT=json\nOTHER=1\n", encoding="utf-8")
        loader = ConfigLoader(environ={})
        assert loader.load_from_env_file(env_file) == {"report": {"format": "json"}}

    def test_priority_environment_over_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("session:\n  request_timeout: 12\n  startup_delay: 1.0\n", encoding="utf-8")
        loader = ConfigLoader(environ={"MCP_TESTER_SESSION__REQUEST_TIMEOUT": "3"})

        config = loader.load_with_priority(file_path=path, env_file_path=tmp_path / "missing.env")

        assert config["session"]["request_timeout"] == 3
        assert config["session"]["startup_delay"] == 1.0
        assert loader.metadata.merged_from[0] is ConfigSource.DEFAULTS
        assert ConfigSource.FILE in loader.metadata.merged_from
        assert ConfigSource.ENVIRONMENT in loader.metadata.merged_from

    def test_get_dot_notation(self):
        loader = ConfigLoader(environ={})
        config = {"a": {"b": {"c": 1}}}
        assert loader.get(config, "a.b.c") == 1
        assert loader.get(config, "a.x", "default") == "default"


class TestSettings:
    """Typed settings sections"""

    def test_defaults(self):
        settings = Settings(use_env=False)
        assert settings.session.request_timeout == 30.0
        assert settings.session.protocol_version == "2024-11-05"
        assert settings.session.client_name == "mcp-tester"
        assert settings.benchmark.iterations == 100
        assert settings.report.format == "markdown"
        assert settings.target.command is None

    def test_overrides_win(self):
        settings = Settings(use_env=False, overrides={"session": {"request_timeout": 4}})
        assert settings.session.request_timeout == 4.0
        assert isinstance(settings.session.request_timeout, float)

    def test_environment_values_are_coerced(self):
        settings = Settings(environ={
            "MCP_TESTER_BENCHMARK__CONCURRENCY": "8",
            "MCP_TESTER_TARGET__ARGS": "--a,--b",
        })
        assert settings.benchmark.concurrency == 8
        assert settings.target.args == ["--a", "--b"]

    def test_legacy_target_command(self):
        settings = Settings(environ={"TARGET_MCP_SERVER": "python3 server.py"})
        assert settings.target.command == "python3 server.py"

    @pytest.mark.parametrize("overrides", [
        {"session": {"request_timeout": 0}},
        {"benchmark": {"concurrency": 0}},
        {"benchmark": {"warmup_iterations": -1}},
        {"report": {"format": "html"}},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ConfigurationException):
            Settings(use_env=False, overrides=overrides)

    def test_uncoercible_value(self):
        with pytest.raises(ConfigurationException):
            Settings(use_env=False, overrides={"benchmark": {"iterations": "many"}})

    def test_get_and_to_dict(self):
        settings = Settings(use_env=False)
        assert settings.get("benchmark.iterations") == 100
        assert settings.get("nope.value", "x") == "x"
        data = json.loads(settings.to_json())
        assert set(data) == {"session", "benchmark", "target", "report", "logging"}
