"""
Command-line entry point tests.
"""

import json
import os
import shutil

import pytest

from mcp_tester.__main__ import (
    EXIT_CHECKS_FAILED,
    EXIT_OK,
    EXIT_RUN_FAILED,
    load_case_file,
    main,
    parse_arguments,
)
from mcp_tester.utils.exceptions import ConfigurationException
from tests.fixtures import FAKE_SERVER_PATH

pytestmark = pytest.mark.integration

PYTHON3 = shutil.which("python3")
needs_python3 = pytest.mark.skipif(PYTHON3 is None, reason="python3 is not on PATH")

SERVER = f"python3 {FAKE_SERVER_PATH.as_posix()}"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run from an empty directory without tester variables"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TARGET_MCP_SERVER", raising=False)
    for name in list(os.environ):
        if name.startswith("MCP_TESTER_"):
            monkeypatch.delenv(name)


class TestArgumentParsing:

    def test_call_arguments(self):
        args, error = parse_arguments(["--timeout", "3", "call", "echo", "-s", SERVER, "-a", '{"x": 1}'])
        assert error is None
        assert args.command == "call"
        assert args.arguments == {"x": 1}
        assert args.timeout == 3.0

    def test_server_args_repeat(self):
        args, _ = parse_arguments(["probe", "--server-arg=--a", "--server-arg=--b"])
        assert args.server_args == ["--a", "--b"]

    def test_invalid_json_arguments(self):
        args, error = parse_arguments(["call", "echo", "-a", "[1, 2]"])
        assert args is None
        assert error is not None

    def test_missing_command(self):
        args, error = parse_arguments([])
        assert args is None and error

    def test_version(self):
        assert parse_arguments(["--version"]) == (None, None)


class TestCaseFiles:

    def test_yaml_list(self, tmp_path):
        path = tmp_path / "cases.yaml"
        path.write_text("- tool_name: echo\n  arguments: {text: hi}\n", encoding="utf-8")
        assert load_case_file(str(path)) == [{"tool_name": "echo", "arguments": {"text": "hi"}}]

    def test_json_mapping_with_cases(self, tmp_path):
        path = tmp_path / "cases.json"
        path.write_text(json.dumps({"cases": [{"tool_name": "add"}]}), encoding="utf-8")
        assert load_case_file(str(path)) == [{"tool_name": "add"}]

    @pytest.mark.parametrize("content", ["just text", "- 1\n- 2\n", "- arguments: {}\n"])
    def test_bad_structure(self, tmp_path, content):
        path = tmp_path / "cases.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationException):
            load_case_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            load_case_file(str(tmp_path / "none.yaml"))


class TestMain:

    def test_no_server_command(self, capsys):
        assert main(["probe"]) == EXIT_RUN_FAILED
        assert "No server command" in capsys.readouterr().err

    def test_usage_error(self):
        assert main(["benchmark"]) == EXIT_RUN_FAILED

    def test_missing_script(self, capsys):
        assert main(["probe", "-s", "ruby server.rb"]) == EXIT_RUN_FAILED
        assert "Error" in capsys.readouterr().err

    @needs_python3
    def test_call_raw_json(self, capsys):
        code = main(["call", "add", "-s", SERVER, "-a", '{"a": 1, "b": 2}', "--raw"])
        assert code == EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        assert payload["content"][0]["text"] == "3"

    @needs_python3
    def test_call_failure_exit_code(self, capsys):
        assert main(["call", "add", "-s", SERVER]) == EXIT_CHECKS_FAILED
        assert "Missing required argument" in capsys.readouterr().out

    @needs_python3
    def test_batch_to_output_file(self, tmp_path):
        cases = tmp_path / "cases.yaml"
        cases.write_text(
            "cases:\n"
            "  - tool_name: echo\n"
            "    arguments: {text: one}\n"
            "  - tool_name: add\n"
            "    arguments: {a: 1, b: 1}\n",
            encoding="utf-8",
        )
        report = tmp_path / "out" / "batch.json"

        code = main(["--format", "json", "-o", str(report), "batch", str(cases), "-s", SERVER])

        assert code == EXIT_OK
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["success_count"] == 2

    @needs_python3
    def test_negative_markdown(self, tmp_path, capsys):
        cases = tmp_path / "negative.yaml"
        cases.write_text(
            "- tool_name: divide\n"
            "  arguments: {a: 1, b: 0}\n"
            "  expected_error: zero\n",
            encoding="utf-8",
        )
        assert main(["negative", str(cases), "-s", SERVER]) == EXIT_OK
        assert "# Negative Test Report" in capsys.readouterr().out

    @needs_python3
    def test_benchmark(self, capsys):
        code = main(["benchmark", "echo", "-s", SERVER, "-n", "5", "-c", "2"])
        assert code == EXIT_OK
        assert "Concurrent Burst" in capsys.readouterr().out

    @needs_python3
    def test_validate_single_tool(self, capsys):
        assert main(["validate", "-s", SERVER, "--tool", "bad_shape"]) == EXIT_CHECKS_FAILED
        assert "bad_shape" in capsys.readouterr().out

    @needs_python3
    def test_probe_with_server_args(self, capsys):
        assert main(["probe", "-s", SERVER, "--server-arg=--no-optional"]) == EXIT_OK
        assert "not supported" in capsys.readouterr().out
