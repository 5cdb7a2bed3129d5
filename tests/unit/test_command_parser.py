"""
Unit tests for launch command parsing.
"""

import pytest

from mcp_tester.client.command_parser import (
    CommandSpec,
    default_executable_for,
    ensure_script_exists,
    parse_server_command,
    tokenize,
)
from mcp_tester.utils.exceptions import InvalidCommandException


class TestParseServerCommand:
    """Interpreter detection, quoting and path normalization"""

    def test_interpreter_with_windows_path_and_args(self):
        spec = parse_server_command(r"node D:\Path\server.js --port 3000")
        assert spec == CommandSpec("node", "D:/Path/server.js", ("--port", "3000"))

    def test_quoted_path_with_spaces_survives(self):
        spec = parse_server_command(r'"D:\My Path\server.js"')
        assert spec.executable == "node"
        assert spec.script_path == "D:/My Path/server.js"
        assert spec.args == ()

    def test_single_quoted_script_after_interpreter(self):
        spec = parse_server_command("python3 './tools/my server.py' --debug")
        assert spec == CommandSpec("python3", "./tools/my server.py", ("--debug",))

    def test_interpreter_match_is_case_insensitive(self):
        spec = parse_server_command("Node server.js")
        assert spec.executable == "Node"
        assert spec.script_path == "server.js"

    @pytest.mark.parametrize("interpreter", ["node", "python", "python3", "deno", "bun", "tsx", "ts-node"])
    def test_every_known_interpreter(self, interpreter):
        spec = parse_server_command(f"{interpreter} main.x")
        assert spec.executable == interpreter
        assert spec.script_path == "main.x"

    def test_bare_script_defaults_by_extension(self):
        assert parse_server_command("./build/index.js").executable == "node"
        assert parse_server_command("./server.ts").executable == "tsx"
        assert parse_server_command("./server.py").executable in ("python", "python3")

    def test_outer_quotes_kept_when_quote_recurs_inside(self):
        spec = parse_server_command('"node" "my server.js"')
        assert spec.executable == "node"
        assert spec.script_path == "my server.js"

    def test_multiple_spaces_between_tokens(self):
        spec = parse_server_command("node    server.js   -v")
        assert spec.argv == ["node", "server.js", "-v"]

    @pytest.mark.parametrize("raw", ["", "   ", None, '""'])
    def test_empty_input_rejected(self, raw):
        with pytest.raises(InvalidCommandException):
            parse_server_command(raw)

    def test_interpreter_without_script_rejected(self):
        with pytest.raises(InvalidCommandException) as exc_info:
            parse_server_command("node")
        assert exc_info.value.code == "INVALID_COMMAND"
        assert exc_info.value.details["raw_command"] == "node"

    def test_parsing_does_not_touch_filesystem(self):
        spec = parse_server_command("node /definitely/not/here.js")
        assert spec.script_path == "/definitely/not/here.js"


class TestTokenize:
    """Quote-aware splitting"""

    def test_apostrophe_inside_double_quotes(self):
        assert tokenize('node "it\'s here.js"') == ["node", "it's here.js"]

    def test_unterminated_quote_runs_to_end(self):
        assert tokenize('node "a b') == ["node", "a b"]

    def test_adjacent_quoted_and_plain_text_join(self):
        assert tokenize('pre"fix suf"fix') == ["prefix suffix"]


class TestCommandSpec:
    """CommandSpec helpers"""

    def test_with_args_appends(self):
        spec = CommandSpec("node", "s.js", ("-a",))
        extended = spec.with_args(["-b", "c"])
        assert extended.args == ("-a", "-b", "c")
        assert spec.args == ("-a",)

    def test_with_no_args_returns_same(self):
        spec = CommandSpec("node", "s.js")
        assert spec.with_args(None) is spec
        assert spec.with_args([]) is spec

    def test_launch_args_and_str(self):
        spec = CommandSpec("node", "my dir/s.js", ("-x",))
        assert spec.launch_args == ["my dir/s.js", "-x"]
        assert str(spec) == 'node "my dir/s.js" -x'

    def test_immutable(self):
        spec = CommandSpec("node", "s.js")
        with pytest.raises(AttributeError):
            spec.executable = "bun"


class TestDefaultExecutable:

    def test_python_on_windows(self):
        assert default_executable_for("a.py", platform="win32") == "python"

    def test_python_elsewhere(self):
        assert default_executable_for("a.py", platform="linux") == "python3"

    def test_unknown_extension(self):
        assert default_executable_for("a.mjs", platform="linux") == "node"


class TestEnsureScriptExists:

    def test_existing_relative_script(self, tmp_path):
        (tmp_path / "server.js").write_text("// server")
        resolved = ensure_script_exists(CommandSpec("node", "server.js"), cwd=tmp_path)
        assert resolved == (tmp_path / "server.js").resolve()

    def test_missing_script(self, tmp_path):
        with pytest.raises(InvalidCommandException) as exc_info:
            ensure_script_exists(CommandSpec("node", "missing.js"), cwd=tmp_path)
        assert "missing.js" in exc_info.value.message
