"""
Server Command Parser

Turns a free-form launch string such as

    node D:\\Path\\server.js --port 3000
    "D:\\My Path\\server.js"
    python3 './tools/my server.py' --debug

into a structured CommandSpec(executable, script_path, args).

Parsing is pure: it never touches the filesystem. Existence checks live in
``ensure_script_exists`` and are the caller's responsibility.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..utils.exceptions import InvalidCommandException

# Interpreters recognised as the first token (compared case-insensitively)
KNOWN_INTERPRETERS = ("node", "python", "python3", "deno", "bun", "tsx", "ts-node")

QUOTE_CHARS = ('"', "'")

DEFAULT_EXECUTABLE = "node"


@dataclass(frozen=True)
class CommandSpec:
    """How to launch a target server"""
    executable: str
    script_path: str
    args: Tuple[str, ...] = ()

    @property
    def argv(self) -> List[str]:
        """Full argument vector: executable, script, extra arguments"""
        return [self.executable, self.script_path, *self.args]

    @property
    def launch_args(self) -> List[str]:
        """Arguments passed to the executable"""
        return [self.script_path, *self.args]

    def with_args(self, extra: Optional[Iterable[str]]) -> "CommandSpec":
        """Return a copy with caller-supplied arguments appended"""
        if not extra:
            return self
        return CommandSpec(self.executable, self.script_path, self.args + tuple(extra))

    def __str__(self) -> str:
        return " ".join(_quote_if_needed(part) for part in self.argv)


def parse_server_command(raw: Optional[str]) -> CommandSpec:
    """
    Parse a launch string into a CommandSpec.

    Args:
        raw: Launch string

    Returns:
        Parsed CommandSpec

    Raises:
        InvalidCommandException: Empty input, no tokens, or an interpreter
            without a script path
    """
    if raw is None or not raw.strip():
        raise InvalidCommandException("Server command must not be empty", raw_command=raw or "")

    command = _strip_outer_quotes(raw.strip())
    command = command.replace("\\", "/")

    parts = tokenize(command)
    if not parts:
        raise InvalidCommandException("Server command contains no tokens", raw_command=raw)

    if parts[0].lower() in KNOWN_INTERPRETERS:
        if len(parts) < 2:
            raise InvalidCommandException(
                f"Interpreter '{parts[0]}' given without a script path", raw_command=raw
            )
        return CommandSpec(executable=parts[0], script_path=parts[1], args=tuple(parts[2:]))

    script_path = parts[0]
    return CommandSpec(
        executable=default_executable_for(script_path),
        script_path=script_path,
        args=tuple(parts[1:]),
    )


def tokenize(command: str) -> List[str]:
    """
    Split on spaces while keeping quoted substrings together.

    A quote opens with either ' or " and closes only on the same character,
    so an apostrophe inside a double-quoted segment survives. Quote
    characters themselves are removed. An unterminated quote runs to the end
    of the input.
    """
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None

    for char in command:
        if quote is not None:
            if char == quote:
                quote = None
            else:
                current.append(char)
        elif char in QUOTE_CHARS:
            quote = char
        elif char == " ":
            if current:
                parts.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        parts.append("".join(current))
    return parts


def default_executable_for(script_path: str, platform: Optional[str] = None) -> str:
    """
    Choose an interpreter for a bare script path from its extension.
    """
    platform = platform or sys.platform
    suffix = Path(script_path).suffix.lower()
    if suffix == ".py":
        return "python" if platform == "win32" else "python3"
    if suffix in (".ts", ".mts", ".cts"):
        return "tsx"
    return DEFAULT_EXECUTABLE


def ensure_script_exists(spec: CommandSpec, cwd: Optional[Path] = None) -> Path:
    """
    Verify that the script of a CommandSpec exists.

    Raises:
        InvalidCommandException: If the script cannot be found
    """
    path = Path(spec.script_path)
    if not path.is_absolute():
        path = (cwd or Path.cwd()) / path
    path = path.resolve()
    if not path.exists():
        raise InvalidCommandException(
            f"Script not found: {spec.script_path} "
            f"(executable={spec.executable}, resolved={path})",
            raw_command=str(spec),
        )
    return path


def _strip_outer_quotes(command: str) -> str:
    """Remove one layer of matching quotes wrapping the whole command"""
    if len(command) >= 2 and command[0] in QUOTE_CHARS and command[-1] == command[0]:
        inner = command[1:-1]
        # '"node" "x.js"' is two quoted tokens, not one wrapped command
        if command[0] not in inner:
            return inner
    return command


def _quote_if_needed(part: str) -> str:
    return f'"{part}"' if " " in part else part
