"""
MCP Tester - Stdio Protocol Session

This module drives one target server over its standard input/output using
line-delimited JSON-RPC 2.0 messages.

Key Features:
- Child process launch with a startup grace delay
- Request/response correlation by strictly increasing integer ids
- Per-request timeouts; late replies are dropped
- Serialized writes (one complete line per message)
- Notification history and optional callback
- Answers server-to-client requests (ping, everything else -32601)
- Bounded stderr capture for diagnostics
- Idempotent teardown that rejects every outstanding call

Lifecycle:
    DISCONNECTED -> CONNECTING -> CONNECTED -> READY -> CLOSED

Usage:
    async with open_session("node ./build/index.js") as session:
        tools = await session.discover_tools()
        result = await session.invoke("echo", {"text": "hi"})
"""

import asyncio
import itertools
import logging
import os
import shutil
import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any, AsyncIterator, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Set, Type, Union,
)

from pydantic import BaseModel, ValidationError

from ..config.settings import SessionConfig, Settings
from ..models.message_models import (
    CapabilityResult,
    InitializeResult,
    JSONRPCErrorCode,
    MessageType,
    PromptDescriptor,
    RequestMethod,
    ResourceDescriptor,
    ToolDescriptor,
    build_error_response,
    build_notification,
    build_request,
    build_response,
    classify_message,
    encode_message,
)
from ..utils.exceptions import (
    LaunchException,
    NotReadyException,
    ProtocolException,
    RemoteException,
    RequestTimeoutException,
    SessionClosedException,
    UnknownToolException,
)
from .command_parser import CommandSpec, parse_server_command
from .framing import LineFramer

# ============================================================================
# Logger Setup
# ============================================================================

logger = logging.getLogger(__name__)

# Target stderr is logged separately so it can be silenced on its own
target_logger = logging.getLogger("mcp_tester.target")

NotificationHandler = Callable[[Dict[str, Any]], Any]

# Longest stderr line kept in one piece; longer output is split
STDERR_LINE_LIMIT = 64 * 1024


# ============================================================================
# Data Models
# ============================================================================

class SessionState(str, Enum):
    """Session lifecycle states"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class PendingCall:
    """An emitted request awaiting its reply"""
    request_id: int
    method: str
    future: asyncio.Future
    created_at: float = field(default_factory=time.perf_counter)


@dataclass
class SessionStats:
    """Session traffic statistics"""
    requests_sent: int = 0
    notifications_sent: int = 0
    responses_received: int = 0
    notifications_received: int = 0
    server_requests: int = 0
    unmatched_responses: int = 0
    timeouts: int = 0
    remote_errors: int = 0
    bytes_sent: int = 0
    started_at: Optional[datetime] = None

    @property
    def uptime(self) -> float:
        """Seconds since the child was launched"""
        if self.started_at is None:
            return 0.0
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "requests_sent": self.requests_sent,
            "notifications_sent": self.notifications_sent,
            "responses_received": self.responses_received,
            "notifications_received": self.notifications_received,
            "server_requests": self.server_requests,
            "unmatched_responses": self.unmatched_responses,
            "timeouts": self.timeouts,
            "remote_errors": self.remote_errors,
            "bytes_sent": self.bytes_sent,
            "uptime": self.uptime,
        }


# ============================================================================
# Protocol Session
# ============================================================================

class ProtocolSession:
    """
    One connection to one target server process.

    All bookkeeping runs on a single event loop: the reader task resolves
    pending calls, callers register and remove their own ids, and no await
    separates a lookup from its mutation.
    """

    def __init__(
            self,
            config: Optional[SessionConfig] = None,
            notification_handler: Optional[NotificationHandler] = None,
    ):
        """
        Initialize a session

        Args:
            config: Session configuration (timeouts, buffers, client identity)
            notification_handler: Called with every inbound notification
        """
        self.config = config or SessionConfig()
        self.notification_handler = notification_handler

        self.state = SessionState.DISCONNECTED
        self.server_info: Optional[InitializeResult] = None
        self.stats = SessionStats()
        self.returncode: Optional[int] = None

        self._process: Optional[asyncio.subprocess.Process] = None
        self._framer = LineFramer()
        self._ids = itertools.count(1)
        self._pending: Dict[int, PendingCall] = {}
        self._write_lock = asyncio.Lock()
        self._reader_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._reply_tasks: Set[asyncio.Task] = set()
        self._closed = False

        self._stderr_lines: Deque[str] = deque(maxlen=self.config.stderr_buffer_lines)
        self._stderr_buffer = bytearray()
        self.notifications: Deque[Dict[str, Any]] = deque(maxlen=self.config.notification_history)
        self._tools: Dict[str, ToolDescriptor] = {}

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def pending_count(self) -> int:
        """Number of requests awaiting a reply"""
        return len(self._pending)

    @property
    def stderr_lines(self) -> List[str]:
        """Captured stderr lines of the target (most recent last)"""
        return list(self._stderr_lines)

    @property
    def stderr_tail(self) -> str:
        return "\n".join(list(self._stderr_lines)[-20:])

    @property
    def tools(self) -> List[ToolDescriptor]:
        """Tools cached by the last discovery"""
        return list(self._tools.values())

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def discarded_lines(self) -> int:
        """Inbound lines dropped because they were not protocol messages"""
        return self._framer.discarded_lines

    def get_tool(self, name: str) -> ToolDescriptor:
        """
        Look up a discovered tool by name.

        Raises:
            UnknownToolException: If discovery did not report the tool
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolException(
                f"Tool '{name}' not found. Available tools: {', '.join(self._tools) or 'none'}",
                tool_name=name,
                available_tools=list(self._tools),
            )
        return tool

    def get_status(self) -> Dict[str, Any]:
        """Get session status"""
        return {
            "state": self.state.value,
            "pid": self.pid,
            "returncode": self.returncode,
            "pending": self.pending_count,
            "discarded_lines": self.discarded_lines,
            "stats": self.stats.to_dict(),
        }

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def connect(
            self,
            executable: str,
            args: Iterable[str] = (),
            cwd: Optional[str] = None,
            env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Launch the target and start the background readers.

        Args:
            executable: Interpreter or program to run
            args: Arguments (script path first)
            cwd: Working directory (defaults to the current one)
            env: Extra environment variables for the child

        Raises:
            LaunchException: If the process cannot be spawned or exits during
                the startup grace delay
        """
        if self.state is not SessionState.DISCONNECTED:
            raise NotReadyException(f"Cannot connect a session in state {self.state.value}", state=self.state.value)

        args = list(args)
        self.state = SessionState.CONNECTING
        program = shutil.which(executable) or executable
        child_env = dict(os.environ, **env) if env else None

        logger.info(f"Launching target: {executable} {' '.join(args)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=child_env,
            )
        except OSError as e:
            await self.close()
            raise LaunchException(f"Failed to start {executable}: {e}", executable=executable) from e

        self.stats.started_at = datetime.now(timezone.utc)
        self._reader_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())

        try:
            await asyncio.wait_for(self._process.wait(), timeout=self.config.startup_delay)
        except asyncio.TimeoutError:
            pass
        except asyncio.CancelledError:
            await self.close()
            raise

        if self._process.returncode is not None:
            returncode = self._process.returncode
            # Let the stderr reader drain what the child wrote before exiting
            await asyncio.wait({self._stderr_task}, timeout=0.5)
            stderr_tail = self.stderr_tail
            await self.close()
            raise LaunchException(
                f"Target exited during startup with code {returncode}",
                executable=executable,
                stderr_tail=stderr_tail,
            )

        if self.state is SessionState.CONNECTING:
            self.state = SessionState.CONNECTED
        logger.info(f"Target started (pid={self._process.pid})")

    async def handshake(self) -> InitializeResult:
        """
        Perform the ``initialize`` exchange and send ``notifications/initialized``.

        Returns:
            Parsed initialize result

        Raises:
            ProtocolException: If the result is malformed
        """
        self._ensure_state(SessionState.CONNECTED)

        params = {
            "protocolVersion": self.config.protocol_version,
            "capabilities": {},
            "clientInfo": {
                "name": self.config.client_name,
                "version": self.config.client_version,
            },
        }
        result = await self._request(RequestMethod.INITIALIZE.value, params)
        if not isinstance(result, dict):
            raise ProtocolException("initialize returned a non-object result", method=RequestMethod.INITIALIZE.value)

        try:
            self.server_info = InitializeResult.model_validate(result)
        except ValidationError as e:
            raise ProtocolException(f"Malformed initialize result: {e}", method=RequestMethod.INITIALIZE.value) from e

        await self._send_notification(RequestMethod.INITIALIZED.value)
        self.state = SessionState.READY

        info = self.server_info.server_info
        logger.info(
            f"Handshake complete: {info.name} {info.version} "
            f"(protocol {self.server_info.protocol_version})"
        )
        return self.server_info

    async def close(self) -> None:
        """
        Tear the session down. Safe to call any number of times.

        Every pending call is rejected with SessionClosedException, stdin is
        closed, the child is terminated (killed after the shutdown timeout)
        and the background tasks are cancelled.
        """
        if self._closed:
            return
        self._closed = True
        self.state = SessionState.CLOSED
        self._reject_pending(SessionClosedException("Session closed"))

        process = self._process
        if process is not None:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()

            if process.returncode is None:
                try:
                    process.terminate()
                    await asyncio.wait_for(process.wait(), timeout=self.config.shutdown_timeout)
                except ProcessLookupError:
                    pass
                except asyncio.TimeoutError:
                    logger.warning(f"Target (pid={process.pid}) ignored terminate, killing")
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                    await process.wait()
            self.returncode = process.returncode

        tasks = [t for t in (self._reader_task, self._stderr_task, *self._reply_tasks) if t is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._reply_tasks.clear()

        logger.info(f"Session closed (returncode={self.returncode})")

    async def __aenter__(self) -> "ProtocolSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ========================================================================
    # Protocol Operations
    # ========================================================================

    async def discover_tools(self) -> List[ToolDescriptor]:
        """
        List the target's tools, following ``nextCursor`` pagination.

        The result replaces the session's tool cache.
        """
        self._ensure_state(SessionState.READY)
        method = RequestMethod.LIST_TOOLS.value

        tools: List[ToolDescriptor] = []
        cursor: Optional[str] = None
        seen_cursors: Set[str] = set()

        while True:
            result = await self._request(method, {"cursor": cursor} if cursor else {})
            if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
                raise ProtocolException("tools/list result has no 'tools' list", method=method)

            for raw in result["tools"]:
                try:
                    tools.append(ToolDescriptor.model_validate(raw))
                except ValidationError as e:
                    raise ProtocolException(f"Malformed tool descriptor: {e}", method=method) from e

            cursor = result.get("nextCursor")
            if not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)

        self._tools = {tool.name: tool for tool in tools}
        logger.debug(f"Discovered {len(tools)} tools: {list(self._tools)}")
        return tools

    async def discover_resources(self) -> CapabilityResult:
        """List resources; rejection or a malformed payload means unsupported"""
        return await self._discover_optional(RequestMethod.LIST_RESOURCES.value, "resources", ResourceDescriptor)

    async def discover_prompts(self) -> CapabilityResult:
        """List prompts; rejection or a malformed payload means unsupported"""
        return await self._discover_optional(RequestMethod.LIST_PROMPTS.value, "prompts", PromptDescriptor)

    async def invoke(
            self,
            tool_name: str,
            arguments: Optional[Dict[str, Any]] = None,
            timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Call a tool.

        Args:
            tool_name: Tool to call
            arguments: Tool arguments
            timeout: Override of the configured request timeout

        Returns:
            The tool result object

        Raises:
            RemoteException: The target answered with a JSON-RPC error
            RequestTimeoutException: No reply within the timeout
            SessionClosedException: The session closed before the reply
        """
        self._ensure_state(SessionState.READY)
        method = RequestMethod.CALL_TOOL.value
        result = await self._request(
            method, {"name": tool_name, "arguments": arguments or {}}, timeout=timeout
        )
        if not isinstance(result, dict):
            raise ProtocolException(f"tools/call returned a non-object result for '{tool_name}'", method=method)
        return result

    async def ping(self, timeout: Optional[float] = None) -> float:
        """
        Liveness probe.

        Returns:
            Round-trip time in milliseconds
        """
        self._ensure_state(SessionState.CONNECTED, SessionState.READY)
        start = time.perf_counter()
        await self._request(RequestMethod.PING.value, timeout=timeout)
        return (time.perf_counter() - start) * 1000.0

    # ========================================================================
    # Request Plumbing
    # ========================================================================

    def _ensure_state(self, *allowed: SessionState) -> None:
        if self.state is SessionState.CLOSED:
            raise SessionClosedException()
        if self.state not in allowed:
            raise NotReadyException(
                f"Operation requires state {'/'.join(s.value for s in allowed)}, "
                f"session is {self.state.value}",
                state=self.state.value,
            )

    async def _request(
            self,
            method: str,
            params: Optional[Dict[str, Any]] = None,
            timeout: Optional[float] = None,
    ) -> Any:
        """Send a request and wait for its correlated reply"""
        timeout = timeout if timeout is not None else self.config.request_timeout
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        # Registered before the write so a fast reply always finds its caller
        self._pending[request_id] = PendingCall(request_id, method, future)

        try:
            await self._write(build_request(request_id, method, params))
            self.stats.requests_sent += 1
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self.stats.timeouts += 1
            logger.warning(f"Request {request_id} ({method}) timed out after {timeout}s")
            raise RequestTimeoutException(
                f"Request '{method}' timed out after {timeout}s",
                method=method,
                timeout_seconds=timeout,
            ) from None
        finally:
            self._pending.pop(request_id, None)

    async def _send_notification(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        await self._write(build_notification(method, params))
        self.stats.notifications_sent += 1

    async def _write(self, message: Dict[str, Any]) -> None:
        """Write one complete line to the child's stdin"""
        data = encode_message(message)
        async with self._write_lock:
            process = self._process
            if self._closed or process is None or process.stdin is None or process.stdin.is_closing():
                raise SessionClosedException()
            try:
                process.stdin.write(data)
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise SessionClosedException(f"Target stdin closed: {e}") from e
        self.stats.bytes_sent += len(data)

    async def _discover_optional(
            self,
            method: str,
            key: str,
            model: Type[BaseModel],
    ) -> CapabilityResult:
        self._ensure_state(SessionState.READY)
        try:
            result = await self._request(method)
        except RemoteException as e:
            logger.debug(f"{method} rejected by target: {e.message}")
            return CapabilityResult.unsupported(f"{method} rejected: {e.message}")

        if not isinstance(result, dict) or not isinstance(result.get(key), list):
            return CapabilityResult.unsupported(f"{method} result has no '{key}' list")
        try:
            items = [model.model_validate(raw) for raw in result[key]]
        except ValidationError as e:
            return CapabilityResult.unsupported(f"Malformed {key} entry: {e.error_count()} validation error(s)")
        return CapabilityResult.available(items)

    def _reject_pending(self, exc: Exception) -> None:
        pending = list(self._pending.values())
        self._pending.clear()
        for call in pending:
            if not call.future.done():
                call.future.set_exception(exc)
        if pending:
            logger.debug(f"Rejected {len(pending)} pending call(s): {exc}")

    # ========================================================================
    # Inbound Processing
    # ========================================================================

    async def _read_stdout(self) -> None:
        """Background task: frame stdout and dispatch messages"""
        assert self._process is not None and self._process.stdout is not None
        stream = self._process.stdout
        try:
            while True:
                chunk = await stream.read(self.config.read_chunk_size)
                if not chunk:
                    break
                for message in self._framer.feed(chunk):
                    self._dispatch(message)
            for message in self._framer.flush():
                self._dispatch(message)
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.warning(f"Target stdout failed: {e}")
        finally:
            if not self._closed and self.state is not SessionState.CLOSED:
                logger.info("Target closed its stdout")
                self.state = SessionState.CLOSED
                self._reject_pending(SessionClosedException("Target closed its output stream"))

    async def _read_stderr(self) -> None:
        """Background task: keep a bounded tail of the target's stderr"""
        assert self._process is not None and self._process.stderr is not None
        stream = self._process.stderr
        while True:
            chunk = await stream.read(self.config.read_chunk_size)
            if not chunk:
                break
            self._feed_stderr(chunk)
        if self._stderr_buffer:
            self._record_stderr(bytes(self._stderr_buffer))
            self._stderr_buffer.clear()

    def _feed_stderr(self, chunk: bytes) -> None:
        buffer = self._stderr_buffer
        buffer.extend(chunk)
        start = 0
        while True:
            end = buffer.find(b"\n", start)
            if end < 0:
                break
            self._record_stderr(bytes(buffer[start:end]))
            start = end + 1
        del buffer[:start]

        while len(buffer) > STDERR_LINE_LIMIT:
            self._record_stderr(bytes(buffer[:STDERR_LINE_LIMIT]))
            del buffer[:STDERR_LINE_LIMIT]

    def _record_stderr(self, raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace").rstrip("\r")
        self._stderr_lines.append(line)
        target_logger.debug(line)

    def _dispatch(self, message: Dict[str, Any]) -> None:
        kind = classify_message(message)

        if kind is MessageType.RESPONSE:
            self._handle_response(message)
        elif kind is MessageType.NOTIFICATION:
            self._handle_notification(message)
        elif kind is MessageType.REQUEST:
            self.stats.server_requests += 1
            task = asyncio.create_task(self._answer_server_request(message))
            self._reply_tasks.add(task)
            task.add_done_callback(self._reply_tasks.discard)
        else:
            logger.debug(f"Ignoring message without id or method: {str(message)[:200]}")

    def _handle_response(self, message: Dict[str, Any]) -> None:
        request_id = message.get("id")
        if isinstance(request_id, str) and request_id.isdigit():
            request_id = int(request_id)

        # Only plain integers correlate; JSON true is not request 1
        call = self._pending.pop(request_id, None) if type(request_id) is int else None
        if call is None:
            self.stats.unmatched_responses += 1
            logger.debug(f"Dropping response with unmatched id {message.get('id')!r}")
            return

        self.stats.responses_received += 1
        if call.future.done():
            return

        if message.get("error") is not None:
            self.stats.remote_errors += 1
            error = message["error"]
            if isinstance(error, dict):
                exc = RemoteException(
                    str(error.get("message") or "Unknown remote error"),
                    remote_code=error.get("code"),
                    data=error.get("data"),
                )
            else:
                exc = RemoteException(str(error))
            call.future.set_exception(exc)
        else:
            call.future.set_result(message.get("result"))

    def _handle_notification(self, message: Dict[str, Any]) -> None:
        self.stats.notifications_received += 1
        self.notifications.append(message)
        logger.debug(f"Notification: {message.get('method')}")

        if self.notification_handler is not None:
            try:
                outcome = self.notification_handler(message)
                if asyncio.iscoroutine(outcome):
                    task = asyncio.create_task(outcome)
                    self._reply_tasks.add(task)
                    task.add_done_callback(self._reply_tasks.discard)
            except Exception as e:
                logger.error(f"Notification handler failed: {e}", exc_info=True)

    async def _answer_server_request(self, message: Dict[str, Any]) -> None:
        method = message.get("method")
        request_id = message.get("id")
        if method == RequestMethod.PING.value:
            reply = build_response(request_id, {})
        else:
            reply = build_error_response(
                request_id, JSONRPCErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}"
            )
        try:
            await self._write(reply)
        except SessionClosedException:
            logger.debug(f"Could not answer server request {method}: session closed")


# ============================================================================
# Convenience
# ============================================================================

@asynccontextmanager
async def open_session(
        command: Union[str, CommandSpec],
        extra_args: Optional[Iterable[str]] = None,
        settings: Optional[Settings] = None,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        notification_handler: Optional[NotificationHandler] = None,
) -> AsyncIterator[ProtocolSession]:
    """
    Parse a command, connect, handshake, and always close.

    Args:
        command: Launch string or an already parsed CommandSpec
        extra_args: Arguments appended to the command
        settings: Settings providing the session configuration

    Yields:
        A session in the READY state
    """
    spec = parse_server_command(command) if isinstance(command, str) else command
    spec = spec.with_args(extra_args)
    session = ProtocolSession(
        config=settings.session if settings is not None else None,
        notification_handler=notification_handler,
    )
    try:
        await session.connect(spec.executable, spec.launch_args, cwd=cwd, env=env)
        await session.handshake()
        yield session
    finally:
        await session.close()
