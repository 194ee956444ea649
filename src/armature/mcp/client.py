"""
Asyncio JSON-RPC 2.0 client for MCP tool servers over stdio.

Messages are newline-delimited JSON on the server's stdin/stdout. The
server's stderr is a diagnostic side channel: lines are forwarded to the
logger, minus routine INFO chatter.
"""

import asyncio
import itertools
import json
import logging
import os
from typing import Any, Callable, Optional

from armature import __version__
from armature.mcp.models import McpCallResult, McpToolDeclaration
from armature.tools.cancellation import CancellationToken
from armature.tools.process import terminate_process

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "armature"

# Default per-request timeout (10 minutes)
DEFAULT_REQUEST_TIMEOUT = 600.0
# Maximum size of a single JSON-RPC line
_STREAM_LIMIT = 16 * 1024 * 1024


class McpError(Exception):
    """Base error for MCP client failures."""

    pass


class McpConnectionError(McpError):
    """The server could not be started or the transport is gone."""

    pass


class McpTimeoutError(McpError):
    """A request did not get a response in time."""

    pass


class McpCancelledError(McpError):
    """A request was cancelled by the caller."""

    pass


class McpRequestError(McpError):
    """The server answered a request with a JSON-RPC error."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None):
        super().__init__(f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.data = data


def is_noise_line(line: str) -> bool:
    """Whether a stderr line is routine informational logging.

    Many servers log every request at INFO level; those lines are dropped so
    that warnings and errors stand out.
    """
    stripped = line.strip()
    if not stripped:
        return True
    return "] INFO" in stripped or stripped.startswith("INFO") or " INF " in f" {stripped} "


class McpClient:
    """Client for one MCP server process.

    Requests are matched to responses by id. A request abandoned through
    cancellation or timeout is removed from the pending table, so a late
    response is discarded.
    """

    def __init__(
        self,
        server_name: str,
        command: str,
        args: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        cwd: Optional[str] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        on_exit: Optional[Callable[[], None]] = None,
    ):
        """Initialize the client. Nothing is spawned until start().

        Args:
            server_name: Configured server name (used in logs)
            command: Executable to launch
            args: Command arguments
            env: Extra environment variables for the server
            cwd: Working directory for the server
            request_timeout: Default timeout for requests in seconds
            on_exit: Called once if the server process goes away unexpectedly
        """
        self.server_name = server_name
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})
        self.cwd = cwd
        self.request_timeout = request_timeout
        self.on_exit = on_exit

        self.server_info: dict[str, Any] = {}
        self.server_capabilities: dict[str, Any] = {}

        self._proc: Optional[asyncio.subprocess.Process] = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future] = {}
        self._write_lock = asyncio.Lock()
        self._tasks: list[asyncio.Task] = []
        self._closing = False

    @property
    def display_command(self) -> str:
        """Command line as shown in logs."""
        return " ".join([self.command, *self.args])

    @property
    def is_running(self) -> bool:
        """Whether the server process is alive."""
        return self._proc is not None and self._proc.returncode is None

    async def start(self) -> None:
        """Spawn the server process.

        Raises:
            McpConnectionError: If the process cannot be started
        """
        env = {**os.environ, **self.env} if self.env else None
        kwargs: dict[str, Any] = {}
        if os.name == "posix":
            kwargs["start_new_session"] = True

        try:
            self._proc = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env=env,
                limit=_STREAM_LIMIT,
                **kwargs,
            )
        except OSError as e:
            raise McpConnectionError(
                f"Failed to start MCP server '{self.server_name}' ({self.display_command}): {e}"
            ) from e

        self._tasks = [
            asyncio.create_task(self._read_stdout(), name=f"mcp-{self.server_name}-stdout"),
            asyncio.create_task(self._read_stderr(), name=f"mcp-{self.server_name}-stderr"),
        ]
        logger.debug(f"Started MCP server {self.server_name} (pid {self._proc.pid})")

    async def initialize(self, timeout: Optional[float] = None) -> dict[str, Any]:
        """Perform the initialize handshake.

        Returns:
            The server's initialize result
        """
        result = await self.request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": __version__},
            },
            timeout=timeout,
        )
        if isinstance(result, dict):
            self.server_info = result.get("serverInfo") or {}
            self.server_capabilities = result.get("capabilities") or {}
        await self.notify("notifications/initialized")
        return result if isinstance(result, dict) else {}

    async def connect(self, timeout: Optional[float] = None) -> None:
        """Start the server and complete the handshake."""
        await self.start()
        await self.initialize(timeout=timeout)

    async def request(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Send a request and wait for its response.

        Raises:
            McpConnectionError: If the server is not running or exits
            McpTimeoutError: If no response arrives in time
            McpCancelledError: If the cancel token fires first
            McpRequestError: If the server returns a JSON-RPC error
        """
        if not self.is_running:
            raise McpConnectionError(f"MCP server '{self.server_name}' is not running")

        request_id = next(self._ids)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        timeout = self.request_timeout if timeout is None else timeout

        cancel_wait = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        try:
            await self._send({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or {}})

            waiters = {future} if cancel_wait is None else {future, cancel_wait}
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)

            if future not in done:
                reason = "cancelled" if cancel_wait is not None and cancel_wait in done else "timeout"
                await self._send_cancelled(request_id, reason)
                if reason == "cancelled":
                    raise McpCancelledError(f"{method} cancelled: {cancel.reason if cancel else ''}")
                raise McpTimeoutError(f"MCP request timeout after {timeout}s: {method}")

            message = future.result()
        finally:
            self._pending.pop(request_id, None)
            if cancel_wait is not None:
                cancel_wait.cancel()
            if not future.done():
                future.cancel()

        if "error" in message:
            error = message["error"] if isinstance(message["error"], dict) else {"message": str(message["error"])}
            raise McpRequestError(method, error.get("code"), str(error.get("message", "")), error.get("data"))
        return message.get("result")

    async def notify(self, method: str, params: Optional[dict[str, Any]] = None) -> None:
        """Send a notification (no response expected)."""
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        await self._send(message)

    async def list_tools(self, timeout: Optional[float] = None) -> list[McpToolDeclaration]:
        """List the server's tools, following pagination cursors."""
        tools: list[McpToolDeclaration] = []
        cursor: Optional[str] = None

        while True:
            params = {"cursor": cursor} if cursor else {}
            result = await self.request("tools/list", params, timeout=timeout)
            entries = result.get("tools", []) if isinstance(result, dict) else result
            for entry in entries or []:
                if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                    tools.append(McpToolDeclaration.model_validate(entry))
                else:
                    logger.warning(f"MCP server {self.server_name} listed a malformed tool: {entry!r}")

            cursor = result.get("nextCursor") if isinstance(result, dict) else None
            if not cursor:
                return tools

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any],
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> McpCallResult:
        """Invoke a tool on the server."""
        result = await self.request(
            "tools/call",
            {"name": name, "arguments": arguments or {}},
            timeout=timeout,
            cancel=cancel,
        )
        if isinstance(result, dict):
            return McpCallResult.model_validate(result)
        return McpCallResult(content=[{"type": "text", "text": json.dumps(result, ensure_ascii=False)}])

    async def close(self) -> None:
        """Shut the server down and fail any pending requests."""
        self._closing = True
        proc = self._proc

        if proc is not None and proc.returncode is None:
            if proc.stdin is not None and not proc.stdin.is_closing():
                proc.stdin.close()
            try:
                await asyncio.wait_for(proc.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                await terminate_process(proc)

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        self._fail_pending(McpConnectionError(f"MCP server '{self.server_name}' closed"))

    async def _send(self, message: dict[str, Any]) -> None:
        if self._proc is None or self._proc.stdin is None or self._proc.stdin.is_closing():
            raise McpConnectionError(f"MCP server '{self.server_name}' is not running")

        data = (json.dumps(message, ensure_ascii=False) + "\n").encode("utf-8")
        async with self._write_lock:
            try:
                self._proc.stdin.write(data)
                await self._proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise McpConnectionError(f"MCP server '{self.server_name}' closed its input: {e}") from e

    async def _send_cancelled(self, request_id: int, reason: str) -> None:
        try:
            await self.notify("notifications/cancelled", {"requestId": request_id, "reason": reason})
        except McpConnectionError:
            pass

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _read_stdout(self) -> None:
        assert self._proc is not None and self._proc.stdout is not None
        stream = self._proc.stdout

        try:
            while True:
                line = await stream.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                try:
                    message = json.loads(text)
                except json.JSONDecodeError:
                    logger.debug(f"MCP {self.server_name}: ignoring non-JSON output: {text[:200]}")
                    continue
                if isinstance(message, dict):
                    await self._dispatch(message)
        except (asyncio.LimitOverrunError, ValueError) as e:
            logger.error(f"MCP {self.server_name}: unreadable output: {e}")
        finally:
            self._fail_pending(McpConnectionError(f"MCP server '{self.server_name}' exited"))
            if not self._closing:
                logger.warning(f"MCP server {self.server_name} exited unexpectedly")
                if self.on_exit is not None:
                    self.on_exit()

    async def _dispatch(self, message: dict[str, Any]) -> None:
        if "method" in message:
            if "id" in message:
                await self._answer_server_request(message)
            else:
                logger.debug(f"MCP {self.server_name} notification: {message.get('method')}")
            return

        request_id = message.get("id")
        future = self._pending.get(request_id) if isinstance(request_id, int) else None
        if future is None or future.done():
            logger.debug(f"MCP {self.server_name}: discarding response for request {request_id}")
            return
        future.set_result(message)

    async def _answer_server_request(self, message: dict[str, Any]) -> None:
        response: dict[str, Any] = {"jsonrpc": "2.0", "id": message["id"]}
        if message.get("method") == "ping":
            response["result"] = {}
        else:
            response["error"] = {"code": -32601, "message": f"Method not found: {message.get('method')}"}
        try:
            await self._send(response)
        except McpConnectionError:
            pass

    async def _read_stderr(self) -> None:
        assert self._proc is not None and self._proc.stderr is not None
        stream = self._proc.stderr

        while True:
            line = await stream.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if not is_noise_line(text):
                logger.warning(f"MCP STDERR ({self.server_name} - {self.display_command}): {text}")

    def __repr__(self) -> str:
        """Representation."""
        return f"<McpClient server={self.server_name} running={self.is_running}>"
