"""Child process execution shared by subprocess-backed tools."""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from armature.tools.cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Time a child gets to exit after SIGTERM before it is killed
DEFAULT_GRACE_PERIOD = 2.0
# Time spent collecting remaining output once the child has exited
DEFAULT_DRAIN_TIMEOUT = 0.5


@dataclass
class ProcessResult:
    """Outcome of one child process run."""

    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    error: Optional[str] = None  # Spawn failure
    cancelled: bool = False
    timed_out: bool = False

    @property
    def success(self) -> bool:
        """Clean exit with status 0."""
        return (
            self.error is None
            and self.signal is None
            and self.exit_code == 0
            and not self.cancelled
            and not self.timed_out
        )


def _decode(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


def _send_signal(proc: asyncio.subprocess.Process, sig: int) -> None:
    """Signal the child's whole process group where supported."""
    try:
        if os.name == "posix":
            os.killpg(proc.pid, sig)
        elif sig == signal.SIGTERM:
            proc.terminate()
        else:
            proc.kill()
    except ProcessLookupError:
        pass


async def terminate_process(
    proc: asyncio.subprocess.Process, grace_period: float = DEFAULT_GRACE_PERIOD
) -> None:
    """Stop a child: SIGTERM, then SIGKILL once the grace period runs out."""
    if proc.returncode is not None:
        return

    _send_signal(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_period)
    except asyncio.TimeoutError:
        logger.warning(f"Process {proc.pid} ignored SIGTERM, killing")
        _send_signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()


async def _read_stream(stream: Optional[asyncio.StreamReader], buffer: bytearray) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            return
        buffer.extend(chunk)


async def _feed_stdin(proc: asyncio.subprocess.Process, data: bytes) -> None:
    try:
        proc.stdin.write(data)
        await proc.stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug(f"Process {proc.pid} closed stdin before reading all input")
    finally:
        proc.stdin.close()


async def _finish_io(
    proc: asyncio.subprocess.Process, io_tasks: list[asyncio.Future], drain_timeout: float
) -> None:
    """Collect what is left in the pipes, then release them.

    A background child of the process can hold the pipes open after the
    process itself has exited, so draining is bounded.
    """
    _, pending = await asyncio.wait(io_tasks, timeout=drain_timeout)
    if pending:
        logger.debug(f"Output of process {proc.pid} still open after exit, not waiting for it")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # asyncio.subprocess.Process exposes no close(); the transport owns the pipes
    transport = getattr(proc, "_transport", None)
    if transport is not None:
        transport.close()


async def run_process(
    command: Union[str, Sequence[str]],
    *,
    shell: bool = False,
    stdin_data: Optional[str] = None,
    cwd: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
    cancel: Optional[CancellationToken] = None,
    grace_period: float = DEFAULT_GRACE_PERIOD,
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
) -> ProcessResult:
    """Run a child process to completion, honouring timeout and cancellation.

    The child gets its own process group on POSIX so that everything it
    spawns is stopped with it on timeout or cancel. The call returns once
    the child itself exits; processes it left running in the background
    keep running.

    Args:
        command: Argument vector, or a command string when shell=True
        shell: Run the command string through the system shell
        stdin_data: Text written to the child's stdin (stdin closed when None)
        cwd: Working directory
        env: Full environment for the child (inherit when None)
        timeout: Seconds before the child is stopped
        cancel: Token that stops the child when cancelled
        grace_period: Seconds between SIGTERM and SIGKILL
        drain_timeout: Seconds to keep reading output after the child exits

    Returns:
        ProcessResult. Spawn failures are reported in `error`, never raised.
    """
    kwargs = {
        "stdin": asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "cwd": cwd,
        "env": env,
    }
    if os.name == "posix":
        kwargs["start_new_session"] = True

    try:
        if shell:
            proc = await asyncio.create_subprocess_shell(str(command), **kwargs)
        else:
            argv = list(command)
            proc = await asyncio.create_subprocess_exec(*argv, **kwargs)
    except (OSError, ValueError) as e:
        logger.debug(f"Failed to spawn {command!r}: {e}")
        return ProcessResult(error=str(e))

    stdout, stderr = bytearray(), bytearray()
    io_tasks = [
        asyncio.ensure_future(_read_stream(proc.stdout, stdout)),
        asyncio.ensure_future(_read_stream(proc.stderr, stderr)),
    ]
    if stdin_data is not None:
        io_tasks.append(asyncio.ensure_future(_feed_stdin(proc, stdin_data.encode("utf-8"))))

    exited = asyncio.ensure_future(proc.wait())
    cancel_wait = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
    waiters = {exited} if cancel_wait is None else {exited, cancel_wait}

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        exited.cancel()
        await terminate_process(proc, grace_period)
        await _finish_io(proc, io_tasks, 0)
        raise
    finally:
        if cancel_wait is not None:
            cancel_wait.cancel()

    if exited in done:
        await _finish_io(proc, io_tasks, drain_timeout)
        return _build_result(proc.returncode, bytes(stdout), bytes(stderr))

    was_cancelled = cancel_wait is not None and cancel_wait in done
    logger.info(f"Stopping process {proc.pid} ({'cancelled' if was_cancelled else 'timed out'})")
    await terminate_process(proc, grace_period)
    await exited
    await _finish_io(proc, io_tasks, drain_timeout)

    result = _build_result(proc.returncode, bytes(stdout), bytes(stderr))
    result.cancelled = was_cancelled
    result.timed_out = not was_cancelled
    return result


def _build_result(returncode: Optional[int], stdout: bytes, stderr: bytes) -> ProcessResult:
    result = ProcessResult(stdout=_decode(stdout), stderr=_decode(stderr))
    if returncode is not None and returncode < 0:
        result.signal = -returncode
    else:
        result.exit_code = returncode
    return result
