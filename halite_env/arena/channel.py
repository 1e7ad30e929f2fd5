"""
Agent Channels - one per competitor.

A channel owns the conversation with one untrusted agent: it writes the
turn's serialized world, waits for one response line under a wall-clock
deadline and parses it into commands. Anything that prevents a usable
response is an ``AgentFault``:

- TIMEOUT: no complete line before the deadline
- PROCESS_EXITED: the agent exited or closed its output
- MALFORMED_OUTPUT: undecodable bytes or an over-long line
- UNRESPONSIVE_PIPE: the agent's input could not be written

Faults are returned, never raised. The first fault is final: the agent is
terminated immediately and every later call returns the same fault without
touching the process. Individual bad commands inside an otherwise readable
line are not faults; the command parser skips them.

Two implementations are provided:
- SubprocessAgentChannel: a launched process over asyncio pipes
- InProcessAgentChannel: a Python callable, run on a worker thread when it
  is synchronous, so a slow handler cannot stall the other channels
"""

import asyncio
import inspect
import sys
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..commands import Command, parse_commands
from ..errors import ConfigurationError


# Longest response line accepted from an agent (bytes)
DEFAULT_LINE_LIMIT = 1 << 20

# Grace period for a killed process to be reaped (seconds)
TERMINATE_WAIT_S = 1.0


class FaultKind(str, Enum):
    """Ways an agent can fail a turn."""
    TIMEOUT = "timeout"
    PROCESS_EXITED = "process_exited"
    MALFORMED_OUTPUT = "malformed_output"
    UNRESPONSIVE_PIPE = "unresponsive_pipe"


@dataclass(frozen=True)
class AgentFault:
    """A whole-response failure that eliminates the agent."""
    kind: FaultKind
    player_id: int
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "fault",
            "player": self.player_id,
            "kind": self.kind.value,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        detail = f" ({self.detail})" if self.detail else ""
        return f"player {self.player_id}: {self.kind.value}{detail}"


@dataclass
class AgentResponse:
    """Result of one turn's exchange with an agent."""
    commands: List[Command] = field(default_factory=list)
    fault: Optional[AgentFault] = None
    raw: str = ""
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.fault is None


class ChannelError(Exception):
    """Internal signal from an I/O primitive; converted to an AgentFault."""

    def __init__(self, kind: FaultKind, detail: str = ""):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


class AgentChannel(ABC):
    """
    Base class for agent channels.

    Subclasses provide the raw I/O primitives; this class enforces deadlines
    and the fail-fast policy.

    Usage:
        await channel.start()
        name, fault = await channel.handshake(init_text, deadline=30.0)
        response = await channel.exchange(world_line, deadline=2.0)
        await channel.close()

    A deadline of None waits forever (debug mode only).
    """

    def __init__(self, player_id: int):
        self.player_id = player_id
        self.fault: Optional[AgentFault] = None
        self._closed = False

    @property
    def faulted(self) -> bool:
        return self.fault is not None

    # -------------------------------------------------------------------------
    # I/O primitives
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the agent. Launch failures raise ConfigurationError."""

    @abstractmethod
    async def _write(self, text: str) -> None:
        """Deliver one message. Raises ChannelError."""

    @abstractmethod
    async def _read_line(self) -> str:
        """Wait for one response line. Raises ChannelError."""

    @abstractmethod
    async def _terminate(self) -> None:
        """Stop the agent and release its resources."""

    # -------------------------------------------------------------------------
    # Deadline enforcement
    # -------------------------------------------------------------------------

    async def _fail(self, kind: FaultKind, detail: str = "") -> AgentFault:
        if self.fault is None:
            self.fault = AgentFault(kind, self.player_id, detail)
            await self.close()
        return self.fault

    async def _bounded(self, awaitable: Awaitable[Any], timeout: Optional[float]) -> Any:
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=max(0.0, timeout))

    async def send_state(self, text: str, deadline: Optional[float] = None) -> Optional[AgentFault]:
        """
        Write one message to the agent.

        Returns:
            The fault if the write failed or timed out, else None.
        """
        if self.fault is not None:
            return self.fault
        try:
            await self._bounded(self._write(text), deadline)
        except asyncio.TimeoutError:
            return await self._fail(FaultKind.TIMEOUT, "input not accepted before deadline")
        except ChannelError as e:
            return await self._fail(e.kind, e.detail)
        return None

    async def receive_line(self, deadline: Optional[float] = None) -> Tuple[str, Optional[AgentFault]]:
        """Wait for one raw response line."""
        if self.fault is not None:
            return "", self.fault
        try:
            line = await self._bounded(self._read_line(), deadline)
        except asyncio.TimeoutError:
            return "", await self._fail(FaultKind.TIMEOUT, f"no response within {deadline:.3f}s")
        except ChannelError as e:
            return "", await self._fail(e.kind, e.detail)
        return line, None

    async def receive_commands(self, deadline: Optional[float] = None) -> AgentResponse:
        """
        Wait for the agent's command line and parse it.

        Returns:
            AgentResponse with the parsed commands, or with a fault.
        """
        start = time.monotonic()
        line, fault = await self.receive_line(deadline)
        elapsed = time.monotonic() - start
        if fault is not None:
            return AgentResponse(fault=fault, elapsed_s=elapsed)
        return AgentResponse(commands=parse_commands(line), raw=line, elapsed_s=elapsed)

    async def exchange(self, text: str, deadline: Optional[float] = None) -> AgentResponse:
        """Send one turn's state and collect the reply under a single deadline."""
        start = time.monotonic()
        fault = await self.send_state(text, deadline)
        if fault is not None:
            return AgentResponse(fault=fault, elapsed_s=time.monotonic() - start)

        remaining = None if deadline is None else deadline - (time.monotonic() - start)
        response = await self.receive_commands(remaining)
        response.elapsed_s = time.monotonic() - start
        return response

    async def handshake(self, text: str, deadline: Optional[float] = None) -> Tuple[Optional[str], Optional[AgentFault]]:
        """
        Send the initial block and read the agent's name line.

        Returns:
            (name line, None) on success, (None, fault) otherwise.
        """
        start = time.monotonic()
        fault = await self.send_state(text, deadline)
        if fault is not None:
            return None, fault
        remaining = None if deadline is None else deadline - (time.monotonic() - start)
        line, fault = await self.receive_line(remaining)
        if fault is not None:
            return None, fault
        return line, None

    async def close(self) -> None:
        """Terminate the agent. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._terminate()


# =============================================================================
# SUBPROCESS CHANNEL
# =============================================================================

class SubprocessAgentChannel(AgentChannel):
    """
    Channel to an agent running as a child process.

    The agent reads messages on stdin and writes one line per message on
    stdout. Its stderr is discarded.
    """

    def __init__(
        self,
        player_id: int,
        argv: Sequence[str],
        cwd: Optional[str] = None,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ):
        super().__init__(player_id)
        if not argv:
            raise ConfigurationError("Empty agent command")
        self.argv = list(argv)
        self.cwd = cwd
        self.line_limit = line_limit
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def start(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                cwd=self.cwd,
                limit=self.line_limit,
            )
        except OSError as e:
            raise ConfigurationError(
                f"Could not launch agent {self.player_id} ({' '.join(self.argv)}): {e}"
            ) from e

    async def _write(self, text: str) -> None:
        if self._process is None or self._process.stdin is None:
            raise ChannelError(FaultKind.PROCESS_EXITED, "agent not started")
        if not text.endswith("\n"):
            text += "\n"
        try:
            self._process.stdin.write(text.encode("utf-8"))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            if self._process.returncode is not None:
                raise ChannelError(
                    FaultKind.PROCESS_EXITED, f"exit code {self._process.returncode}"
                ) from e
            raise ChannelError(FaultKind.UNRESPONSIVE_PIPE, str(e) or type(e).__name__) from e

    async def _read_line(self) -> str:
        if self._process is None or self._process.stdout is None:
            raise ChannelError(FaultKind.PROCESS_EXITED, "agent not started")
        try:
            data = await self._process.stdout.readline()
        except ValueError as e:
            # StreamReader reports an over-long line as ValueError
            raise ChannelError(FaultKind.MALFORMED_OUTPUT, "response line too long") from e
        if not data:
            raise ChannelError(FaultKind.PROCESS_EXITED, "output closed")
        try:
            return data.decode("utf-8").rstrip("\r\n")
        except UnicodeDecodeError as e:
            raise ChannelError(FaultKind.MALFORMED_OUTPUT, "response is not valid UTF-8") from e

    async def _terminate(self) -> None:
        process = self._process
        if process is None:
            return
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_WAIT_S)
        except asyncio.TimeoutError:
            print(
                f"[ARENA] Warning: agent {self.player_id} (pid {process.pid}) did not exit after kill",
                file=sys.stderr,
            )
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()


# =============================================================================
# IN-PROCESS CHANNEL
# =============================================================================

AgentHandler = Callable[[str], Union[str, Awaitable[str]]]


class InProcessAgentChannel(AgentChannel):
    """
    Channel to an agent implemented as a Python callable.

    The handler receives each message and returns the response line, either
    directly or as an awaitable. Synchronous handlers run on the channel's own
    worker thread so the deadline still applies; an abandoned call keeps
    running on that thread but its result is ignored, and closing the channel
    does not wait for it. A handler that raises counts as an exited agent,
    one that returns None or a non-string as malformed output.
    """

    def __init__(self, player_id: int, handler: AgentHandler):
        super().__init__(player_id)
        self.handler = handler
        self._pending: List[str] = []
        self._is_async = inspect.iscoroutinefunction(handler)
        self._executor: Optional[ThreadPoolExecutor] = None
        if not self._is_async:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"agent-{player_id}"
            )

    async def _write(self, text: str) -> None:
        self._pending.append(text)

    async def _read_line(self) -> str:
        if not self._pending:
            raise ChannelError(FaultKind.PROCESS_EXITED, "nothing to respond to")
        message = self._pending.pop(0)
        try:
            if self._is_async:
                result = await self.handler(message)
            else:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(self._executor, self.handler, message)
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ChannelError(FaultKind.PROCESS_EXITED, f"handler raised {type(e).__name__}: {e}") from e
        if not isinstance(result, str):
            raise ChannelError(FaultKind.MALFORMED_OUTPUT, f"handler returned {type(result).__name__}")
        return result.splitlines()[0] if result else ""

    async def _terminate(self) -> None:
        self._pending.clear()
        if self._executor is not None:
            # Never join a worker stuck in a handler past its deadline
            self._executor.shutdown(wait=False, cancel_futures=True)
