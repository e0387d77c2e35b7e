"""
tmux session orchestration.

Turns a project path into a tmux session using tmux control mode (`tmux -C`),
which accepts one command per line on stdin and answers each command with a
block on stdout:

    %begin <time> <number> <flags>
    <output lines>
    %end <time> <number> <flags>        (or %error ... when the command failed)

Lines starting with `%` outside a block are notifications and are ignored.

Flow (see OrchestratorState):
1. start `tmux -C new-session` (a throwaway control session)
2. `list-sessions` to see whether the project session already exists
3. create it with `new-session` (then `switch-client -l` back to the control
   session), or reuse the existing one
4. `kill-session` ends the control session, leaving the project session alive
5. hand the terminal over with `attach-session` / `switch-client`
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from cs.exceptions import ControlProtocolError, TmuxCommandError, TmuxNotFoundError, TmuxTerminationError
from cs.paths import session_name
from cs.protocols import LoggerProtocol, NullLogger
from cs.schemas.session import ExecCommand, SessionMode, SessionSpec
from cs.services.process import terminate_process

__all__ = [
    'ControlClient',
    'ControlReply',
    'OrchestratorState',
    'SessionOrchestrator',
    'inside_tmux',
]

logger = logging.getLogger(__name__)

DUPLICATE_SESSION = 'duplicate session'
BLOCK_BEGIN = '%begin'
BLOCK_END = '%end'
BLOCK_ERROR = '%error'


def inside_tmux(environ: Mapping[str, str] | None = None) -> bool:
    """True when running inside a tmux client (tmux sets $TMUX)."""
    env = os.environ if environ is None else environ
    return bool(env.get('TMUX'))


def quote(value: str) -> str:
    """Single-quote an argument for the tmux command parser."""
    return "'" + value.replace("'", "'\\''") + "'"


class OrchestratorState(Enum):
    IDLE = 'idle'
    CONTROL_MODE_STARTED = 'control-mode-started'
    SESSION_QUERIED = 'session-queried'
    SESSION_CREATED = 'session-created'
    SESSION_FOUND = 'session-found'
    ATTACHED = 'attached'


@dataclass
class ControlReply:
    """Output block of one control-mode command."""

    lines: list[str] = field(default_factory=list)
    error: bool = False

    @property
    def text(self) -> str:
        return '\n'.join(self.lines)


class ControlClient:
    """Line protocol over a running `tmux -C` process."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdin is not None and process.stdout is not None, 'control mode needs piped stdin/stdout'
        self.process = process
        self._stdin = process.stdin
        self._stdout = process.stdout

    async def send(self, command: str) -> None:
        logger.debug('tmux <- %s', command)
        self._stdin.write(os.fsencode(command) + b'\n')
        await self._stdin.drain()

    async def read_reply(self) -> ControlReply:
        """
        Read lines until the end of the next reply block.

        Raises:
            ControlProtocolError: If the stream ends before %end/%error
        """
        reply: ControlReply | None = None
        while True:
            raw = await self._stdout.readline()
            if not raw:
                raise ControlProtocolError('tmux closed the control stream before the end of a reply')

            line = os.fsdecode(raw.rstrip(b'\r\n'))
            if reply is None:
                if line.startswith(BLOCK_BEGIN):
                    reply = ControlReply()
                # Anything else outside a block is a notification
                continue

            if line.startswith((BLOCK_END, BLOCK_ERROR)):
                reply.error = line.startswith(BLOCK_ERROR)
                return reply
            reply.lines.append(line)

    async def command(self, command: str) -> ControlReply:
        await self.send(command)
        return await self.read_reply()

    async def close(self) -> int:
        """Close stdin, drain remaining output and wait for tmux to exit."""
        self._stdin.close()
        await self._stdout.read()
        return await self.process.wait()


class SessionOrchestrator:
    """
    Creates or reuses the tmux session for a project and returns the command
    that attaches the terminal to it.
    """

    def __init__(
        self,
        binary: str = 'tmux',
        *,
        inside_session: bool | None = None,
        startup_script: str | None = None,
        reporter: LoggerProtocol | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            binary: tmux binary
            inside_session: Whether we run inside tmux (default: detect via $TMUX)
            startup_script: Control-mode command sent to newly created sessions
            reporter: Sink for non-fatal diagnostics
        """
        self.binary = binary
        self.inside_session = inside_tmux() if inside_session is None else inside_session
        self.startup_script = startup_script
        self.reporter: LoggerProtocol = reporter or NullLogger()
        self.state = OrchestratorState.IDLE

    async def prepare(self, spec: SessionSpec) -> ExecCommand:
        """
        Make sure the target exists and build the command that attaches to it.

        Raises:
            TmuxNotFoundError: If tmux is not installed
            TmuxError: If control mode fails
        """
        self._require_binary()
        name = session_name(spec.path)

        if spec.mode is SessionMode.WINDOW:
            if self.inside_session:
                self.state = OrchestratorState.ATTACHED
                return ExecCommand(argv=[self.binary, 'new-window', '-c', str(spec.path), '-n', name])
            if self.startup_script is None:
                # Nothing to run in a new session, create-or-attach does it in one step
                self.state = OrchestratorState.ATTACHED
                return ExecCommand(argv=[self.binary, 'new', '-A', '-s', name, '-c', str(spec.path)])

        await self.ensure_session(spec.path, name)
        return self.attach_command(name)

    def attach_command(self, name: str) -> ExecCommand:
        self.state = OrchestratorState.ATTACHED
        if self.inside_session:
            return ExecCommand(argv=[self.binary, 'switch-client', '-t', name])
        return ExecCommand(argv=[self.binary, 'attach-session', '-t', name])

    async def ensure_session(self, path: Path, name: str) -> bool:
        """
        Create the session unless it already exists.

        Returns:
            True if a session was created, False if an existing one is reused

        Raises:
            TmuxCommandError: If a control-mode command or the startup script fails
            TmuxTerminationError: If the control process is killed by a signal
        """
        self._require_binary()
        process = await self._start_control_mode()
        client = ControlClient(process)
        try:
            # Reply to the new-session given on the command line
            await client.read_reply()

            names = await self._list_sessions(client)
            created = False
            script_reply: ControlReply | None = None
            if name in names:
                self.state = OrchestratorState.SESSION_FOUND
                await self.reporter.info(f'reusing tmux session {name}')
            elif await self._create_session(client, path, name):
                created = True
                if self.startup_script:
                    script_reply = await client.command(self.startup_script)
                await self._switch_back(client)

            await client.send('kill-session')
            returncode = await client.close()
        finally:
            await terminate_process(process)

        if returncode < 0:
            raise TmuxTerminationError(-returncode)
        if returncode != 0:
            raise TmuxCommandError('control mode', f'exited with code {returncode}')
        if script_reply is not None and script_reply.error:
            raise TmuxCommandError('startup script', f'{script_reply.text} (session {name} was created)')
        return created

    async def _start_control_mode(self) -> asyncio.subprocess.Process:
        # Nesting checks look at $TMUX; the control client is not a nested terminal
        env = {key: value for key, value in os.environ.items() if key != 'TMUX'}
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                '-C',
                'new-session',
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as e:
            raise TmuxNotFoundError(self.binary) from e

        self.state = OrchestratorState.CONTROL_MODE_STARTED
        return process

    async def _list_sessions(self, client: ControlClient) -> list[str]:
        reply = await client.command("list-sessions -F '#{session_name}'")
        if reply.error:
            raise TmuxCommandError('list-sessions', reply.text)

        self.state = OrchestratorState.SESSION_QUERIED
        return [line for line in reply.lines if line]

    async def _create_session(self, client: ControlClient, path: Path, name: str) -> bool:
        reply = await client.command(f'new-session -s {quote(name)} -c {quote(str(path))}')
        if reply.error:
            if DUPLICATE_SESSION in reply.text:
                self.state = OrchestratorState.SESSION_FOUND
                await self.reporter.info(f'tmux session {name} already exists')
                return False
            raise TmuxCommandError('new-session', reply.text)

        self.state = OrchestratorState.SESSION_CREATED
        logger.debug('created tmux session %s at %s', name, path)
        return True

    async def _switch_back(self, client: ControlClient) -> None:
        # kill-session targets the current session, which must be the control one again
        reply = await client.command('switch-client -l')
        if reply.error:
            raise TmuxCommandError('switch-client', reply.text)

    def _require_binary(self) -> None:
        if not shutil.which(self.binary):
            raise TmuxNotFoundError(self.binary)
