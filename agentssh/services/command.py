"""Remote command execution over a session channel.

All three modes share one skeleton:

1. Open a new session channel on the transport
2. Request agent forwarding on it (if the session forwards the agent)
3. Apply every environment entry
4. Start the command verbatim and pump stdin/stdout/stderr
5. Close the channel, whatever happened above

The environment is re-applied on every execution so that ``set_envs``
between calls takes effect on the next command.
"""

import io
import logging
from collections.abc import Mapping
from typing import IO, TYPE_CHECKING, Union

from agentssh.errors import (
    AgentSSHError,
    ChannelError,
    EnvSetError,
    ExecChannelError,
    ExecStartError,
    ExitStatusError,
)
from agentssh.protocols import Channel, OutputSink, Transport

if TYPE_CHECKING:
    from agentssh.services.agent import AgentHandle

logger = logging.getLogger(__name__)

StdinSource = Union[bytes, bytearray, str, IO[bytes], None]


def as_stdin_stream(stdin: StdinSource) -> IO[bytes] | None:
    """Normalize a stdin argument to a binary stream.

    Args:
        stdin: None, bytes, str (UTF-8 encoded) or a binary file-like object

    Returns:
        Binary stream, or None for no input
    """
    if stdin is None:
        return None
    if isinstance(stdin, str):
        return io.BytesIO(stdin.encode("utf-8"))
    if isinstance(stdin, (bytes, bytearray)):
        return io.BytesIO(bytes(stdin))
    return stdin


class RemoteCommand:
    """Execution context for a single command.

    Holds references to the session's transport and agent handle; owns
    only the channel it opens, and only for the duration of one call.
    """

    def __init__(
        self,
        transport: Transport,
        agent: "AgentHandle",
        environment: Mapping[str, str],
        command: str,
    ) -> None:
        self.transport = transport
        self.agent = agent
        self.environment = environment
        self.command = command

    def output(self, stdin: StdinSource = None) -> bytes:
        """Run the command and return its standard output.

        Raises:
            ExitStatusError: On non-zero exit; captured stderr is attached
        """
        stdout = io.BytesIO()
        stderr = io.BytesIO()
        self._execute(stdin, stdout, stderr, captured_stderr=stderr)
        return stdout.getvalue()

    def combined_output(self, stdin: StdinSource = None) -> bytes:
        """Run the command and return stdout and stderr interleaved."""
        combined = io.BytesIO()
        self._execute(stdin, combined, combined)
        return combined.getvalue()

    def run(
        self,
        stdin: StdinSource = None,
        stdout: OutputSink = None,
        stderr: OutputSink = None,
    ) -> None:
        """Run the command, writing output to the sinks as it arrives."""
        self._execute(stdin, stdout, stderr)

    def _execute(
        self,
        stdin: StdinSource,
        stdout: OutputSink,
        stderr: OutputSink,
        captured_stderr: io.BytesIO | None = None,
    ) -> None:
        try:
            channel = self.transport.new_channel()
        except Exception as e:
            raise ChannelError(f"Cannot open session channel: {e}") from e

        logger.debug("Opened channel for %r", self.command)
        try:
            self.agent.request_forwarding(channel)
            self._apply_environment(channel)
            status = self._start_and_wait(channel, as_stdin_stream(stdin), stdout, stderr)
        finally:
            self._release(channel)

        if status == -1:
            raise ExecChannelError(
                self.command, "channel closed without an exit status"
            )
        if status != 0:
            captured = captured_stderr.getvalue() if captured_stderr is not None else b""
            raise ExitStatusError(self.command, status, captured)

        logger.debug("Command %r completed", self.command)

    def _apply_environment(self, channel: Channel) -> None:
        for key, value in self.environment.items():
            try:
                channel.setenv(key, value)
            except Exception as e:
                raise EnvSetError(key, e) from e

    def _start_and_wait(
        self,
        channel: Channel,
        stdin: IO[bytes] | None,
        stdout: OutputSink,
        stderr: OutputSink,
    ) -> int:
        try:
            channel.exec(self.command)
        except Exception as e:
            raise ExecStartError(self.command, e) from e

        try:
            return channel.communicate(stdin, stdout, stderr)
        except AgentSSHError:
            raise
        except Exception as e:
            raise ExecChannelError(self.command, e) from e

    def _release(self, channel: Channel) -> None:
        try:
            channel.close()
        except Exception as e:
            logger.warning("Failed to close channel for %r: %s", self.command, e)
