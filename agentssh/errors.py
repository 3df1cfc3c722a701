"""Exception hierarchy for agentssh.

Dial-time failures (ParseError through ForwardSetupError) and per-command
failures (ChannelError through ExecError) share one base class so callers
can catch everything raised by the library with a single clause.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentssh.models import ConnectionTarget


class AgentSSHError(Exception):
    """Base class for all agentssh errors."""


class ParseError(AgentSSHError, ValueError):
    """Malformed ``[user@]host[:port]`` address."""

    def __init__(self, address: str, reason: str = "malformed address"):
        """Initialize parse error.

        Args:
            address: The address string that failed to parse
            reason: Short description of what was wrong
        """
        self.address = address
        self.reason = reason
        super().__init__(f"{reason}: {address!r}")


class ConnectError(AgentSSHError):
    """Local agent socket could not be reached."""

    def __init__(self, socket_path: str, original_error: Exception):
        self.socket_path = socket_path
        self.original_error = original_error
        super().__init__(f"Cannot connect to agent at {socket_path}: {original_error}")


class AgentError(AgentSSHError):
    """Agent returned an error or the agent channel broke."""


class DialError(AgentSSHError):
    """Failed to establish an authenticated SSH transport."""

    def __init__(self, target: "ConnectionTarget", original_error: Exception):
        """Initialize dial error.

        Args:
            target: Connection target that was dialed
            original_error: Original exception that caused the failure
        """
        self.target = target
        self.original_error = original_error
        super().__init__(f"Cannot connect to {target.address}: {original_error}")


class ForwardSetupError(AgentSSHError):
    """One-time agent forwarding registration on the transport failed."""


class ChannelError(AgentSSHError):
    """A session channel could not be opened on the transport."""


class SessionClosedError(ChannelError):
    """Command issued on a session that has already been closed."""

    def __init__(self) -> None:
        super().__init__("session is closed")


class ForwardRequestError(AgentSSHError):
    """Remote peer rejected the per-channel agent forwarding request."""


class EnvSetError(AgentSSHError):
    """An environment variable could not be applied to the channel."""

    def __init__(self, key: str, original_error: Exception):
        self.key = key
        self.original_error = original_error
        super().__init__(f"Cannot set environment variable {key}: {original_error}")


class ExecError(AgentSSHError):
    """Remote command execution failed."""

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(f"Command {command!r} {message}")


class ExecStartError(ExecError):
    """Remote command could not be started."""

    def __init__(self, command: str, original_error: Exception):
        self.original_error = original_error
        super().__init__(command, f"could not be started: {original_error}")


class ExitStatusError(ExecError):
    """Remote command ran and exited with a non-zero status."""

    def __init__(self, command: str, exit_status: int, stderr: bytes = b""):
        """Initialize exit status error.

        Args:
            command: Command string that was executed
            exit_status: Exit status reported by the remote host
            stderr: Standard error captured during the run, if any
        """
        self.exit_status = exit_status
        self.stderr = stderr
        detail = stderr.decode("utf-8", errors="replace").strip()
        message = f"exited with status {exit_status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(command, message)


class ExecChannelError(ExecError):
    """Channel or transport failed while the command was running.

    Also raised when the channel closes without an exit status. paramiko
    drops ``exit-signal`` requests, so a command killed by a signal ends up
    here rather than as ``ExitStatusError``.
    """

    def __init__(self, command: str, reason: Exception | str):
        """Initialize channel failure.

        Args:
            command: Command string that was executing
            reason: Original exception, or a description when there is none
        """
        self.original_error = reason if isinstance(reason, Exception) else None
        super().__init__(command, f"failed mid-execution: {reason}")


__all__ = [
    "AgentError",
    "AgentSSHError",
    "ChannelError",
    "ConnectError",
    "DialError",
    "EnvSetError",
    "ExecChannelError",
    "ExecError",
    "ExecStartError",
    "ExitStatusError",
    "ForwardRequestError",
    "ForwardSetupError",
    "ParseError",
    "SessionClosedError",
]
