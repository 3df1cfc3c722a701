"""Protocol interfaces for the transport and agent collaborators.

The session lifecycle only talks to these interfaces. The default
implementations are backed by paramiko (``agentssh.services.transport`` and
``agentssh.services.agent``); tests substitute in-memory fakes.

Usage Example:

    from agentssh import dial

    class RecordingAgentBackend:
        def connect(self, socket_path):
            ...

    session = dial("deploy@build01", "/tmp/agent.sock",
                   agent_backend=RecordingAgentBackend())

Collaborator methods may raise any exception; the core wraps them into the
``agentssh.errors`` hierarchy according to the phase that failed.
"""

from typing import IO, Any, Protocol, runtime_checkable

from agentssh.models import ConnectionTarget

# Anything with a write(bytes) method, or None to discard
OutputSink = Any


@runtime_checkable
class Channel(Protocol):
    """One multiplexed session channel on a transport."""

    def setenv(self, key: str, value: str) -> None:
        """Request that ``key=value`` be set in the remote environment."""
        ...

    def exec(self, command: str) -> None:
        """Start ``command`` verbatim on the remote host.

        Raises:
            Exception: If the remote side refuses to start the command
        """
        ...

    def communicate(
        self,
        stdin: IO[bytes] | None,
        stdout: OutputSink,
        stderr: OutputSink,
    ) -> int:
        """Pump stdin to the remote command and its output to the sinks.

        Blocks until the command finishes.

        Returns:
            Remote exit status, or -1 if the remote side reported none

        Raises:
            Exception: If the channel or transport fails mid-run
        """
        ...

    def close(self) -> None:
        """Release the channel. Safe to call more than once."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Authenticated connection capable of multiplexing channels."""

    def new_channel(self) -> Channel:
        """Open a new session channel.

        Must be safe to call from several threads at once.
        """
        ...

    def close(self) -> None:
        """Close the connection and every channel on it."""
        ...


@runtime_checkable
class TransportBackend(Protocol):
    """Factory for authenticated transports."""

    def dial(
        self,
        target: ConnectionTarget,
        signers: list[Any],
        timeout: float,
    ) -> Transport:
        """Connect to ``target`` and authenticate as ``target.user``.

        Args:
            target: Host, port and user to connect as
            signers: Agent-held keys to offer for public key authentication
            timeout: Seconds allowed for connect, handshake and auth

        Returns:
            Authenticated transport
        """
        ...


@runtime_checkable
class AgentConnection(Protocol):
    """Open connection to a local credential agent."""

    socket_path: str

    def signers(self) -> list[Any]:
        """Request the identities held by the agent."""
        ...

    def close(self) -> None:
        """Close the local socket. Safe to call more than once."""
        ...


@runtime_checkable
class AgentBackend(Protocol):
    """Factory for agent connections and agent forwarding hooks."""

    def connect(self, socket_path: str) -> AgentConnection:
        """Open the agent's local socket."""
        ...

    def forward_to_agent(self, transport: Transport, agent: AgentConnection) -> None:
        """Serve forwarded agent channels on ``transport`` from ``agent``.

        One-time registration per transport.
        """
        ...

    def request_agent_forwarding(self, channel: Channel) -> None:
        """Ask the remote peer to forward agent traffic over ``channel``."""
        ...


__all__ = [
    "AgentBackend",
    "AgentConnection",
    "Channel",
    "OutputSink",
    "Transport",
    "TransportBackend",
]
