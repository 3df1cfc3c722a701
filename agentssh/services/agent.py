"""Local ssh-agent access and agent forwarding.

``AgentHandle`` is what the session lifecycle talks to. It wraps an
``AgentBackend`` (paramiko by default) and turns backend failures into
``ConnectError``/``AgentError``/``ForwardSetupError``/``ForwardRequestError``.
"""

import logging
import select
import socket
import threading
from typing import Any

import paramiko
from paramiko.agent import AgentSSH

from agentssh.errors import (
    AgentError,
    ConnectError,
    ForwardRequestError,
    ForwardSetupError,
)
from agentssh.protocols import AgentBackend, AgentConnection, Channel, Transport
from agentssh.services.transport import ParamikoChannel, ParamikoTransport

logger = logging.getLogger(__name__)

RELAY_BUFSIZE = 16384


def open_unix_socket(path: str) -> socket.socket:
    """Connect a stream socket to a local agent endpoint."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(path)
    except OSError:
        sock.close()
        raise
    return sock


class AgentProtocolClient(AgentSSH):
    """paramiko agent protocol client over an already-open socket."""

    def __init__(self, sock: socket.socket) -> None:
        super().__init__()
        self._sock = sock

    def request_identities(self) -> list[paramiko.AgentKey]:
        """Ask the agent for its keys.

        Returns:
            Agent-backed keys; signing is delegated to the agent

        Raises:
            paramiko.SSHException: If the agent answers with anything else
        """
        self._connect(self._sock)
        return list(self.get_keys())


class ParamikoAgentConnection:
    """Open connection to an ssh-agent socket."""

    def __init__(self, socket_path: str, sock: socket.socket) -> None:
        self.socket_path = socket_path
        self._sock = sock
        self._client = AgentProtocolClient(sock)
        self._closed = False

    def signers(self) -> list[paramiko.AgentKey]:
        if self._closed:
            raise paramiko.SSHException("agent connection is closed")
        return self._client.request_identities()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()


class AgentForwarder:
    """Serves forwarded ``auth-agent@openssh.com`` channels.

    Each channel the remote side opens is relayed to a fresh connection to
    the local agent socket on its own daemon thread.
    """

    def __init__(self, socket_path: str) -> None:
        self.socket_path = socket_path

    def __call__(self, channel: paramiko.Channel) -> None:
        try:
            sock = open_unix_socket(self.socket_path)
        except OSError as e:
            logger.warning(
                "Cannot reach agent at %s for forwarded channel: %s",
                self.socket_path,
                e,
            )
            channel.close()
            return

        logger.debug("Relaying forwarded agent channel to %s", self.socket_path)
        threading.Thread(
            target=self._relay,
            args=(sock, channel),
            name="agentssh-agent-relay",
            daemon=True,
        ).start()

    @staticmethod
    def _relay(sock: socket.socket, channel: paramiko.Channel) -> None:
        try:
            while True:
                r, _, _ = select.select([sock, channel], [], [])
                if sock in r:
                    data = sock.recv(RELAY_BUFSIZE)
                    if not data:
                        break
                    channel.sendall(data)
                if channel in r:
                    data = channel.recv(RELAY_BUFSIZE)
                    if not data:
                        break
                    sock.sendall(data)
        except (OSError, EOFError, paramiko.SSHException) as e:
            logger.debug("Agent relay stopped: %s", e)
        finally:
            channel.close()
            sock.close()


class ParamikoAgentBackend:
    """Agent collaborator for paramiko transports."""

    def connect(self, socket_path: str) -> ParamikoAgentConnection:
        return ParamikoAgentConnection(socket_path, open_unix_socket(socket_path))

    def forward_to_agent(self, transport: Transport, agent: AgentConnection) -> None:
        """Register an ``AgentForwarder`` on the transport.

        Raises:
            TypeError: If the transport is not a paramiko transport
            paramiko.SSHException: If the transport is no longer active
        """
        if not isinstance(transport, ParamikoTransport):
            raise TypeError(f"Expected ParamikoTransport, got {type(transport).__name__}")
        if not transport.is_active:
            raise paramiko.SSHException("Transport is no longer active")
        transport.agent_forwarder = AgentForwarder(agent.socket_path)

    def request_agent_forwarding(self, channel: Channel) -> None:
        if not isinstance(channel, ParamikoChannel):
            raise TypeError(f"Expected ParamikoChannel, got {type(channel).__name__}")
        channel.request_forward_agent()


class AgentHandle:
    """Owned connection to a local agent, as used by one session."""

    def __init__(self, backend: AgentBackend, connection: AgentConnection) -> None:
        self._backend = backend
        self._connection = connection
        self._forwarding = False
        self._closed = False

    @classmethod
    def open(cls, socket_path: str, backend: AgentBackend | None = None) -> "AgentHandle":
        """Open the agent socket.

        Args:
            socket_path: Path of the agent's unix socket
            backend: Agent collaborator (paramiko when omitted)

        Raises:
            ConnectError: If the socket cannot be reached
        """
        backend = backend if backend is not None else ParamikoAgentBackend()
        logger.info("Opening agent socket %s", socket_path)
        try:
            connection = backend.connect(socket_path)
        except Exception as e:
            raise ConnectError(socket_path, e) from e
        return cls(backend, connection)

    @property
    def socket_path(self) -> str:
        return self._connection.socket_path

    @property
    def forwarding_enabled(self) -> bool:
        return self._forwarding

    @property
    def closed(self) -> bool:
        return self._closed

    def signers(self) -> list[Any]:
        """Request the keys held by the agent.

        Raises:
            AgentError: If the agent fails or holds no keys
        """
        try:
            signers = list(self._connection.signers())
        except Exception as e:
            raise AgentError(f"Agent at {self.socket_path} failed to list keys: {e}") from e

        if not signers:
            raise AgentError(f"Agent at {self.socket_path} holds no keys")

        logger.debug("Agent at %s offered %d key(s)", self.socket_path, len(signers))
        return signers

    def enable_forwarding(self, transport: Transport) -> None:
        """Bind this agent to ``transport`` for forwarded agent channels.

        Raises:
            ForwardSetupError: If the backend cannot register forwarding
        """
        try:
            self._backend.forward_to_agent(transport, self._connection)
        except Exception as e:
            raise ForwardSetupError(f"Agent forwarding setup failed: {e}") from e
        self._forwarding = True
        logger.debug("Agent forwarding enabled via %s", self.socket_path)

    def request_forwarding(self, channel: Channel) -> None:
        """Ask the remote peer to forward agent traffic over ``channel``.

        No-op unless ``enable_forwarding`` succeeded earlier.

        Raises:
            ForwardRequestError: If the request fails
        """
        if not self._forwarding:
            return
        try:
            self._backend.request_agent_forwarding(channel)
        except Exception as e:
            raise ForwardRequestError(f"Agent forwarding request failed: {e}") from e

    def close(self) -> None:
        """Close the agent socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing agent socket %s", self.socket_path)
        self._connection.close()
