"""SSH session lifecycle.

``dial`` performs a multi-step setup (agent socket, agent keys, transport,
optional forwarding). Each step that allocates a resource releases it again
if a later step fails, so a caller either receives a ``Session`` owning
everything or an exception with nothing left open. The ``Session`` object
is constructed only after every fallible step has succeeded.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from agentssh.config import Settings
from agentssh.errors import AgentSSHError, DialError, SessionClosedError
from agentssh.models import ConnectionTarget
from agentssh.protocols import AgentBackend, OutputSink, Transport, TransportBackend
from agentssh.services.agent import AgentHandle
from agentssh.services.command import RemoteCommand, StdinSource
from agentssh.services.transport import ParamikoTransportBackend
from agentssh.utils.parser import parse_addr

logger = logging.getLogger(__name__)


class Session:
    """Authenticated SSH connection for running remote commands.

    Owns the transport and the agent socket. Several threads may run
    commands concurrently; each command gets its own channel. Do not call
    ``set_envs`` while commands are in flight.
    """

    def __init__(
        self,
        target: ConnectionTarget,
        transport: Transport,
        agent: AgentHandle,
        forward_agent: bool,
    ) -> None:
        self._target = target
        self._transport = transport
        self._agent = agent
        self._forward_agent = forward_agent
        self._envs: dict[str, str] = {}
        self._closed = False
        self._lock = threading.Lock()

    @property
    def target(self) -> ConnectionTarget:
        return self._target

    @property
    def forward_agent(self) -> bool:
        return self._forward_agent

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def environment(self) -> dict[str, str]:
        """Copy of the environment applied to each command."""
        return dict(self._envs)

    def set_envs(self, envs: Mapping[str, str] | None) -> None:
        """Replace the environment applied to subsequent commands.

        Commands already running keep the environment they started with.
        """
        self._envs = dict(envs or {})

    def close(self) -> None:
        """Close the agent socket and the transport.

        Both are attempted even if the first release fails. Closing a
        transport aborts every in-flight command on it. Repeated calls are
        no-ops.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        logger.info("Closing SSH session to %s", self._target.address)
        _release(self._agent.close, "agent socket", self._target)
        _release(self._transport.close, "transport", self._target)

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Session({self._target.address}, {state})"

    def _command(self, cmd: str) -> RemoteCommand:
        with self._lock:
            if self._closed:
                raise SessionClosedError()
            return RemoteCommand(self._transport, self._agent, self._envs, cmd)

    def output(self, cmd: str, stdin: StdinSource = None) -> bytes:
        """Run ``cmd`` and return its standard output.

        Raises:
            SessionClosedError: If the session was closed
            ExecError: If the command fails to start, exits non-zero or the
                channel fails mid-run
        """
        return self._command(cmd).output(stdin)

    def combined_output(self, cmd: str, stdin: StdinSource = None) -> bytes:
        """Run ``cmd`` and return stdout and stderr interleaved."""
        return self._command(cmd).combined_output(stdin)

    def run(
        self,
        cmd: str,
        stdin: StdinSource = None,
        stdout: OutputSink = None,
        stderr: OutputSink = None,
    ) -> None:
        """Run ``cmd``, streaming output to the given sinks.

        Sinks need a ``write(bytes)`` method; None discards that stream.
        """
        self._command(cmd).run(stdin, stdout, stderr)


def dial(
    address: str,
    agent_socket_path: str,
    forward_agent: bool = False,
    *,
    timeout: float | None = None,
    settings: Settings | None = None,
    transport_backend: TransportBackend | None = None,
    agent_backend: AgentBackend | None = None,
) -> Session:
    """Connect to ``[user@]host[:port]`` using keys from a local agent.

    Args:
        address: Connection string, user defaults to root and port to 22
        agent_socket_path: Path of the ssh-agent unix socket
        forward_agent: Forward the agent to commands run on the remote host
        timeout: Dial timeout in seconds (settings.connect_timeout if None)
        settings: Configuration (read from the environment if None)
        transport_backend: Transport collaborator (paramiko if None)
        agent_backend: Agent collaborator (paramiko if None)

    Returns:
        Session owning the transport and the agent socket

    Raises:
        ParseError: If the address is malformed
        ConnectError: If the agent socket cannot be reached
        AgentError: If the agent cannot supply keys
        DialError: If connecting or authenticating fails
        ForwardSetupError: If agent forwarding cannot be set up
    """
    return dial_target(
        parse_addr(address),
        agent_socket_path,
        forward_agent,
        timeout=timeout,
        settings=settings,
        transport_backend=transport_backend,
        agent_backend=agent_backend,
    )


def dial_target(
    target: ConnectionTarget,
    agent_socket_path: str,
    forward_agent: bool = False,
    *,
    timeout: float | None = None,
    settings: Settings | None = None,
    transport_backend: TransportBackend | None = None,
    agent_backend: AgentBackend | None = None,
) -> Session:
    """Connect to an already-parsed target. See ``dial``."""
    if timeout is None or transport_backend is None:
        settings = settings or Settings.from_env()
    if timeout is None:
        timeout = settings.connect_timeout
    if transport_backend is None:
        transport_backend = ParamikoTransportBackend(settings=settings)

    agent = AgentHandle.open(agent_socket_path, agent_backend)
    try:
        signers = agent.signers()
        transport = _dial_transport(transport_backend, target, signers, timeout)
        try:
            if forward_agent:
                agent.enable_forwarding(transport)
        except BaseException:
            _release(transport.close, "transport", target)
            raise
    except BaseException:
        _release(agent.close, "agent socket", target)
        raise

    logger.info(
        "SSH session ready for %s (forward_agent=%s)",
        target.address,
        forward_agent,
    )
    return Session(target, transport, agent, forward_agent)


def _dial_transport(
    backend: TransportBackend,
    target: ConnectionTarget,
    signers: list[Any],
    timeout: float,
) -> Transport:
    try:
        return backend.dial(target, signers, timeout)
    except AgentSSHError:
        raise
    except Exception as e:
        logger.error("Connection to %s failed: %s", target.address, e)
        raise DialError(target, e) from e


def _release(close: Callable[[], None], what: str, target: ConnectionTarget) -> None:
    try:
        close()
    except Exception as e:
        logger.warning("Failed to close %s for %s: %s", what, target.address, e)
