"""Paramiko-backed SSH transport.

Implements the ``TransportBackend``/``Transport``/``Channel`` protocols on
top of ``paramiko.Transport``. Authentication uses only agent-held keys.
"""

import logging
import select
import socket
import threading
import time
from collections.abc import Callable
from typing import IO, Any

import paramiko

from agentssh.config import HostKeyVerifier, Settings
from agentssh.models import ConnectionTarget
from agentssh.protocols import OutputSink

logger = logging.getLogger(__name__)

BUFSIZE = 32768

# Seconds to wait on the channel status event between output polls
POLL_INTERVAL = 0.1

# Seconds close() waits for the stdin feeder to exit
FEEDER_JOIN_TIMEOUT = 1.0


def _write(sink: OutputSink, data: bytes) -> None:
    if sink is not None:
        sink.write(data)


class ParamikoChannel:
    """Session channel wrapper.

    Does NOT own the transport.
    """

    def __init__(self, channel: paramiko.Channel, transport: "ParamikoTransport"):
        self._channel = channel
        self._transport = transport
        self._feeder: threading.Thread | None = None
        self._stop_feeding = threading.Event()

    def setenv(self, key: str, value: str) -> None:
        self._channel.set_environment_variable(key, value)

    def request_forward_agent(self) -> None:
        """Send ``auth-agent-req@openssh.com`` on this channel.

        Raises:
            paramiko.SSHException: If forwarding was never set up on the transport
        """
        handler = self._transport.agent_forwarder
        if handler is None:
            raise paramiko.SSHException("agent forwarding is not set up on this transport")
        self._channel.request_forward_agent(handler)

    def exec(self, command: str) -> None:
        self._channel.exec_command(command)

    def communicate(
        self,
        stdin: IO[bytes] | None,
        stdout: OutputSink,
        stderr: OutputSink,
    ) -> int:
        """Feed stdin and copy output to the sinks until the command exits.

        Stdin is fed from a daemon thread so a remote command that never
        reads it cannot stall output collection. The thread is stopped by
        ``close``.

        Returns:
            Remote exit status. paramiko reports -1 when the channel closed
            without an ``exit-status`` message, which includes commands
            killed by a signal.
        """
        chan = self._channel

        if stdin is None:
            chan.shutdown_write()
        else:
            self._feeder = threading.Thread(
                target=self._feed_stdin,
                args=(stdin,),
                name="agentssh-stdin",
                daemon=True,
            )
            self._feeder.start()

        while True:
            got_data = False
            if chan.recv_ready():
                data = chan.recv(BUFSIZE)
                if data:
                    _write(stdout, data)
                    got_data = True
            if chan.recv_stderr_ready():
                data = chan.recv_stderr(BUFSIZE)
                if data:
                    _write(stderr, data)
                    got_data = True

            if got_data:
                continue

            # Remote closed or transport died with nothing left to read
            finished = chan.exit_status_ready() and (chan.eof_received or chan.closed)
            if finished and not chan.recv_ready() and not chan.recv_stderr_ready():
                break

            if not chan.get_transport().is_active() and not chan.recv_ready():
                raise paramiko.SSHException("Transport closed during command execution")

            chan.status_event.wait(POLL_INTERVAL)

        return chan.recv_exit_status()

    def _feed_stdin(self, stdin: IO[bytes]) -> None:
        fd = _fileno(stdin)
        read = getattr(stdin, "read1", stdin.read)
        try:
            while not self._stop_feeding.is_set():
                # Wait on the descriptor so close() can stop us between chunks
                if fd is not None:
                    ready, _, _ = select.select([fd], [], [], POLL_INTERVAL)
                    if not ready:
                        continue
                chunk = read(BUFSIZE)
                if not chunk:
                    self._channel.shutdown_write()
                    break
                if self._stop_feeding.is_set():
                    break
                self._channel.sendall(chunk)
        except (OSError, EOFError, ValueError, paramiko.SSHException) as e:
            logger.debug("Stopped feeding stdin: %s", e)

    def close(self) -> None:
        """Close the channel and stop the stdin feeder."""
        self._stop_feeding.set()
        self._channel.close()
        if self._feeder is not None:
            self._feeder.join(FEEDER_JOIN_TIMEOUT)
            if self._feeder.is_alive():
                logger.warning("stdin feeder still blocked in read after channel close")


def _fileno(stream: IO[bytes]) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


class ParamikoTransport:
    """Authenticated paramiko transport to one host."""

    def __init__(self, transport: paramiko.Transport, target: ConnectionTarget):
        self._transport = transport
        self.target = target
        # Set by the agent backend when forwarding is enabled
        self.agent_forwarder: Callable[[paramiko.Channel], None] | None = None

    @property
    def is_active(self) -> bool:
        return self._transport.is_active()

    def new_channel(self) -> ParamikoChannel:
        """Open a new session channel.

        Raises:
            paramiko.SSHException: If the transport is closed or the server refuses
        """
        if not self._transport.is_active():
            raise paramiko.SSHException("Transport is no longer active")
        return ParamikoChannel(self._transport.open_session(), self)

    def close(self) -> None:
        self._transport.close()


class ParamikoTransportBackend:
    """Dials authenticated paramiko transports using agent-held keys."""

    def __init__(
        self,
        host_keys: HostKeyVerifier | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize backend.

        Args:
            host_keys: Host key verifier; built from settings on first dial if omitted
            settings: Settings used to build the verifier
        """
        self._host_keys = host_keys
        self._settings = settings

    @property
    def host_keys(self) -> HostKeyVerifier:
        """Host key verifier, created on first use.

        Raises:
            FileNotFoundError: If strict checking is on and known_hosts is missing
        """
        if self._host_keys is None:
            settings = self._settings or Settings.from_env()
            self._host_keys = HostKeyVerifier(
                known_hosts_path=settings.known_hosts,
                strict_checking=settings.strict_host_key_checking,
            )
        return self._host_keys

    def dial(
        self,
        target: ConnectionTarget,
        signers: list[Any],
        timeout: float,
    ) -> ParamikoTransport:
        """Connect, verify the host key and authenticate.

        Every phase shares one deadline of ``timeout`` seconds.

        Raises:
            OSError: If the TCP connection fails or times out
            paramiko.SSHException: On handshake, host key or auth failure
        """
        deadline = time.monotonic() + timeout
        host_keys = self.host_keys

        logger.info("Opening SSH connection to %s", target.address)
        sock = socket.create_connection((target.host, target.port), timeout=timeout)
        try:
            transport = paramiko.Transport(sock)
        except BaseException:
            sock.close()
            raise

        try:
            remaining = _remaining(deadline)
            transport.banner_timeout = remaining
            transport.handshake_timeout = remaining
            transport.start_client(timeout=remaining)

            host_keys.verify(target, transport.get_remote_server_key())

            transport.auth_timeout = _remaining(deadline)
            self._authenticate(transport, target, signers)
        except BaseException:
            transport.close()
            raise

        logger.info("SSH connection established to %s", target.address)
        return ParamikoTransport(transport, target)

    @staticmethod
    def _authenticate(
        transport: paramiko.Transport,
        target: ConnectionTarget,
        signers: list[Any],
    ) -> None:
        """Offer each agent key in turn until the server accepts one."""
        last_error: paramiko.AuthenticationException | None = None
        for signer in signers:
            try:
                transport.auth_publickey(target.user, signer)
            except paramiko.AuthenticationException as e:
                logger.debug(
                    "Key %s rejected for %s: %s",
                    signer.get_name(),
                    target.address,
                    e,
                )
                last_error = e
                continue
            if transport.is_authenticated():
                return

        if last_error is not None:
            raise last_error
        raise paramiko.AuthenticationException(
            f"No agent key accepted for {target.address}"
        )


def _remaining(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise socket.timeout("connect timeout exceeded")
    return remaining
