"""Shared fake collaborators for agentssh tests."""

from dataclasses import dataclass, field
from typing import IO, Any

import pytest

from agentssh.models import ConnectionTarget


@dataclass
class FakeChannel:
    """In-memory channel that replays scripted output."""

    stdout_chunks: list[bytes] = field(default_factory=list)
    stderr_chunks: list[bytes] = field(default_factory=list)
    exit_status: int = 0
    fail_setenv_key: str | None = None
    exec_error: Exception | None = None
    communicate_error: Exception | None = None
    close_error: Exception | None = None

    envs: dict[str, str] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)
    stdin_data: bytes | None = None
    close_calls: int = 0
    events: list[str] = field(default_factory=list)

    def setenv(self, key: str, value: str) -> None:
        self.events.append(f"setenv:{key}")
        if key == self.fail_setenv_key:
            raise RuntimeError(f"env {key} rejected")
        self.envs[key] = value

    def exec(self, command: str) -> None:
        self.events.append("exec")
        if self.exec_error is not None:
            raise self.exec_error
        self.executed.append(command)

    def communicate(self, stdin: IO[bytes] | None, stdout: Any, stderr: Any) -> int:
        self.stdin_data = stdin.read() if stdin is not None else None
        # Interleave stdout and stderr chunks as they "arrive"
        for i in range(max(len(self.stdout_chunks), len(self.stderr_chunks))):
            if i < len(self.stdout_chunks) and stdout is not None:
                stdout.write(self.stdout_chunks[i])
            if i < len(self.stderr_chunks) and stderr is not None:
                stderr.write(self.stderr_chunks[i])
        if self.communicate_error is not None:
            raise self.communicate_error
        return self.exit_status

    def close(self) -> None:
        self.close_calls += 1
        self.events.append("close")
        if self.close_error is not None:
            raise self.close_error

    @property
    def closed(self) -> bool:
        return self.close_calls > 0


class FakeTransport:
    """Transport handing out pre-built channels."""

    def __init__(self, channels: list[FakeChannel] | None = None) -> None:
        self.channels = list(channels or [])
        self.opened: list[FakeChannel] = []
        self.channel_error: Exception | None = None
        self.close_error: Exception | None = None
        self.close_calls = 0

    def new_channel(self) -> FakeChannel:
        if self.channel_error is not None:
            raise self.channel_error
        channel = self.channels.pop(0) if self.channels else FakeChannel()
        self.opened.append(channel)
        return channel

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeTransportBackend:
    """Transport collaborator recording dial attempts."""

    def __init__(self, transport: FakeTransport | None = None) -> None:
        self.transport = transport or FakeTransport()
        self.dial_error: Exception | None = None
        self.calls: list[tuple[ConnectionTarget, list[Any], float]] = []

    def dial(self, target: ConnectionTarget, signers: list[Any], timeout: float) -> FakeTransport:
        self.calls.append((target, signers, timeout))
        if self.dial_error is not None:
            raise self.dial_error
        return self.transport


class FakeAgentConnection:
    """Agent connection with a fixed key list."""

    def __init__(self, socket_path: str, keys: list[Any] | None = None) -> None:
        self.socket_path = socket_path
        self.keys = ["key-1", "key-2"] if keys is None else keys
        self.signers_error: Exception | None = None
        self.close_error: Exception | None = None
        self.close_calls = 0

    def signers(self) -> list[Any]:
        if self.signers_error is not None:
            raise self.signers_error
        return list(self.keys)

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeAgentBackend:
    """Agent collaborator recording every call."""

    def __init__(self) -> None:
        self.connection = FakeAgentConnection("")
        self.connect_calls: list[str] = []
        self.connect_error: Exception | None = None
        self.forward_error: Exception | None = None
        self.request_error: Exception | None = None
        self.forwarded_transports: list[Any] = []
        self.forward_requests: list[Any] = []

    def connect(self, socket_path: str) -> FakeAgentConnection:
        self.connect_calls.append(socket_path)
        if self.connect_error is not None:
            raise self.connect_error
        self.connection.socket_path = socket_path
        return self.connection

    def forward_to_agent(self, transport: Any, agent: Any) -> None:
        if self.forward_error is not None:
            raise self.forward_error
        self.forwarded_transports.append(transport)

    def request_agent_forwarding(self, channel: Any) -> None:
        self.forward_requests.append(channel)
        if self.request_error is not None:
            raise self.request_error


@pytest.fixture
def target() -> ConnectionTarget:
    return ConnectionTarget(host="build01.example.com", port=2222, user="deploy")


@pytest.fixture
def agent_backend() -> FakeAgentBackend:
    return FakeAgentBackend()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transport_backend(transport: FakeTransport) -> FakeTransportBackend:
    return FakeTransportBackend(transport)


@pytest.fixture
def make_channel() -> Any:
    """Factory for scripted channels."""
    return FakeChannel
