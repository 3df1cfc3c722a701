"""Services for agentssh."""

from agentssh.services.agent import (
    AgentForwarder,
    AgentHandle,
    ParamikoAgentBackend,
    ParamikoAgentConnection,
)
from agentssh.services.command import RemoteCommand, as_stdin_stream
from agentssh.services.session import Session, dial, dial_target
from agentssh.services.transport import (
    ParamikoChannel,
    ParamikoTransport,
    ParamikoTransportBackend,
)

__all__ = [
    "AgentForwarder",
    "AgentHandle",
    "ParamikoAgentBackend",
    "ParamikoAgentConnection",
    "ParamikoChannel",
    "ParamikoTransport",
    "ParamikoTransportBackend",
    "RemoteCommand",
    "Session",
    "as_stdin_stream",
    "dial",
    "dial_target",
]
