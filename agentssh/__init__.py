"""Run remote commands over SSH with keys from a local ssh-agent.

Example:
    from agentssh import dial

    with dial("deploy@build01:2222", "/run/user/1000/ssh-agent.sock",
              forward_agent=True) as session:
        session.set_envs({"GIT_SSH_COMMAND": "ssh -o BatchMode=yes"})
        print(session.output("git ls-remote git@github.com:org/repo.git"))
"""

from agentssh.config import Settings
from agentssh.errors import (
    AgentError,
    AgentSSHError,
    ChannelError,
    ConnectError,
    DialError,
    EnvSetError,
    ExecChannelError,
    ExecError,
    ExecStartError,
    ExitStatusError,
    ForwardRequestError,
    ForwardSetupError,
    ParseError,
    SessionClosedError,
)
from agentssh.models import ConnectionTarget
from agentssh.services import Session, dial, dial_target
from agentssh.utils import parse_addr, parse_addr_parts

__all__ = [
    "AgentError",
    "AgentSSHError",
    "ChannelError",
    "ConnectError",
    "ConnectionTarget",
    "DialError",
    "EnvSetError",
    "ExecChannelError",
    "ExecError",
    "ExecStartError",
    "ExitStatusError",
    "ForwardRequestError",
    "ForwardSetupError",
    "ParseError",
    "Session",
    "SessionClosedError",
    "Settings",
    "dial",
    "dial_target",
    "parse_addr",
    "parse_addr_parts",
]
