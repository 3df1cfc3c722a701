"""Run one command on a remote host: ``python -m agentssh ADDRESS COMMAND``."""

import argparse
import logging
import sys

from agentssh.config import Settings
from agentssh.errors import AgentSSHError, ExitStatusError
from agentssh.services import dial
from agentssh.utils.console import ColorfulFormatter

logger = logging.getLogger(__name__)

# Exit status for local and connection failures, as ssh(1) uses
EXIT_FAILURE = 255


def configure_logging(settings: Settings) -> None:
    """Install the console formatter on the agentssh logger."""
    use_colors = settings.log_colors and sys.stderr.isatty()

    package_logger = logging.getLogger("agentssh")
    package_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Only add handler if not already configured
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    logging.getLogger("paramiko").setLevel(logging.WARNING)


def _parse_env(values: list[str]) -> dict[str, str]:
    envs: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {item!r}")
        envs[key] = value
    return envs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentssh",
        description="Run a command over SSH using keys from a local ssh-agent.",
    )
    parser.add_argument("address", help="[user@]host[:port]")
    parser.add_argument("command", help="command string, passed to the remote shell verbatim")
    parser.add_argument(
        "-A",
        "--forward-agent",
        action="store_true",
        help="forward the agent to the remote command",
    )
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="set a remote environment variable (repeatable)",
    )
    parser.add_argument(
        "--agent-socket",
        help="agent socket path (default: $AGENTSSH_AGENT_SOCKET or $SSH_AUTH_SOCK)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="connect timeout in seconds (default: $AGENTSSH_CONNECT_TIMEOUT or 60)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point.

    Returns:
        Remote exit status, or 255 if the command could not be run
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings)

    try:
        envs = _parse_env(args.env)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    socket_path = args.agent_socket or settings.agent_socket
    if not socket_path:
        parser.error("no agent socket: pass --agent-socket or set SSH_AUTH_SOCK")

    try:
        with dial(
            args.address,
            socket_path,
            args.forward_agent,
            timeout=args.timeout,
            settings=settings,
        ) as session:
            session.set_envs(envs)
            session.run(
                args.command,
                stdin=sys.stdin.buffer,
                stdout=sys.stdout.buffer,
                stderr=sys.stderr.buffer,
            )
    except ExitStatusError as e:
        return e.exit_status
    except AgentSSHError as e:
        print(f"agentssh: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        sys.stdout.flush()

    return 0


if __name__ == "__main__":
    sys.exit(main())
