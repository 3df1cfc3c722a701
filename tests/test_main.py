"""Tests for the command-line entry point."""

import argparse
import logging
from unittest.mock import MagicMock, patch

import pytest

from agentssh.__main__ import EXIT_FAILURE, _parse_env, build_parser, main
from agentssh.errors import ConnectError, ExitStatusError


@pytest.fixture(autouse=True)
def restore_logger() -> None:
    """main() installs a handler on the package logger."""
    package_logger = logging.getLogger("agentssh")
    handlers = list(package_logger.handlers)
    level, propagate = package_logger.level, package_logger.propagate
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


@pytest.fixture
def mock_dial(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
    monkeypatch.delenv("AGENTSSH_AGENT_SOCKET", raising=False)
    with patch("agentssh.__main__.dial") as mock:
        yield mock


def _session(mock_dial: MagicMock) -> MagicMock:
    return mock_dial.return_value.__enter__.return_value


class TestParseEnv:
    def test_pairs(self) -> None:
        assert _parse_env(["A=1", "B=x=y", "C="]) == {"A": "1", "B": "x=y", "C": ""}

    @pytest.mark.parametrize("item", ["NOVALUE", "=1"])
    def test_malformed(self, item: str) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_env([item])


def test_build_parser() -> None:
    args = build_parser().parse_args(
        ["-A", "-e", "LANG=C", "--timeout", "5", "deploy@host", "uname -a"]
    )

    assert args.address == "deploy@host"
    assert args.command == "uname -a"
    assert args.forward_agent is True
    assert args.env == ["LANG=C"]
    assert args.timeout == 5.0


class TestMain:
    """Tests for main()."""

    def test_success(self, mock_dial: MagicMock) -> None:
        assert main(["-A", "-e", "LANG=C", "deploy@host:2222", "uptime"]) == 0

        args, kwargs = mock_dial.call_args
        assert args == ("deploy@host:2222", "/tmp/agent.sock", True)
        assert kwargs["timeout"] is None
        session = _session(mock_dial)
        session.set_envs.assert_called_once_with({"LANG": "C"})
        assert session.run.call_args.args == ("uptime",)

    def test_agent_socket_option(self, mock_dial: MagicMock) -> None:
        main(["--agent-socket", "/tmp/custom.sock", "host", "true"])
        assert mock_dial.call_args.args[1] == "/tmp/custom.sock"

    def test_remote_exit_status_returned(self, mock_dial: MagicMock) -> None:
        _session(mock_dial).run.side_effect = ExitStatusError("false", 7)
        assert main(["host", "false"]) == 7

    def test_library_error_reported(
        self, mock_dial: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        mock_dial.side_effect = ConnectError("/tmp/agent.sock", FileNotFoundError("missing"))

        assert main(["host", "true"]) == EXIT_FAILURE
        assert "agentssh:" in capsys.readouterr().err

    def test_missing_agent_socket(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)
        monkeypatch.delenv("AGENTSSH_AGENT_SOCKET", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            main(["host", "true"])
        assert exc_info.value.code == 2

    def test_bad_env_argument(self, mock_dial: MagicMock) -> None:
        with pytest.raises(SystemExit):
            main(["-e", "BROKEN", "host", "true"])
        mock_dial.assert_not_called()
