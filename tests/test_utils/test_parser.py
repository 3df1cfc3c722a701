"""Tests for SSH connection string parsing."""

import pytest

from agentssh.errors import ParseError
from agentssh.models import ConnectionTarget
from agentssh.utils.parser import parse_addr, parse_addr_parts


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("deploy@example.com:2222", ("example.com", 2222, "deploy")),
        ("example.com:2222", ("example.com", 2222, "root")),
        ("deploy@example.com", ("example.com", 22, "deploy")),
        ("example.com", ("example.com", 22, "root")),
        ("10.0.0.5:65535", ("10.0.0.5", 65535, "root")),
    ],
)
def test_parse_valid_addresses(address: str, expected: tuple[str, int, str]) -> None:
    """Valid forms yield (host, port, user) with defaults filled in."""
    assert parse_addr_parts(address) == expected


def test_parse_root_with_port() -> None:
    """Explicit root user and port."""
    assert parse_addr_parts("root@example.com:2222") == ("example.com", 2222, "root")


def test_parse_host_only_uses_defaults() -> None:
    """Bare host defaults to root on port 22."""
    assert parse_addr_parts("example.com") == ("example.com", 22, "root")


def test_parse_returns_connection_target() -> None:
    """parse_addr returns an immutable ConnectionTarget."""
    target = parse_addr("deploy@example.com:2222")

    assert target == ConnectionTarget(host="example.com", port=2222, user="deploy")
    with pytest.raises(AttributeError):
        target.port = 22  # type: ignore[misc]


@pytest.mark.parametrize(
    "address",
    [
        "@host",
        "user@",
        "a@b@c",
        "host:",
        "host:abc",
        "host:1:2",
        "",
        ":22",
        "user@:22",
        "host:0",
        "host:70000",
        "bad host:22",
        "host: 22",
        "host:22 ",
        "host:2_2",
        "host:٢٢",
    ],
)
def test_parse_malformed_addresses(address: str) -> None:
    """Malformed addresses raise ParseError."""
    with pytest.raises(ParseError) as exc_info:
        parse_addr(address)

    assert exc_info.value.address == address


def test_non_integer_port_chains_value_error() -> None:
    """The int() failure is kept as the cause."""
    with pytest.raises(ParseError) as exc_info:
        parse_addr("host:abc")

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert "abc" in str(exc_info.value)


@pytest.mark.parametrize("address", ["host: 22", "host:2_2", "host:٢٢"])
def test_port_rejects_forms_int_would_accept(address: str) -> None:
    """Only plain ASCII digits are a port."""
    with pytest.raises(ParseError, match="invalid port") as exc_info:
        parse_addr_parts(address)

    assert isinstance(exc_info.value.__cause__, ValueError)


def test_parse_error_is_value_error() -> None:
    """ParseError can be caught as ValueError."""
    with pytest.raises(ValueError):
        parse_addr("a@b@c")
