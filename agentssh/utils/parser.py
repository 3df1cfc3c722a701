"""SSH connection string parsing."""

import re

from agentssh.errors import ParseError
from agentssh.models import DEFAULT_PORT, DEFAULT_USER, ConnectionTarget
from agentssh.utils.validation import validate_host, validate_port, validate_user

# ASCII digits with an optional sign; int() alone accepts more
PORT_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_addr(address: str) -> ConnectionTarget:
    """Parse an SSH connection string.

    Formats:
        - "host" -> root@host:22
        - "host:port" -> root@host:port
        - "user@host" -> user@host:22
        - "user@host:port"

    Returns:
        ConnectionTarget with parsed components.

    Raises:
        ParseError: If the address is malformed. For a non-integer port the
            underlying ValueError is chained as ``__cause__``.
    """
    user = DEFAULT_USER
    port = DEFAULT_PORT
    remainder = address

    fields = address.split("@")
    if len(fields) == 2:
        if not fields[1]:
            raise ParseError(address)
        user, remainder = fields
    elif len(fields) > 2:
        raise ParseError(address)

    fields = remainder.split(":")
    if len(fields) == 1:
        host = fields[0]
    elif len(fields) == 2:
        host, port_str = fields
        if not port_str:
            raise ParseError(address)
        try:
            if not PORT_PATTERN.fullmatch(port_str):
                raise ValueError(f"not a decimal integer: {port_str!r}")
            port = int(port_str)
        except ValueError as e:
            raise ParseError(address, f"invalid port {port_str!r}") from e
    else:
        raise ParseError(address)

    try:
        validate_user(user)
        validate_host(host)
        validate_port(port)
    except ValueError as e:
        raise ParseError(address, str(e)) from e

    return ConnectionTarget(host=host, port=port, user=user)


def parse_addr_parts(address: str) -> tuple[str, int, str]:
    """Parse an SSH connection string into a ``(host, port, user)`` tuple.

    Raises:
        ParseError: If the address is malformed.
    """
    target = parse_addr(address)
    return target.host, target.port, target.user
