"""Input validation utilities."""

from typing import Final

# Characters that can never appear in a host name or login name
FORBIDDEN_CHARS: Final[list[str]] = [" ", "\t", "\n", "\r", "\x00", "/", "\\"]


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    for char in FORBIDDEN_CHARS:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host


def validate_user(user: str) -> str:
    """Validate a login name.

    Raises:
        ValueError: If user name is empty or contains whitespace/control characters
    """
    if not user:
        raise ValueError("User cannot be empty")

    for char in FORBIDDEN_CHARS:
        if char in user:
            raise ValueError(f"User contains invalid characters: {user!r}")

    return user


def validate_port(port: int) -> int:
    """Validate a TCP port number."""
    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return port
