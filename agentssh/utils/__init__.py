"""Utilities for agentssh."""

from agentssh.utils.console import ColorfulFormatter
from agentssh.utils.parser import parse_addr, parse_addr_parts
from agentssh.utils.validation import validate_host, validate_port, validate_user

__all__ = [
    "ColorfulFormatter",
    "parse_addr",
    "parse_addr_parts",
    "validate_host",
    "validate_port",
    "validate_user",
]
