"""Data models for agentssh."""

from agentssh.models.target import DEFAULT_PORT, DEFAULT_USER, ConnectionTarget

__all__ = [
    "ConnectionTarget",
    "DEFAULT_PORT",
    "DEFAULT_USER",
]
