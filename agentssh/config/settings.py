"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 60.0


@dataclass
class Settings:
    """Settings from environment.

    Handles parsing, validation, and defaults for all AGENTSSH_* env vars.
    """

    # Dial
    connect_timeout: float = field(default=DEFAULT_CONNECT_TIMEOUT)
    agent_socket: str | None = field(default=None)

    # Host key verification
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=True)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        ``AGENTSSH_AGENT_SOCKET`` takes precedence over ``SSH_AUTH_SOCK``.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            connect_timeout=cls._get_float(
                "AGENTSSH_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT
            ),
            agent_socket=os.getenv("AGENTSSH_AGENT_SOCKET") or os.getenv("SSH_AUTH_SOCK"),
            known_hosts=os.getenv("AGENTSSH_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool(
                "AGENTSSH_STRICT_HOST_KEY_CHECKING", True
            ),
            log_level=os.getenv("AGENTSSH_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("AGENTSSH_LOG_COLORS", True),
        )

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get a positive number from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Float value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("%s must be > 0, got %s. Using default: %s", key, value, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
