"""Connection target data model."""

from dataclasses import dataclass

DEFAULT_PORT = 22
DEFAULT_USER = "root"


@dataclass(frozen=True)
class ConnectionTarget:
    """Parsed SSH connection target."""

    host: str
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must be a non-empty string")
        if not self.user:
            raise ValueError("user must be a non-empty string")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")

    @property
    def address(self) -> str:
        """Render as ``user@host:port``."""
        return f"{self.user}@{self.host}:{self.port}"

    @property
    def known_hosts_name(self) -> str:
        """Host name as it appears in a known_hosts file.

        Returns:
            ``host`` on the default port, ``[host]:port`` otherwise
        """
        if self.port == DEFAULT_PORT:
            return self.host
        return f"[{self.host}]:{self.port}"
