"""Configuration module for agentssh.

Provides focused classes for different configuration concerns:
- Settings: Environment variable configuration
- HostKeyVerifier: Manages SSH host key verification
"""

from agentssh.config.host_keys import HostKeyVerifier
from agentssh.config.settings import DEFAULT_CONNECT_TIMEOUT, Settings

__all__ = ["DEFAULT_CONNECT_TIMEOUT", "HostKeyVerifier", "Settings"]
