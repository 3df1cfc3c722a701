"""SSH host key verification.

Manages known_hosts file for MITM prevention.
"""

import logging
import os
from pathlib import Path

import paramiko

from agentssh.models import ConnectionTarget

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification manager.

    Handles known_hosts configuration and checks server keys against it.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Reject unknown host keys

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)
        self._host_keys: paramiko.HostKeys | None = None

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path with security defaults.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        # Explicit disable
        if value and value.lower() == "none":
            logger.critical(
                "SSH host key verification DISABLED (AGENTSSH_KNOWN_HOSTS=none). "
                "Connections are vulnerable to man-in-the-middle attacks."
            )
            return None

        path = Path(os.path.expanduser(value)) if value else Path.home() / ".ssh" / "known_hosts"
        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification required but "
                    f"known_hosts file not found: {path}\n\n"
                    f"To fix this:\n"
                    f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                    f"2. Or connect once: ssh <hostname> "
                    f"(answer 'yes' to add key)\n"
                    f"3. Or disable verification (NOT RECOMMENDED): "
                    f"export AGENTSSH_KNOWN_HOSTS=none"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. "
                "This is insecure!",
                path,
            )
            return None

        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None

    def _load(self) -> paramiko.HostKeys:
        if self._host_keys is None:
            self._host_keys = paramiko.HostKeys()
            if self._known_hosts is not None:
                self._host_keys.load(self._known_hosts)
                logger.debug(
                    "Loaded %d known host(s) from %s",
                    len(self._host_keys),
                    self._known_hosts,
                )
        return self._host_keys

    def verify(self, target: ConnectionTarget, key: paramiko.PKey) -> None:
        """Check a server key against known_hosts.

        A key that differs from the recorded one is always rejected. A host
        with no recorded key of this type is rejected in strict mode and
        accepted with a warning otherwise.

        Args:
            target: Connection target the key was presented for
            key: Server host key

        Raises:
            paramiko.BadHostKeyException: If the recorded key differs
            paramiko.SSHException: If the host is unknown in strict mode
        """
        if not self.is_enabled():
            return

        name = target.known_hosts_name
        entry = self._load().lookup(name)
        known = entry.get(key.get_name()) if entry is not None else None

        if known is None:
            if self.strict_checking:
                raise paramiko.SSHException(
                    f"Host key for {name} ({key.get_name()}) not found in "
                    f"{self._known_hosts}"
                )
            logger.warning(
                "Host key not verified for %s (strict mode disabled)",
                name,
            )
            return

        if known != key:
            raise paramiko.BadHostKeyException(name, key, known)

        logger.debug("Host key verified for %s", name)
