"""SSH public key discovery.

Keys come from the running SSH agent (``ssh-add -L``) and from
``~/.ssh/*.pub``. Duplicates are dropped; the rewriter sorts them.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Final, Sequence

from ...observability import log_debug

KEY_PREFIXES: Final[tuple[str, ...]] = ("ssh-", "ecdsa-", "sk-")


class SshKeyDiscovery:
    """Implements :class:`ks_libvirt.application.ports.KeySource`.

    Parameters
    ----------
    ssh_dir:
        Directory scanned for ``*.pub`` files; defaults to ``~/.ssh``.
    use_agent:
        Ask the SSH agent for its identities as well.
    """

    def __init__(self, *, ssh_dir: Path | None = None, use_agent: bool = True) -> None:
        self.ssh_dir = ssh_dir or Path.home() / ".ssh"
        self.use_agent = use_agent

    def keys(self) -> Sequence[str]:
        found: dict[str, None] = {}
        if self.use_agent:
            found.update(dict.fromkeys(self._agent_keys()))
        found.update(dict.fromkeys(self._file_keys()))
        log_debug("ssh_keys_discovered", stage="ssh", ref=str(self.ssh_dir), count=len(found))
        return list(found)

    def _agent_keys(self) -> list[str]:
        executable = shutil.which("ssh-add")
        if executable is None:
            return []
        try:
            completed = subprocess.run([executable, "-L"], capture_output=True, text=True, check=False, timeout=10)
        except (OSError, subprocess.TimeoutExpired) as exc:
            log_debug("ssh_agent_unavailable", stage="ssh", ref=None, error=str(exc))
            return []
        # non-zero means no agent or no identities
        if completed.returncode != 0:
            return []
        return _key_lines(completed.stdout)

    def _file_keys(self) -> list[str]:
        if not self.ssh_dir.is_dir():
            return []
        keys: list[str] = []
        for path in sorted(self.ssh_dir.glob("*.pub")):
            keys.extend(_key_lines(path.read_text(encoding="utf-8")))
        return keys


def _key_lines(text: str) -> list[str]:
    """Return the public key lines of *text*.

    Examples
    --------
    >>> _key_lines("ssh-ed25519 AAAA me@host\\n\\nThe agent has no identities.")
    ['ssh-ed25519 AAAA me@host']
    """

    return [line.strip() for line in text.splitlines() if line.strip().startswith(KEY_PREFIXES)]
