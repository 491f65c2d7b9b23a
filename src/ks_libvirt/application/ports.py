"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the pipeline can
be orchestrated without depending on concrete implementations (``httpx``,
the filesystem, ``ssh-add``).

Contents
--------
* :class:`DocumentFetcher` – fetches remote documents (kickstarts, mirror
  lists, metalinks).
* :class:`FileLoader` – parses a structured settings file.
* :class:`MirrorMapLoader` – parses a mirror map file.
* :class:`PathResolver` – yields candidate settings and mirror map paths.
* :class:`KeySource` – discovers SSH public keys for injection.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class DocumentFetcher(Protocol):
    """Fetch the body of an HTTP(S) resource.

    Implementations raise :class:`ks_libvirt.domain.errors.FetchError` when the
    resource is unreachable or the body is empty.
    """

    def fetch(self, url: str) -> str:
        """Return the decoded body of *url*."""


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``InvalidFormat``/``NotFound``."""


@runtime_checkable
class MirrorMapLoader(Protocol):
    """Parse a mirror map file into ``original -> replacement`` entries."""

    def load(self, path: str) -> Mapping[str, str]:
        """Read *path* or raise ``NotFound`` when it does not exist."""


@runtime_checkable
class PathResolver(Protocol):
    """Discover settings and mirror map files.

    Methods
    -------
    :meth:`system`
        System-wide settings (``/etc/ks-libvirt/config.toml`` and ``config.d``).
    :meth:`user`
        Per-user settings under ``$XDG_CONFIG_HOME/ks-libvirt``.
    :meth:`mirror_maps`
        Mirror map candidates, lowest precedence first.
    """

    def system(self) -> Iterable[str]:
        """Yield candidate system-wide settings paths."""

    def user(self) -> Iterable[str]:
        """Yield user-level settings paths."""

    def mirror_maps(self) -> Iterable[str]:
        """Yield mirror map file candidates."""


@runtime_checkable
class KeySource(Protocol):
    """Discover SSH public keys to inject into the guest's root account."""

    def keys(self) -> Sequence[str]:
        """Return public key lines (``ssh-ed25519 AAAA... comment``)."""
