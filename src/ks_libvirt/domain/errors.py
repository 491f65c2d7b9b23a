"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by adapters, the application services and the
composition root. Every fatal condition of a kickstart run is a subclass of
:class:`KickstartError`, so the CLI (and library callers) can abort on a single
exception family before anything is handed to the installer.

Contents
--------
* :class:`KickstartError` – umbrella base class.
* :class:`InvalidFormat` – unparsable settings, mirror map or metalink input.
* :class:`NotFound` – missing resource; fatal for the main document, skipped
  for optional settings and mirror map files.
* :class:`FetchError` – a network fetch failed or returned an empty body.
* :class:`UnknownDirectiveError` – a ``#TAG:value`` line used an unknown tag.
* :class:`IncludeCycleError` – a document includes itself (directly or not).
* :class:`NetworkSpecError` – malformed or incomplete static network settings.
* :class:`InstallSourceError` – no usable installation source.
* :class:`FirmwareError` – UEFI / secure boot firmware files are missing.
"""

from __future__ import annotations


class KickstartError(Exception):
    """Base type for all exceptions emitted by ``ks_libvirt``."""


class InvalidFormat(KickstartError):
    """Raised when an input artifact cannot be parsed into structured data.

    Typical Sources
    ---------------
    Structured settings loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`), the
    mirror map parser and the metalink XML parser.
    """


class NotFound(KickstartError):
    """Represents a missing resource (file, directory, ...).

    Adapters raise it for optional inputs too; the composition root decides
    whether absence is fatal.
    """


class FetchError(KickstartError):
    """Raised when an HTTP(S) fetch fails or produces an empty body."""


class UnknownDirectiveError(KickstartError):
    """Raised for a directive line whose tag is not part of the closed tag set."""


class IncludeCycleError(KickstartError):
    """Raised when include expansion would revisit a document in its own chain."""


class NetworkSpecError(KickstartError):
    """Raised for malformed addresses, prefixes out of range, or ip/gw mismatch."""


class InstallSourceError(KickstartError):
    """Raised when no ISO, URL or usable CD-ROM source can be determined."""


class FirmwareError(KickstartError):
    """Raised when the requested UEFI firmware files are not available."""
