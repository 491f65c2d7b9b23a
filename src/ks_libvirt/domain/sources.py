"""Installation source descriptors handed to the installer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class IsoSource:
    """Install from a local ISO image."""

    path: str

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "iso", "path": self.path}


@dataclass(frozen=True, slots=True)
class UrlSource:
    """Install from a network tree; ``secure`` is ``True`` for ``https``."""

    url: str
    secure: bool

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "url", "url": self.url, "secure": self.secure}


@dataclass(frozen=True, slots=True)
class CdromSource:
    """A ``cdrom`` line was the source but no ISO path was supplied."""

    error: str = "no path"

    def as_dict(self) -> dict[str, Any]:
        return {"kind": "cdrom", "error": self.error}


InstallSource = Union[IsoSource, UrlSource, CdromSource]
