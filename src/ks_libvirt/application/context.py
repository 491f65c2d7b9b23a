"""Per-run context threaded through the loader and the URL resolver.

The context owns the state a run accumulates: the base location that relative
includes are resolved against (fixed by the first document loaded) and the
mirror map, which is read lazily on first lookup and then reused.
"""

from __future__ import annotations

import platform
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Sequence
from urllib.parse import urljoin

from ..domain.errors import NotFound
from ..domain.mirrors import MirrorMap
from ..observability import log_debug, log_info, make_event
from .ports import DocumentFetcher, MirrorMapLoader

REMOTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^https?://", re.IGNORECASE)


def is_remote(ref: str) -> bool:
    """Return ``True`` for ``http://`` and ``https://`` references.

    Examples
    --------
    >>> is_remote("https://example.org/ks.cfg"), is_remote("/srv/ks.cfg")
    (True, False)
    """

    return REMOTE_PATTERN.match(ref) is not None


@dataclass
class RunContext:
    """State shared by the stages of one kickstart run.

    Parameters
    ----------
    fetcher:
        Adapter used for every network fetch of the run.
    mirror_map_paths:
        Mirror map files, later files overriding earlier entries. Missing
        files are skipped.
    mirror_loader:
        Parser for mirror map files; ``None`` disables mirror mapping.
    host_arch:
        Native machine architecture used for ``$basearch`` when no ``arch``
        is configured.
    """

    fetcher: DocumentFetcher
    mirror_map_paths: Sequence[str] = ()
    mirror_loader: MirrorMapLoader | None = None
    host_arch: str = field(default_factory=platform.machine)
    base: str | None = None
    _mirror_map: MirrorMap | None = field(default=None, init=False, repr=False)

    def fix_base(self, ref: str) -> str:
        """Return the canonical location of *ref*, fixing the base on first use."""

        location = ref if is_remote(ref) else str(Path(ref).expanduser().absolute())
        if self.base is None:
            if is_remote(location):
                self.base = location.rsplit("/", 1)[0] + "/"
            else:
                self.base = str(Path(location).parent)
            log_debug("base_fixed", **make_event("loader", ref, {"base": self.base}))
        return location

    def locate(self, ref: str) -> str | None:
        """Resolve an include reference against the fixed base.

        Remote references (or any reference below a remote base) become URLs.
        Local references are tried below the base directory first and then as
        given; ``None`` means neither exists.
        """

        if is_remote(ref):
            return ref
        base = self.base
        if base is not None and is_remote(base):
            return urljoin(base, ref)
        path = Path(ref).expanduser()
        if not path.is_absolute() and base is not None:
            candidate = Path(base) / path
            if candidate.is_file():
                return str(candidate.absolute())
        if path.is_file():
            return str(path.absolute())
        return None

    def mirror_map(self) -> MirrorMap:
        """Return the mirror map, loading the configured files on first call."""

        if self._mirror_map is None:
            self._mirror_map = self._load_mirror_map()
        return self._mirror_map

    def _load_mirror_map(self) -> MirrorMap:
        entries: dict[str, str] = {}
        if self.mirror_loader is None:
            return MirrorMap(entries)
        for path in self.mirror_map_paths:
            try:
                loaded = self.mirror_loader.load(path)
            except NotFound:
                log_debug("mirror_map_missing", **make_event("mirrors", path))
                continue
            entries.update(loaded)
        log_info("mirror_map_loaded", **make_event("mirrors", None, {"entries": len(entries)}))
        return MirrorMap(entries)
