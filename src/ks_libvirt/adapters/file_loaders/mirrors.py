"""Mirror map file parser.

One mapping per line, ``<original-url><whitespace><replacement-url>``. Blank
lines and ``#`` comments are ignored; the replacement may contain
``$releasever``.
"""

from __future__ import annotations

from pathlib import Path

from ...domain.errors import InvalidFormat, NotFound
from ...observability import log_debug


class MirrorMapFileLoader:
    """Implements :class:`ks_libvirt.application.ports.MirrorMapLoader`."""

    def load(self, path: str) -> dict[str, str]:
        """Return the entries of the mirror map at *path*.

        Raises
        ------
        NotFound
            When *path* does not exist.
        InvalidFormat
            When a line does not hold exactly two fields.
        """

        file_path = Path(path).expanduser()
        if not file_path.is_file():
            raise NotFound(f"Mirror map not found: {path}")
        entries = parse_mirror_map(file_path.read_text(encoding="utf-8"), source=path)
        log_debug("mirror_map_read", stage="mirrors", ref=path, entries=len(entries))
        return entries


def parse_mirror_map(text: str, *, source: str = "<mirror map>") -> dict[str, str]:
    """Parse mirror map *text*; later duplicates override earlier ones.

    Examples
    --------
    >>> parse_mirror_map("# upstream  local\\nhttp://a/ http://b/\\n\\n")
    {'http://a/': 'http://b/'}
    """

    entries: dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) != 2:
            raise InvalidFormat(f"{source}:{number}: expected '<original> <replacement>', got {line!r}")
        entries[fields[0]] = fields[1]
    return entries
