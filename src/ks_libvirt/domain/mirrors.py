"""Local mirror mapping table.

Purpose
-------
Redirect well-known upstream URLs (mirror lists, metalinks, repository base
URLs) to preferred local mirrors. Entries come from a plain text mirror map
file and may contain the ``$releasever`` placeholder so one entry covers every
release of a distribution.

Lookup
------
1. Exact string match.
2. Generalised match: the last run of digits in the URL is replaced by
   ``$releasever`` and looked up; a hit has its placeholder instantiated with
   the original digits and is cached under the exact URL.

An exact entry therefore always beats a generalised one for the same input.
"""

from __future__ import annotations

import re
from typing import Final, Mapping

VERSION_PLACEHOLDER: Final[str] = "$releasever"

_LAST_NUMBER: Final[re.Pattern[str]] = re.compile(r"(\d+)(?=\D*$)")


class MirrorMap:
    """Lookup table with version generalisation and a per-run result cache.

    Examples
    --------
    >>> table = MirrorMap({"https://mirrors.example/list?repo=fedora-$releasever": "http://local/fedora/$releasever/"})
    >>> table.lookup("https://mirrors.example/list?repo=fedora-39")
    'http://local/fedora/39/'
    >>> table.lookup("https://elsewhere.example/") is None
    True
    """

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries or {})
        self._cache: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.lookup(url) is not None

    def lookup(self, url: str) -> str | None:
        """Return the mapped replacement for *url* or ``None`` on a miss."""

        exact = self._entries.get(url)
        if exact is not None:
            return exact
        cached = self._cache.get(url)
        if cached is not None:
            return cached
        generalized = generalize_version(url)
        if generalized is None:
            return None
        pattern, version = generalized
        mapped = self._entries.get(pattern)
        if mapped is None:
            return None
        resolved = mapped.replace(VERSION_PLACEHOLDER, version)
        self._cache[url] = resolved
        return resolved


def generalize_version(url: str) -> tuple[str, str] | None:
    """Replace the last number in *url* with the version placeholder.

    Returns ``(pattern, version)`` or ``None`` when *url* holds no digits.

    Examples
    --------
    >>> generalize_version("https://mirrors.example/metalink?repo=fedora-39&arch=$basearch")
    ('https://mirrors.example/metalink?repo=fedora-$releasever&arch=$basearch', '39')
    >>> generalize_version("http://mirror.example/centos/") is None
    True
    """

    match = _LAST_NUMBER.search(url)
    if match is None:
        return None
    pattern = url[: match.start()] + VERSION_PLACEHOLDER + url[match.end() :]
    return pattern, match.group(1)
