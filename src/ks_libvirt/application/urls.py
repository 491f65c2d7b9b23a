"""Install source URL discovery.

Purpose
-------
Turn the value of a kickstart ``url`` option into one concrete base URL the
installer can boot from.

Behaviour
---------
* ``--url``: used as given, after ``$basearch`` substitution.
* ``--mirrorlist``: a mirror map hit is used directly; otherwise the list is
  fetched and its first ``http``/``https`` entry is taken.
* ``--metalink``: a mirror map hit is used directly; otherwise the metalink
  XML is fetched and the first ``http``/``https`` resource URL is taken, minus
  its trailing ``repodata/repomd.xml``. A metalink without such an entry
  leaves the source unresolved.

``$basearch`` becomes the configured architecture, or the host's
``platform.machine()`` when none is configured.

Contents
--------
* :class:`Resolution` – resolved URL plus how it was obtained.
* :class:`UrlResolver` – the resolver itself.
* :func:`first_mirror` / :func:`first_metalink_url` – response parsers.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Final
from urllib.parse import urlsplit

from ..domain.errors import FetchError, InvalidFormat
from ..observability import log_debug, log_info, log_warning, make_event
from .context import RunContext

BASEARCH: Final[str] = "$basearch"
SOURCE_KINDS: Final[tuple[str, ...]] = ("url", "mirrorlist", "metalink")
HTTP_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})

_REPOMD_SUFFIX: Final[re.Pattern[str]] = re.compile(r"repodata/repomd\.xml$")


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of resolving an install source declaration.

    ``mapped`` is set for mirror map hits, ``fetched`` when a mirror list or
    metalink had to be downloaded to find the URL.
    """

    url: str
    kind: str
    mapped: bool = False
    fetched: bool = False

    @property
    def secure(self) -> bool:
        return urlsplit(self.url).scheme.lower() == "https"


class UrlResolver:
    """Resolve ``url``/``mirrorlist``/``metalink`` declarations.

    Parameters
    ----------
    context:
        Run context providing the fetcher, the mirror map and the host
        architecture.
    arch:
        Explicit architecture override; ``None`` uses ``context.host_arch``.
    """

    def __init__(self, context: RunContext, *, arch: str | None = None) -> None:
        self._context = context
        self._arch = arch or context.host_arch

    @property
    def arch(self) -> str:
        return self._arch

    def substitute_arch(self, url: str) -> str:
        """Replace ``$basearch`` in *url* with the effective architecture."""

        return url.replace(BASEARCH, self._arch)

    def mapped(self, url: str) -> str | None:
        """Return the mirror map replacement for *url* (no network access)."""

        return self._context.mirror_map().lookup(url)

    def resolve(self, kind: str, url: str) -> Resolution | None:
        """Resolve *url* declared as *kind*; ``None`` when no URL can be found.

        Raises
        ------
        FetchError
            When a mirror list or metalink fetch fails or returns nothing.
        InvalidFormat
            When a fetched metalink is not well-formed XML.
        """

        if kind not in SOURCE_KINDS:
            raise ValueError(f"Unknown install source kind {kind!r}")
        if kind == "url":
            return Resolution(self.substitute_arch(url), kind)

        mapped = self.mapped(url)
        if mapped is not None:
            log_info("source_mapped", **make_event("urls", url, {"kind": kind, "mapped": mapped}))
            return Resolution(self.substitute_arch(mapped), kind, mapped=True)

        target = self.substitute_arch(url)
        body = self._context.fetcher.fetch(target)
        if not body.strip():
            raise FetchError(f"Empty {kind} fetched from {target}")
        found = first_mirror(body) if kind == "mirrorlist" else first_metalink_url(body)
        if found is None:
            log_warning("source_unresolved", **make_event("urls", target, {"kind": kind}))
            return None
        resolved = self.substitute_arch(found)
        log_info("source_resolved", **make_event("urls", target, {"kind": kind, "resolved": resolved}))
        return Resolution(resolved, kind, fetched=True)


def first_mirror(body: str) -> str | None:
    """Return the first ``http``/``https`` entry of a mirror list.

    Examples
    --------
    >>> first_mirror("# comment\\nrsync://a/\\nhttps://b.example/os/\\nhttp://c/")
    'https://b.example/os/'
    """

    for raw in body.splitlines():
        entry = raw.strip()
        if not entry or entry.startswith("#"):
            continue
        if urlsplit(entry).scheme.lower() in HTTP_SCHEMES:
            return entry
    return None


def first_metalink_url(body: str) -> str | None:
    """Return the base directory of the first ``http``/``https`` metalink resource.

    Raises
    ------
    InvalidFormat
        When *body* is not well-formed XML.
    """

    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise InvalidFormat(f"Invalid metalink document: {exc}") from exc
    for resources in root.iter():
        if _local_name(resources.tag) != "resources":
            continue
        for element in resources:
            if _local_name(element.tag) != "url" or not element.text:
                continue
            location = element.text.strip()
            protocol = (element.get("protocol") or urlsplit(location).scheme).lower()
            if protocol in HTTP_SCHEMES:
                log_debug("metalink_resource", **make_event("urls", location, {"protocol": protocol}))
                return _REPOMD_SUFFIX.sub("", location)
    return None


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]
