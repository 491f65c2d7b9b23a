"""Directive extraction: strip ``#TAG:value`` lines into an override map."""

from __future__ import annotations

from typing import Iterable

from ..domain.directives import parse_directive
from ..observability import log_debug, make_event


def extract_directives(lines: Iterable[str]) -> tuple[list[str], dict[str, object]]:
    """Split *lines* into ordinary lines and the directive override map.

    Keys are the lower-cased tag names; the last directive for a tag wins and
    ``#NO<TAG>:`` stores ``0``. An unknown tag raises
    :class:`ks_libvirt.domain.errors.UnknownDirectiveError`.

    Examples
    --------
    >>> extract_directives(["#RAM:1024", "text", "#RAM:4096", "#NOUEFI:"])
    (['text'], {'ram': 4096, 'uefi': 0})
    """

    stripped: list[str] = []
    overrides: dict[str, object] = {}
    for line in lines:
        directive = parse_directive(line)
        if directive is None:
            stripped.append(line)
            continue
        overrides[directive.tag.key] = directive.value
    if overrides:
        log_debug("directives_extracted", **make_event("directives", None, {"keys": sorted(overrides)}))
    return stripped, overrides
