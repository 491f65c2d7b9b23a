"""Kickstart loading and ``#include:`` expansion.

Purpose
-------
Produce the full line sequence of a kickstart document with every
``#include:<ref>`` line replaced by the content of the referenced document.

Algorithm
---------
Expansion is a fixed point: the whole document is rescanned and every include
line substituted until a scan finds none. Each line carries the chain of
documents it was pulled in through, so an include of a document that is
already part of its own chain raises :class:`IncludeCycleError` instead of
looping forever. Including the same snippet twice in different places is
fine.

Contents
--------
* :func:`load_document` – read the main document and expand its includes.
* :func:`expand_includes` – expand includes in an already-loaded line list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Iterable, Sequence

from ..domain.errors import FetchError, IncludeCycleError, NotFound
from ..observability import log_debug, log_info, log_warning, make_event
from .context import RunContext, is_remote

INCLUDE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^#include:\s*(\S.*?)\s*$")


@dataclass(frozen=True, slots=True)
class _Line:
    text: str
    chain: tuple[str, ...]


def load_document(ref: str, context: RunContext) -> list[str]:
    """Return the lines of *ref* with all includes expanded.

    The first call fixes ``context.base``; relative includes anywhere in the
    tree resolve against it.

    Raises
    ------
    NotFound
        When the main document is a local path that does not exist.
    FetchError
        When a remote document (main or included) cannot be fetched or is empty.
    IncludeCycleError
        When a document includes itself, directly or transitively.
    """

    location = context.fix_base(ref)
    lines = [_Line(text, (location,)) for text in _read_main(location, context)]
    log_info("document_loaded", **make_event("loader", location, {"lines": len(lines)}))
    return [line.text for line in _expand(lines, context)]


def expand_includes(lines: Sequence[str], context: RunContext, *, origin: str = "<document>") -> list[str]:
    """Expand includes inside *lines*, which came from *origin*.

    Running it on its own output is a no-op: nothing is left to expand.
    """

    return [line.text for line in _expand([_Line(text, (origin,)) for text in lines], context)]


def _expand(lines: list[_Line], context: RunContext) -> list[_Line]:
    passes = 0
    while True:
        expanded, found = _expand_once(lines, context)
        if not found:
            break
        lines = expanded
        passes += 1
    if passes:
        log_debug("includes_expanded", **make_event("loader", None, {"passes": passes, "lines": len(lines)}))
    return lines


def _expand_once(lines: Iterable[_Line], context: RunContext) -> tuple[list[_Line], bool]:
    result: list[_Line] = []
    found = False
    for line in lines:
        match = INCLUDE_PATTERN.match(line.text)
        if match is None:
            result.append(line)
            continue
        found = True
        ref = match.group(1)
        location = context.locate(ref)
        if location is None:
            log_warning("include_missing", **make_event("loader", ref, {"from": line.chain[-1]}))
            continue
        if location in line.chain:
            chain = " -> ".join((*line.chain, location))
            raise IncludeCycleError(f"Include cycle detected: {chain}")
        chain = (*line.chain, location)
        result.extend(_Line(text, chain) for text in _read_include(location, context))
    return result, found


def _read_main(location: str, context: RunContext) -> list[str]:
    if is_remote(location):
        return _fetch_lines(location, context)
    path = Path(location)
    if not path.is_file():
        raise NotFound(f"Kickstart file not found: {location}")
    return path.read_text(encoding="utf-8").splitlines()


def _read_include(location: str, context: RunContext) -> list[str]:
    if is_remote(location):
        return _fetch_lines(location, context)
    return Path(location).read_text(encoding="utf-8").splitlines()


def _fetch_lines(url: str, context: RunContext) -> list[str]:
    body = context.fetcher.fetch(url)
    if not body.strip():
        raise FetchError(f"Empty document fetched from {url}")
    return body.splitlines()
