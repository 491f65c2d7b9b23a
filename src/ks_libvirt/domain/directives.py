"""In-document directive grammar.

Kickstart templates may carry ``#TAG:value`` lines that override settings for
the VM they describe (``#RAM:4096``, ``#NOSSH:``). The tag set is closed:
:class:`Tag` enumerates it and :func:`parse_directive` refuses anything else.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Final

from .errors import UnknownDirectiveError

DIRECTIVE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^#([A-Z][A-Z0-9]*):(.*)$")
NEGATION_PREFIX: Final[str] = "NO"


class Tag(enum.Enum):
    """Directive tags; the value is the configuration key each one overrides."""

    CPU = "cpu"
    DISK = "disk"
    DISK2 = "disk2"
    ISO = "iso"
    OS = "os"
    RAM = "ram"
    SSH = "ssh"
    TPM = "tpm"
    UEFI = "uefi"

    @property
    def key(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Directive:
    """A parsed ``#TAG:value`` line."""

    tag: Tag
    value: object


def parse_directive(line: str) -> Directive | None:
    """Return the directive carried by *line*, ``None`` for ordinary lines.

    Raises
    ------
    UnknownDirectiveError
        When the line has directive syntax but the tag is not known, including
        ``NO`` prefixed to an unknown tag.

    Examples
    --------
    >>> parse_directive("#RAM:4096")
    Directive(tag=<Tag.RAM: 'ram'>, value=4096)
    >>> parse_directive("#NOSSH:")
    Directive(tag=<Tag.SSH: 'ssh'>, value=0)
    >>> parse_directive("network --bootproto=dhcp") is None
    True
    """

    match = DIRECTIVE_PATTERN.match(line.rstrip("\r\n"))
    if match is None:
        return None
    name, raw = match.group(1), match.group(2).strip()
    tag = _lookup(name)
    if tag is not None:
        return Directive(tag, coerce(raw))
    if name.startswith(NEGATION_PREFIX):
        negated = _lookup(name[len(NEGATION_PREFIX) :])
        if negated is not None:
            return Directive(negated, 0)
    raise UnknownDirectiveError(f"Unknown directive tag #{name} in line {line.strip()!r}")


def coerce(value: str) -> object:
    """Convert integer-looking directive values to ``int``.

    Examples
    --------
    >>> coerce("8"), coerce("-1"), coerce("fedora39"), coerce("")
    (8, -1, 'fedora39', '')
    """

    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    return value


def _lookup(name: str) -> Tag | None:
    try:
        return Tag[name]
    except KeyError:
        return None
