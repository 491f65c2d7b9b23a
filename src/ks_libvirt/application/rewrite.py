"""Rule-based kickstart line rewriting.

Purpose
-------
Apply the content rules to the stripped kickstart lines in a single pass and
determine the installation source.

Rules
-----
The rule set is data: :data:`RULES` is an ordered tuple of :class:`Rule`
entries, each a compiled line pattern plus a transform returning the lines that
replace the trigger line. The first matching rule wins; injected lines follow
their trigger line directly. Only the hostname blocks are placed elsewhere
(prepended to the document).

==============  =========================================================
``url``         resolve mirror lists / metalinks, record the install URL
``repo``        mirror map redirect of ``--baseurl``/``--mirrorlist``/``--metalink``
``cdrom``       record a CD-ROM source
``%packages``   add ``qemu-guest-agent`` when ``qga`` is enabled
``rootpw``      add ``sshkey`` lines when ``ssh`` is enabled
``bootloader``  add serial and graphical console arguments when ``console`` is enabled
``network``     DHCP to static conversion when an address is configured
==============  =========================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Final, Sequence

from ..domain.config import EffectiveConfig
from ..domain.errors import InstallSourceError
from ..domain.network import NetworkSpec
from ..domain.sources import CdromSource, InstallSource, IsoSource, UrlSource
from ..observability import log_debug, log_warning, make_event
from .urls import UrlResolver

GUEST_AGENT_PACKAGE: Final[str] = "qemu-guest-agent"
SERIAL_CONSOLE: Final[str] = "console=ttyS0,115200n8"
GRAPHICAL_CONSOLE: Final[str] = "console=tty0"

_SOURCE_OPTION: Final[re.Pattern[str]] = re.compile(
    r"--(?P<option>url|mirrorlist|metalink)(?:=|\s+)(?P<quote>[\"']?)(?P<value>[^\s\"']+)(?P=quote)"
)
_REPO_OPTION: Final[re.Pattern[str]] = re.compile(
    r"--(?P<option>baseurl|mirrorlist|metalink)(?:=|\s+)(?P<quote>[\"']?)(?P<value>[^\s\"']+)(?P=quote)"
)
_APPEND_OPTION: Final[re.Pattern[str]] = re.compile(r"--append(?:=|\s+)(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<bare>\S+))")
_DHCP_BOOTPROTO: Final[re.Pattern[str]] = re.compile(r"--bootproto(?:=|\s+)dhcp\b")


@dataclass
class RewriteState:
    """Facts gathered while walking the document."""

    install_url: str | None = None
    secure: bool = False
    last_source: str | None = None

    def record_url(self, url: str, secure: bool) -> None:
        self.install_url = url
        self.secure = secure
        self.last_source = "url"

    def record_cdrom(self) -> None:
        self.last_source = "cdrom"


@dataclass(frozen=True, slots=True)
class RewriteResult:
    """Final document lines and the chosen installation source."""

    lines: list[str]
    source: InstallSource
    state: RewriteState


Transform = Callable[[str, "LineRewriter"], list[str]]


@dataclass(frozen=True, slots=True)
class Rule:
    """A line pattern and the transform applied to matching lines."""

    name: str
    pattern: re.Pattern[str]
    transform: Transform

    def matches(self, line: str) -> bool:
        return self.pattern.match(line) is not None


def rewrite_url(line: str, rewriter: LineRewriter) -> list[str]:
    """Resolve the install source declared on a ``url`` line."""

    match = _SOURCE_OPTION.search(line)
    if match is None:
        log_warning("url_without_source", **make_event("rewrite", None, {"line": line}))
        return [line]
    resolution = rewriter.urls.resolve(match.group("option"), match.group("value"))
    if resolution is None:
        return [line]
    rewriter.state.record_url(resolution.url, resolution.secure)
    if not resolution.fetched:
        return [line]
    return [line[: match.start()] + f"--url={resolution.url}" + line[match.end() :]]


def rewrite_repo(line: str, rewriter: LineRewriter) -> list[str]:
    """Redirect a repository to its mapped local mirror, if any."""

    match = _REPO_OPTION.search(line)
    if match is None:
        return [line]
    mapped = rewriter.urls.mapped(match.group("value"))
    if mapped is None:
        return [line]
    log_debug("repo_mapped", **make_event("rewrite", match.group("value"), {"mapped": mapped}))
    return [line[: match.start()] + f"--baseurl={mapped}" + line[match.end() :]]


def record_cdrom(line: str, rewriter: LineRewriter) -> list[str]:
    rewriter.state.record_cdrom()
    return [line]


def add_guest_agent(line: str, rewriter: LineRewriter) -> list[str]:
    if rewriter.config.flag("qga"):
        return [line, GUEST_AGENT_PACKAGE]
    return [line]


def add_ssh_keys(line: str, rewriter: LineRewriter) -> list[str]:
    if not rewriter.config.flag("ssh") or not rewriter.ssh_keys:
        return [line]
    return [line, *(f'sshkey --username=root "{key}"' for key in sorted(rewriter.ssh_keys))]


def add_consoles(line: str, rewriter: LineRewriter) -> list[str]:
    """Add serial and graphical consoles to the installed system's kernel arguments.

    The graphical console is listed last so it stays the primary console once
    the system is installed.
    """

    if not rewriter.config.flag("console"):
        return [line]
    consoles = f"{SERIAL_CONSOLE} {GRAPHICAL_CONSOLE}"
    match = _APPEND_OPTION.search(line)
    if match is None:
        return [f'{line.rstrip()} --append="{consoles}"']
    existing = next(value for value in match.group("dq", "sq", "bare") if value is not None)
    merged = f"{existing} {consoles}".strip()
    return [line[: match.start()] + f'--append="{merged}"' + line[match.end() :]]


def static_network(line: str, rewriter: LineRewriter) -> list[str]:
    """Turn a DHCP ``network`` line into a static one when an address is configured."""

    network = rewriter.network
    if not network.is_static:
        return [line]
    replacement = (
        f"--noipv6 --bootproto=static --ip={network.ip} --netmask={network.netmask} --gateway={network.gateway}"
    )
    if network.dns:
        replacement += f" --nameserver={','.join(network.dns)}"
    return [_DHCP_BOOTPROTO.sub(lambda _match: replacement, line, count=1)]


RULES: Final[tuple[Rule, ...]] = (
    Rule("url", re.compile(r"^url\s"), rewrite_url),
    Rule("repo", re.compile(r"^repo\s.*--(?:baseurl|mirrorlist|metalink)(?:=|\s)"), rewrite_repo),
    Rule("cdrom", re.compile(r"^cdrom(?:\s|$)"), record_cdrom),
    Rule("packages", re.compile(r"^%packages(?:\s|$)"), add_guest_agent),
    Rule("rootpw", re.compile(r"^rootpw(?:\s|$)"), add_ssh_keys),
    Rule("bootloader", re.compile(r"^bootloader(?:\s|$)"), add_consoles),
    Rule("network", re.compile(r"^network\s.*--bootproto(?:=|\s+)dhcp\b"), static_network),
)


def hostname_prelude(hostname: str) -> list[str]:
    """Lines prepended when a hostname is configured.

    The ``%pre`` script sets the live hostname right away, which DHCP installs
    would otherwise only pick up late.

    Examples
    --------
    >>> hostname_prelude("vm1.example.org")
    ['%pre', 'hostname vm1.example.org', '%end', 'network --hostname=vm1.example.org']
    """

    return ["%pre", f"hostname {hostname}", "%end", f"network --hostname={hostname}"]


def iso_path(value: object) -> str | None:
    """Return the ISO path held by an ``iso`` value, ``None`` when it names none.

    ``#NOISO:`` stores ``0``; ``0``, ``"0"``, ``False`` and ``""`` all switch the
    ISO off so a lower tier cannot leak through as a bogus path.

    Examples
    --------
    >>> iso_path(0), iso_path(""), iso_path(None), iso_path("/iso/f39.iso")
    (None, None, None, '/iso/f39.iso')
    """

    if value is None or value is False or value == 0:
        return None
    text = str(value).strip()
    if text in ("", "0"):
        return None
    return text


def select_install_source(iso: object, state: RewriteState) -> InstallSource:
    """Pick the installation source: ISO first, then the last url/cdrom line.

    *iso* is the resolved ``iso`` value; see :func:`iso_path`.

    Returns :class:`CdromSource` when a CD-ROM was declared but no ISO given;
    the caller turns that into a fatal error.

    Raises
    ------
    InstallSourceError
        When neither an ISO, a URL nor a CD-ROM was found.
    """

    path = iso_path(iso)
    if path is not None:
        return IsoSource(path)
    if state.last_source == "url" and state.install_url is not None:
        return UrlSource(state.install_url, state.secure)
    if state.last_source == "cdrom":
        return CdromSource()
    raise InstallSourceError("no installation source found")


@dataclass
class LineRewriter:
    """Apply :data:`RULES` to a kickstart document.

    Parameters
    ----------
    config:
        Effective configuration; consulted lazily per rule.
    urls:
        Resolver used by the ``url`` and ``repo`` rules.
    network:
        Static network settings (or an unset spec for DHCP).
    ssh_keys:
        Public keys to inject after ``rootpw``.
    rules:
        Rule table; defaults to :data:`RULES`.
    """

    config: EffectiveConfig
    urls: UrlResolver
    network: NetworkSpec = field(default_factory=NetworkSpec)
    ssh_keys: Sequence[str] = ()
    rules: Sequence[Rule] = RULES
    state: RewriteState = field(default_factory=RewriteState, init=False)

    def rewrite(self, lines: Sequence[str]) -> RewriteResult:
        """Rewrite *lines* and select the installation source."""

        self.state = RewriteState()
        output: list[str] = []
        for line in lines:
            output.extend(self.apply(line))
        hostname = self.config.text("hostname")
        if hostname:
            output[:0] = hostname_prelude(hostname)
        source = select_install_source(self.config.resolve("iso", None), self.state)
        return RewriteResult(output, source, self.state)

    def apply(self, line: str) -> list[str]:
        """Return the lines replacing *line* under the first matching rule."""

        for rule in self.rules:
            if rule.matches(line):
                return rule.transform(line, self)
        return [line]
