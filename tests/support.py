"""Shared fixtures for the kickstart test-suite.

``KickstartSandbox`` lays out the ``/etc`` and XDG settings roots under a
temporary directory so every test drives :class:`DefaultPathResolver` against
known paths. ``FakeFetcher`` and ``mock_client`` stand in for the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

import httpx

from ks_libvirt.adapters.path_resolvers.default import DefaultPathResolver
from ks_libvirt.domain.errors import FetchError

FEDORA_METALINK = """<?xml version="1.0" encoding="utf-8"?>
<metalink version="3.0" xmlns="http://www.metalinker.org/">
 <files>
  <file name="repomd.xml">
   <resources maxconnections="1">
    <url protocol="rsync" type="rsync">rsync://mirror.one/fedora/39/Everything/x86_64/os/repodata/repomd.xml</url>
    <url protocol="https" type="https">https://mirror.two/fedora/39/Everything/x86_64/os/repodata/repomd.xml</url>
    <url protocol="http" type="http">http://mirror.three/fedora/39/Everything/x86_64/os/repodata/repomd.xml</url>
   </resources>
  </file>
 </files>
</metalink>
"""

RSYNC_ONLY_METALINK = """<?xml version="1.0" encoding="utf-8"?>
<metalink version="3.0" xmlns="http://www.metalinker.org/">
 <files>
  <file name="repomd.xml">
   <resources>
    <url protocol="rsync">rsync://mirror.one/fedora/39/Everything/x86_64/os/repodata/repomd.xml</url>
   </resources>
  </file>
 </files>
</metalink>
"""


@dataclass
class FakeFetcher:
    """In-memory :class:`DocumentFetcher` recording every requested URL."""

    pages: Mapping[str, str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.pages:
            raise FetchError(f"Failed to fetch {url}: 404")
        body = self.pages[url]
        if not body.strip():
            raise FetchError(f"Empty response from {url}")
        return body


@dataclass
class StaticKeys:
    """:class:`KeySource` returning a fixed key list."""

    values: Sequence[str] = ()
    calls: int = 0

    def keys(self) -> Sequence[str]:
        self.calls += 1
        return list(self.values)


def mock_client(pages: Mapping[str, tuple[int, str]]) -> httpx.Client:
    """Return an ``httpx.Client`` answering from *pages* (``url -> (status, body)``)."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = pages.get(str(request.url), (404, "not found"))
        return httpx.Response(status, text=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


@dataclass(frozen=True)
class KickstartSandbox:
    """Temporary settings roots plus a work directory for kickstart files."""

    root: Path
    etc_root: Path
    xdg_root: Path
    work: Path

    @property
    def env(self) -> dict[str, str]:
        return {"KS_LIBVIRT_ETC": str(self.etc_root), "XDG_CONFIG_HOME": str(self.xdg_root)}

    @property
    def system_dir(self) -> Path:
        return self.etc_root / "ks-libvirt"

    @property
    def user_dir(self) -> Path:
        return self.xdg_root / "ks-libvirt"

    def apply_env(self, monkeypatch) -> None:
        """Point the default resolver (used by the CLI) at the sandbox roots."""

        for key, value in self.env.items():
            monkeypatch.setenv(key, value)

    def resolver(self) -> DefaultPathResolver:
        return DefaultPathResolver(env=self.env, home=self.root / "home")

    def write(self, layer: str, relative: str, content: str) -> Path:
        """Write *content* below the ``system``, ``user`` or ``work`` directory."""

        base = {"system": self.system_dir, "user": self.user_dir, "work": self.work}[layer]
        return write_file(base / relative, content)

    def kickstart(self, name: str, *lines: str) -> Path:
        return self.write("work", name, "\n".join(lines) + "\n")


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def create_sandbox(tmp_path: Path) -> KickstartSandbox:
    """Create an empty sandbox below *tmp_path*."""

    sandbox = KickstartSandbox(
        root=tmp_path,
        etc_root=tmp_path / "etc",
        xdg_root=tmp_path / "xdg",
        work=tmp_path / "work",
    )
    sandbox.work.mkdir(parents=True, exist_ok=True)
    return sandbox
