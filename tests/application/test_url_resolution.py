"""Install source URL discovery: $basearch, mirror lists, metalinks, mirror maps."""

from __future__ import annotations

from pathlib import Path

import pytest

from ks_libvirt.adapters.file_loaders.mirrors import MirrorMapFileLoader
from ks_libvirt.application.context import RunContext
from ks_libvirt.application.urls import UrlResolver, first_metalink_url, first_mirror
from ks_libvirt.domain.errors import FetchError, InvalidFormat
from tests.support import FEDORA_METALINK, RSYNC_ONLY_METALINK, FakeFetcher, write_file

MIRRORLIST = "https://mirrors.example/mirrorlist?repo=fedora-39&arch=$basearch"
METALINK = "https://mirrors.example/metalink?repo=fedora-39&arch=$basearch"


def _resolver(pages=None, *, arch=None, host_arch="x86_64", mirror_paths=()) -> tuple[UrlResolver, FakeFetcher]:
    fetcher = FakeFetcher(pages or {})
    context = RunContext(
        fetcher=fetcher,
        mirror_map_paths=mirror_paths,
        mirror_loader=MirrorMapFileLoader(),
        host_arch=host_arch,
    )
    return UrlResolver(context, arch=arch), fetcher


def test_basearch_uses_configured_arch() -> None:
    resolver, _ = _resolver(arch="aarch64")
    resolution = resolver.resolve("url", "http://dl.example/fedora/39/$basearch/os/")
    assert resolution.url == "http://dl.example/fedora/39/aarch64/os/"
    assert not resolution.fetched and not resolution.mapped
    assert resolution.secure is False


def test_basearch_defaults_to_host_arch() -> None:
    resolver, _ = _resolver(host_arch="ppc64le")
    assert resolver.arch == "ppc64le"
    assert resolver.resolve("url", "https://dl.example/$basearch/").url == "https://dl.example/ppc64le/"


def test_mirrorlist_takes_first_http_entry() -> None:
    target = MIRRORLIST.replace("$basearch", "x86_64")
    body = "# generated\nrsync://r.example/fedora/\nhttps://m1.example/fedora/39/x86_64/os/\nhttp://m2.example/\n"
    resolver, fetcher = _resolver({target: body})

    resolution = resolver.resolve("mirrorlist", MIRRORLIST)

    assert fetcher.calls == [target]
    assert resolution.url == "https://m1.example/fedora/39/x86_64/os/"
    assert resolution.fetched and resolution.secure


def test_metalink_takes_first_http_resource_without_repomd() -> None:
    target = METALINK.replace("$basearch", "x86_64")
    resolver, _ = _resolver({target: FEDORA_METALINK})

    resolution = resolver.resolve("metalink", METALINK)

    assert resolution.url == "https://mirror.two/fedora/39/Everything/x86_64/os/"
    assert resolution.kind == "metalink"


def test_metalink_without_http_resource_is_unresolved() -> None:
    target = METALINK.replace("$basearch", "x86_64")
    resolver, _ = _resolver({target: RSYNC_ONLY_METALINK})
    assert resolver.resolve("metalink", METALINK) is None


def test_mirror_map_hit_skips_network(tmp_path: Path) -> None:
    mirrors = write_file(
        tmp_path / "mirrors",
        "https://mirrors.example/metalink?repo=fedora-$releasever&arch=$basearch "
        "http://local.lan/fedora/$releasever/Everything/$basearch/os/\n",
    )
    resolver, fetcher = _resolver(mirror_paths=[str(mirrors)])

    resolution = resolver.resolve("metalink", METALINK)

    assert fetcher.calls == []
    assert resolution.mapped
    assert resolution.url == "http://local.lan/fedora/39/Everything/x86_64/os/"


def test_missing_mirror_map_is_skipped(tmp_path: Path) -> None:
    resolver, _ = _resolver(mirror_paths=[str(tmp_path / "absent")])
    assert resolver.mapped(METALINK) is None


def test_later_mirror_map_overrides_earlier(tmp_path: Path) -> None:
    system = write_file(tmp_path / "system", "http://up/ http://system/\n")
    user = write_file(tmp_path / "user", "http://up/ http://user/\n")
    resolver, _ = _resolver(mirror_paths=[str(system), str(user)])
    assert resolver.mapped("http://up/") == "http://user/"


def test_fetch_failure_propagates() -> None:
    resolver, _ = _resolver()
    with pytest.raises(FetchError):
        resolver.resolve("mirrorlist", MIRRORLIST)


def test_unknown_kind_is_rejected() -> None:
    resolver, _ = _resolver()
    with pytest.raises(ValueError):
        resolver.resolve("nfs", "nfs://server/path")


def test_first_mirror_none_without_http_entries() -> None:
    assert first_mirror("# only comments\nftp://x/\n") is None


def test_first_metalink_url_accepts_scheme_without_protocol_attribute() -> None:
    body = "<metalink><files><file><resources><url>http://m/os/repodata/repomd.xml</url></resources></file></files></metalink>"
    assert first_metalink_url(body) == "http://m/os/"


def test_malformed_metalink() -> None:
    with pytest.raises(InvalidFormat):
        first_metalink_url("<metalink><resources>")
