"""Rule-based rewriting of kickstart lines and install source selection."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from ks_libvirt.adapters.file_loaders.mirrors import MirrorMapFileLoader
from ks_libvirt.application.context import RunContext
from ks_libvirt.application.rewrite import (
    GUEST_AGENT_PACKAGE,
    RULES,
    LineRewriter,
    RewriteState,
    hostname_prelude,
    iso_path,
    select_install_source,
)
from ks_libvirt.application.urls import UrlResolver
from ks_libvirt.domain.config import EffectiveConfig
from ks_libvirt.domain.errors import InstallSourceError
from ks_libvirt.domain.network import NetworkSpec, network_spec_from_config
from ks_libvirt.domain.sources import CdromSource, IsoSource, UrlSource
from tests.support import FEDORA_METALINK, RSYNC_ONLY_METALINK, FakeFetcher, write_file

METALINK = "https://mirrors.example/metalink?repo=fedora-39&arch=$basearch"
METALINK_X86 = METALINK.replace("$basearch", "x86_64")


def _rewriter(
    cli: dict[str, Any] | None = None,
    *,
    pages: dict[str, str] | None = None,
    keys: tuple[str, ...] = (),
    mirror_paths: tuple[str, ...] = (),
    defaults: dict[str, Any] | None = None,
) -> LineRewriter:
    config = EffectiveConfig.from_layers(cli=cli or {}, defaults=defaults or {})
    context = RunContext(
        fetcher=FakeFetcher(pages or {}),
        mirror_map_paths=mirror_paths,
        mirror_loader=MirrorMapFileLoader(),
        host_arch="x86_64",
    )
    return LineRewriter(
        config=config,
        urls=UrlResolver(context, arch=config.text("arch")),
        network=network_spec_from_config(config),
        ssh_keys=keys,
    )


def test_rule_table_order() -> None:
    assert [rule.name for rule in RULES] == ["url", "repo", "cdrom", "packages", "rootpw", "bootloader", "network"]


def test_metalink_url_line_is_rewritten_to_resolved_url() -> None:
    rewriter = _rewriter(pages={METALINK_X86: FEDORA_METALINK})
    result = rewriter.rewrite([f"url --metalink={METALINK} --noverifyssl"])
    assert result.lines == ["url --url=https://mirror.two/fedora/39/Everything/x86_64/os/ --noverifyssl"]
    assert result.source == UrlSource("https://mirror.two/fedora/39/Everything/x86_64/os/", True)


def test_metalink_without_http_leaves_no_source() -> None:
    rewriter = _rewriter(pages={METALINK_X86: RSYNC_ONLY_METALINK})
    with pytest.raises(InstallSourceError, match="no installation source found"):
        rewriter.rewrite([f"url --metalink={METALINK}"])


def test_direct_url_line_is_kept(tmp_path: Path) -> None:
    rewriter = _rewriter()
    result = rewriter.rewrite(["url --url=http://dl.example/$basearch/os/"])
    assert result.lines == ["url --url=http://dl.example/$basearch/os/"]
    assert result.source == UrlSource("http://dl.example/x86_64/os/", False)


def test_mirror_mapped_url_line_is_kept(tmp_path: Path) -> None:
    mirrors = write_file(
        tmp_path / "mirrors",
        "https://mirrors.example/metalink?repo=fedora-$releasever&arch=$basearch http://lan/f/$releasever/$basearch/\n",
    )
    rewriter = _rewriter(mirror_paths=(str(mirrors),))
    line = f"url --metalink={METALINK}"
    result = rewriter.rewrite([line])
    assert result.lines == [line]
    assert result.source == UrlSource("http://lan/f/39/x86_64/", False)


def test_repo_with_mirror_map_hit_becomes_baseurl(tmp_path: Path) -> None:
    mirrors = write_file(tmp_path / "mirrors", "https://up.example/updates-39 http://lan/updates/39/\n")
    rewriter = _rewriter({"iso": "/iso/f39.iso"}, mirror_paths=(str(mirrors),))
    result = rewriter.rewrite(["repo --name=updates --mirrorlist=https://up.example/updates-39 --install"])
    assert result.lines == ["repo --name=updates --baseurl=http://lan/updates/39/ --install"]


def test_repo_without_hit_is_untouched() -> None:
    rewriter = _rewriter({"iso": "/iso/f39.iso"})
    line = "repo --name=extra --baseurl=http://extra.example/"
    assert rewriter.rewrite([line]).lines == [line]


def test_guest_agent_follows_packages_header() -> None:
    rewriter = _rewriter({"qga": True, "iso": "/iso/x.iso"})
    assert rewriter.rewrite(["%packages", "@core", "%end"]).lines == ["%packages", GUEST_AGENT_PACKAGE, "@core", "%end"]


def test_guest_agent_disabled_by_falsy_value() -> None:
    rewriter = _rewriter({"qga": 0, "iso": "/iso/x.iso"}, defaults={"qga": True})
    assert rewriter.rewrite(["%packages --ignoremissing"]).lines == ["%packages --ignoremissing"]


def test_sshkeys_are_sorted_after_rootpw() -> None:
    keys = ("ssh-rsa CCC c@h", "ssh-ed25519 AAA a@h", "ecdsa-sha2-nistp256 BBB b@h")
    rewriter = _rewriter({"ssh": True, "iso": "/iso/x.iso"}, keys=keys)
    assert rewriter.rewrite(["rootpw --lock"]).lines == [
        "rootpw --lock",
        'sshkey --username=root "ecdsa-sha2-nistp256 BBB b@h"',
        'sshkey --username=root "ssh-ed25519 AAA a@h"',
        'sshkey --username=root "ssh-rsa CCC c@h"',
    ]


def test_no_sshkeys_when_disabled() -> None:
    rewriter = _rewriter({"ssh": False, "iso": "/iso/x.iso"}, keys=("ssh-ed25519 AAA a@h",))
    assert rewriter.rewrite(["rootpw --lock"]).lines == ["rootpw --lock"]


def test_console_arguments_added_to_bootloader() -> None:
    rewriter = _rewriter({"console": True, "iso": "/iso/x.iso"})
    assert rewriter.rewrite(["bootloader --timeout=1"]).lines == [
        'bootloader --timeout=1 --append="console=ttyS0,115200n8 console=tty0"'
    ]


def test_console_arguments_merge_into_existing_append() -> None:
    rewriter = _rewriter({"console": True, "iso": "/iso/x.iso"})
    assert rewriter.rewrite(['bootloader --append="quiet rhgb" --timeout=1']).lines == [
        'bootloader --append="quiet rhgb console=ttyS0,115200n8 console=tty0" --timeout=1'
    ]


def test_dhcp_network_becomes_static() -> None:
    rewriter = _rewriter(
        {"ip": "192.168.122.50/24", "gw": "192.168.122.1", "dns": ["192.168.122.1"], "iso": "/iso/x.iso"}
    )
    result = rewriter.rewrite(["network --bootproto=dhcp --device=link --activate"])
    assert result.lines == [
        "network --noipv6 --bootproto=static --ip=192.168.122.50 --netmask=255.255.255.0 "
        "--gateway=192.168.122.1 --nameserver=192.168.122.1 --device=link --activate"
    ]


def test_dhcp_network_kept_without_address() -> None:
    rewriter = _rewriter({"iso": "/iso/x.iso"})
    assert rewriter.rewrite(["network --bootproto=dhcp"]).lines == ["network --bootproto=dhcp"]


def test_hostname_prelude_is_prepended() -> None:
    rewriter = _rewriter({"hostname": "vm1.lan", "iso": "/iso/x.iso"})
    result = rewriter.rewrite(["text"])
    assert result.lines == hostname_prelude("vm1.lan") + ["text"]
    assert result.lines[:3] == ["%pre", "hostname vm1.lan", "%end"]


def test_iso_beats_url_and_cdrom() -> None:
    state = RewriteState()
    state.record_url("http://x/", False)
    assert select_install_source("/iso/a.iso", state) == IsoSource("/iso/a.iso")


def test_last_source_line_wins() -> None:
    rewriter = _rewriter()
    result = rewriter.rewrite(["url --url=http://x/os/", "cdrom"])
    assert result.source == CdromSource()
    result = rewriter.rewrite(["cdrom", "url --url=https://x/os/"])
    assert result.source == UrlSource("https://x/os/", True)


def test_no_source_at_all() -> None:
    with pytest.raises(InstallSourceError):
        select_install_source(None, RewriteState())


def test_unmatched_lines_pass_through() -> None:
    rewriter = _rewriter({"iso": "/iso/x.iso"}, defaults={"qga": True, "ssh": True, "console": True})
    lines = ["lang en_US.UTF-8", "# network --bootproto=dhcp", "timezone UTC"]
    assert rewriter.rewrite(lines).lines == lines
    assert rewriter.network == NetworkSpec()


@pytest.mark.parametrize("value", [None, 0, False, "", "0", "  "])
def test_switched_off_iso_values_name_no_iso(value: object) -> None:
    assert iso_path(value) is None


def test_noiso_override_falls_through_to_url_line() -> None:
    config = EffectiveConfig.from_layers(directives={"iso": 0}, file={"iso": "/srv/fedora.iso"}, defaults={})
    state = RewriteState()
    state.record_url("http://mirror.example/os/", False)
    assert select_install_source(config.resolve("iso", None), state) == UrlSource("http://mirror.example/os/", False)


def test_noiso_override_with_cdrom_yields_cdrom_source() -> None:
    state = RewriteState()
    state.record_cdrom()
    assert select_install_source(0, state) == CdromSource()
