"""Adapter contract tests: the default adapters satisfy the application ports."""

from __future__ import annotations

from pathlib import Path

import pytest

from ks_libvirt.adapters.file_loaders.mirrors import MirrorMapFileLoader
from ks_libvirt.adapters.file_loaders.structured import JSONFileLoader, TOMLFileLoader, YAMLFileLoader
from ks_libvirt.adapters.http.client import HttpxFetcher
from ks_libvirt.adapters.path_resolvers.default import DefaultPathResolver
from ks_libvirt.adapters.ssh.keys import SshKeyDiscovery
from ks_libvirt.application import ports
from tests.support import FakeFetcher, StaticKeys, mock_client


def test_path_resolver_contract(tmp_path: Path) -> None:
    assert isinstance(DefaultPathResolver(home=tmp_path), ports.PathResolver)


@pytest.mark.parametrize("loader", [TOMLFileLoader(), JSONFileLoader(), YAMLFileLoader()])
def test_file_loader_contract(loader) -> None:
    assert isinstance(loader, ports.FileLoader)


def test_mirror_map_loader_contract() -> None:
    assert isinstance(MirrorMapFileLoader(), ports.MirrorMapLoader)


def test_fetcher_contract() -> None:
    assert isinstance(HttpxFetcher(client=mock_client({})), ports.DocumentFetcher)
    assert isinstance(FakeFetcher(), ports.DocumentFetcher)


def test_key_source_contract(tmp_path: Path) -> None:
    assert isinstance(SshKeyDiscovery(ssh_dir=tmp_path, use_agent=False), ports.KeySource)
    assert isinstance(StaticKeys(), ports.KeySource)
