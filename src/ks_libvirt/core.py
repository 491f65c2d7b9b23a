"""Composition root for ``ks_libvirt``.

Purpose
-------
Provide the entry points that wire adapters (HTTP, filesystem, SSH agent) into
the kickstart pipeline::

    load -> extract directives -> resolve configuration -> rewrite -> hand off

Contents
--------
* :class:`PreparedKickstart` – everything a run hands to the installer.
* :func:`read_settings` – the ``file`` tier with per-key provenance.
* :func:`prepare_kickstart` – run the whole pipeline.
* :func:`write_kickstart` – write the final document for hand-off.
* :class:`LayerLoadError` – a settings file could not be parsed.

System Role
-----------
Every fatal condition raises a :class:`KickstartError` before anything is
written, so callers either receive a complete :class:`PreparedKickstart` or
nothing at all.
"""

from __future__ import annotations

import tempfile
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Iterable, Mapping, Sequence

from .adapters.file_loaders.mirrors import MirrorMapFileLoader
from .adapters.file_loaders.structured import FILE_LOADERS
from .adapters.http.client import HttpxFetcher
from .adapters.path_resolvers.default import DefaultPathResolver
from .adapters.ssh.keys import SshKeyDiscovery
from .application.context import RunContext
from .application.extractor import extract_directives
from .application.firmware import FirmwareSelection, select_firmware
from .application.loader import load_document
from .application.merge import merge_layers
from .application.ports import DocumentFetcher, KeySource, PathResolver
from .application.rewrite import LineRewriter
from .application.urls import UrlResolver
from .domain.config import EffectiveConfig
from .domain.errors import InstallSourceError, InvalidFormat, KickstartError, NotFound
from .domain.network import NetworkSpec, network_spec_from_config
from .domain.sources import CdromSource, InstallSource
from .observability import bind_run_id, log_debug, log_info, make_event


RESOURCE_KEYS: Final[tuple[str, ...]] = ("cpu", "ram", "disk", "disk2")


class LayerLoadError(KickstartError):
    """Raised when a settings file exists but cannot be parsed."""


@dataclass(frozen=True, slots=True)
class PreparedKickstart:
    """Result of a successful pipeline run.

    Attributes
    ----------
    lines:
        Final kickstart document.
    config:
        Effective configuration (lazy resolver with provenance).
    source:
        Chosen installation source.
    network:
        Static network settings, or an unset spec for DHCP.
    firmware:
        UEFI / secure boot / TPM selection.
    resources:
        Integer sizing of the guest (``cpu``, ``ram`` in MiB, ``disk`` and
        ``disk2`` in GiB); ``None`` for unset keys.
    """

    lines: list[str]
    config: EffectiveConfig
    source: InstallSource
    network: NetworkSpec
    firmware: FirmwareSelection
    resources: Mapping[str, int | None]

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"

    def kernel_args(self) -> list[str]:
        """Kernel arguments for the installer boot (network settings)."""

        return self.network.kernel_args()

    def summary(self) -> dict[str, Any]:
        return {
            "source": self.source.as_dict(),
            "network": self.network.as_dict(),
            "kernel_args": self.kernel_args(),
            "firmware": self.firmware.as_dict(),
            "resources": dict(self.resources),
            "config": self.config.as_dict(),
        }


def read_settings(
    *,
    config_files: Sequence[str] = (),
    resolver: PathResolver | None = None,
) -> tuple[dict[str, object], dict[str, str | None]]:
    """Return the merged ``file`` tier and the file behind each key.

    Layers are ``system`` then ``user`` then *config_files* (highest). Missing
    files are skipped; a file that exists but does not parse raises
    :class:`LayerLoadError`. An explicit file with an unsupported suffix is
    read as TOML.
    """

    resolver = resolver or DefaultPathResolver()
    layers: list[tuple[str, Mapping[str, object], str | None]] = []
    layers.extend(_load_files("system", resolver.system()))
    layers.extend(_load_files("user", resolver.user()))
    layers.extend(_load_files("explicit", config_files, default_suffix=".toml"))
    if not layers:
        log_debug("settings_empty", **make_event("settings", None))
        return {}, {}
    values, paths = merge_layers(layers)
    log_info("settings_merged", **make_event("settings", None, {"files": len(layers), "keys": len(values)}))
    return values, paths


def prepare_kickstart(
    source: str,
    *,
    cli: Mapping[str, Any] | None = None,
    config_files: Sequence[str] = (),
    resolver: PathResolver | None = None,
    fetcher: DocumentFetcher | None = None,
    key_source: KeySource | None = None,
    host_arch: str | None = None,
) -> PreparedKickstart:
    """Run the kickstart pipeline for *source* (local path or HTTP(S) URL).

    Parameters
    ----------
    source:
        Main kickstart document.
    cli:
        Explicitly given command line values (highest tier). Only keys that
        were actually given may appear; ``0``/``False``/``""`` count as given.
    config_files:
        Extra settings files layered above the system and user files.
    resolver:
        Settings and mirror map discovery; defaults to
        :class:`DefaultPathResolver`.
    fetcher:
        Network adapter; defaults to an :class:`HttpxFetcher` closed at the end
        of the run.
    key_source:
        SSH key discovery; defaults to :class:`SshKeyDiscovery`. Only queried
        when ``ssh`` is enabled.
    host_arch:
        Override for the native architecture used by ``$basearch``.

    Raises
    ------
    KickstartError
        Any fatal condition of loading, resolution or rewriting.
    """

    bind_run_id(uuid.uuid4().hex[:12])
    cli_values = dict(cli or {})
    resolver = resolver or DefaultPathResolver()
    file_values, file_paths = read_settings(config_files=config_files, resolver=resolver)
    early = EffectiveConfig.from_layers(cli=cli_values, file=file_values, file_paths=file_paths)

    with ExitStack() as stack:
        if fetcher is None:
            fetcher = stack.enter_context(HttpxFetcher(timeout=float(early.resolve("fetch_timeout"))))
        context = RunContext(
            fetcher=fetcher,
            mirror_map_paths=_mirror_map_paths(early, resolver),
            mirror_loader=MirrorMapFileLoader(),
        )
        if host_arch:
            context.host_arch = host_arch

        raw = load_document(source, context)
        stripped, overrides = extract_directives(raw)
        config = EffectiveConfig.from_layers(
            cli=cli_values,
            directives=overrides,
            file=file_values,
            file_paths=file_paths,
        )
        resources = {key: config.integer(key) for key in RESOURCE_KEYS}
        network = network_spec_from_config(config)
        firmware = select_firmware(config)
        keys = _ssh_keys(config, key_source)
        rewriter = LineRewriter(
            config=config,
            urls=UrlResolver(context, arch=config.text("arch")),
            network=network,
            ssh_keys=keys,
        )
        result = rewriter.rewrite(stripped)

    if isinstance(result.source, CdromSource):
        raise InstallSourceError(f"cdrom install requires an ISO path ({result.source.error})")
    log_info("kickstart_prepared", **make_event("core", source, {"lines": len(result.lines)}))
    return PreparedKickstart(result.lines, config, result.source, network, firmware, resources)


def write_kickstart(prepared: PreparedKickstart, *, path: Path | None = None, directory: Path | None = None) -> Path:
    """Write the final document to *path*, or to a new temporary ``.ks`` file."""

    if path is None:
        handle = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", prefix="ks-libvirt-", suffix=".ks", dir=directory, delete=False
        )
        with handle:
            handle.write(prepared.text())
        path = Path(handle.name)
    else:
        path.write_text(prepared.text(), encoding="utf-8")
    log_info("kickstart_written", **make_event("core", str(path)))
    return path


def _load_files(
    layer: str, paths: Iterable[str], *, default_suffix: str | None = None
) -> list[tuple[str, Mapping[str, object], str | None]]:
    """Load all files enumerated for *layer*, returning non-empty mappings only."""

    collected: list[tuple[str, Mapping[str, object], str | None]] = []
    for path in paths:
        suffix = Path(path).suffix.lower()
        loader = FILE_LOADERS.get(suffix) or (FILE_LOADERS.get(default_suffix) if default_suffix else None)
        if loader is None:
            continue
        try:
            data = loader.load(path)
        except NotFound:
            continue
        except InvalidFormat as exc:
            log_debug("layer_error", stage="settings", ref=path, layer=layer, error=str(exc))
            raise LayerLoadError(f"Failed to load {layer} settings file {path}: {exc}") from exc
        if data:
            collected.append((layer, data, path))
    return collected


def _mirror_map_paths(config: EffectiveConfig, resolver: PathResolver) -> list[str]:
    explicit = config.text("mirrors")
    if explicit:
        return [explicit]
    return list(resolver.mirror_maps())


def _ssh_keys(config: EffectiveConfig, key_source: KeySource | None) -> list[str]:
    if not config.flag("ssh"):
        return []
    source = key_source or SshKeyDiscovery()
    return list(source.keys())


__all__ = [
    "LayerLoadError",
    "PreparedKickstart",
    "prepare_kickstart",
    "read_settings",
    "write_kickstart",
]
