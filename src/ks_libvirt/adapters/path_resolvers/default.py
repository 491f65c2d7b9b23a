"""Filesystem path resolution for settings and mirror map files.

Purpose
-------
Implement the :class:`ks_libvirt.application.ports.PathResolver` protocol by
encapsulating the ``/etc`` and XDG conventions. This adapter is the only
component that knows where settings live on disk.

Contents
--------
* :class:`DefaultPathResolver` – resolves candidates for each layer.
* :func:`_collect_layer` – yields ``config.<ext>`` and ``config.d`` entries
  within a base directory.

Layout
------
=========  ============================================  ====================
layer      settings                                      mirror map
=========  ============================================  ====================
system     ``$KS_LIBVIRT_ETC/ks-libvirt/config.*``        ``.../ks-libvirt/mirrors``
user       ``$XDG_CONFIG_HOME/ks-libvirt/config.*``       ``.../ks-libvirt/mirrors``
=========  ============================================  ====================

``KS_LIBVIRT_ETC`` defaults to ``/etc`` and ``XDG_CONFIG_HOME`` to
``~/.config``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, Iterable

from ...observability import log_debug

SLUG: Final[str] = "ks-libvirt"
MIRROR_MAP_NAME: Final[str] = "mirrors"

#: Supported structured settings extensions, in lookup order.
_ALLOWED_EXTENSIONS: Final[tuple[str, ...]] = (".toml", ".yaml", ".yml", ".json")


class DefaultPathResolver:
    """Resolve candidate paths for the system and user layers.

    Parameters
    ----------
    slug:
        Directory name below the configuration roots.
    env:
        Optional environment mapping that overrides ``os.environ`` values
        (useful for deterministic tests).
    home:
        Home directory used when ``XDG_CONFIG_HOME`` is unset.
    """

    def __init__(
        self,
        *,
        slug: str = SLUG,
        env: dict[str, str] | None = None,
        home: Path | None = None,
    ) -> None:
        self.slug = slug
        self.env = {**os.environ, **(env or {})}
        self.home = home or Path.home()

    @property
    def system_root(self) -> Path:
        return Path(self.env.get("KS_LIBVIRT_ETC", "/etc")) / self.slug

    @property
    def user_root(self) -> Path:
        xdg = self.env.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else self.home / ".config"
        return base / self.slug

    def system(self) -> Iterable[str]:
        """Return candidate system-wide settings paths.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> root = Path(tmp.name)
        >>> target = root / "ks-libvirt"
        >>> target.mkdir(parents=True, exist_ok=True)
        >>> _ = (target / "config.toml").write_text("ram = 4096", encoding="utf-8")
        >>> resolver = DefaultPathResolver(env={"KS_LIBVIRT_ETC": str(root)})
        >>> [Path(p).name for p in resolver.system()]
        ['config.toml']
        >>> tmp.cleanup()
        """

        return self._layer("system", self.system_root)

    def user(self) -> Iterable[str]:
        """Return user-level settings paths."""

        return self._layer("user", self.user_root)

    def mirror_maps(self) -> Iterable[str]:
        """Return mirror map candidates, system first so user entries win.

        Candidates are returned whether or not they exist; the mirror map
        loader skips missing files.
        """

        return [str(self.system_root / MIRROR_MAP_NAME), str(self.user_root / MIRROR_MAP_NAME)]

    def _layer(self, layer: str, base: Path) -> list[str]:
        paths = list(_collect_layer(base))
        if paths:
            log_debug("path_candidates", stage="settings", ref=str(base), layer=layer, count=len(paths))
        return paths


def _collect_layer(base: Path) -> Iterable[str]:
    """Yield the first ``config.<ext>`` file and the ``config.d`` entries under *base*.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> root = Path(tmp.name)
    >>> file_a = root / 'config.toml'
    >>> file_b = root / 'config.d' / '10-extra.json'
    >>> file_b.parent.mkdir(parents=True, exist_ok=True)
    >>> _ = file_a.write_text('ram = 1024', encoding='utf-8')
    >>> _ = file_b.write_text('{"cpu": 2}', encoding='utf-8')
    >>> [Path(p).name for p in _collect_layer(root)]
    ['config.toml', '10-extra.json']
    >>> tmp.cleanup()
    """

    for suffix in _ALLOWED_EXTENSIONS:
        config_file = base / f"config{suffix}"
        if config_file.is_file():
            yield str(config_file)
            break
    config_dir = base / "config.d"
    if config_dir.is_dir():
        for path in sorted(config_dir.iterdir()):
            if path.is_file() and path.suffix.lower() in _ALLOWED_EXTENSIONS:
                yield str(path)
