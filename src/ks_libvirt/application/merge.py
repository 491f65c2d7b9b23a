"""Merge policy for settings files.

Purpose
-------
Fold the settings files found in the system and user layers (and an explicit
``--config`` file) into the single ``file`` tier of the effective
configuration, remembering which file supplied each key.

Contents
    - ``merge_layers``: public entry point driven by a simple loop.
    - ``normalize_key``: maps ``Fetch-Timeout`` style keys onto ``fetch_timeout``.

System Role
-----------
Receives ``(layer, mapping, path)`` tuples from :mod:`ks_libvirt.core`,
ordered from lowest to highest precedence (``system -> user -> explicit``).
Settings are flat: a table value is kept as a whole under its key.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Iterable


def merge_layers(
    layers: Iterable[tuple[str, Mapping[str, object], str | None]],
) -> tuple[dict[str, object], dict[str, str | None]]:
    """Merge settings *layers* honouring precedence and provenance.

    Parameters
    ----------
    layers:
        Iterable of ``(layer_name, mapping, source_path)`` tuples ordered from
        lowest to highest precedence.

    Returns
    -------
    tuple[dict[str, object], dict[str, str | None]]
        ``(values, paths)`` where ``paths`` maps each key to the file whose
        value won.

    Examples
    --------
    >>> values, paths = merge_layers([
    ...     ("system", {"ram": 2048, "pool": "vms"}, "/etc/ks-libvirt/config.toml"),
    ...     ("user", {"RAM": 0}, "/home/me/.config/ks-libvirt/config.toml"),
    ... ])
    >>> values["ram"], paths["ram"]
    (0, '/home/me/.config/ks-libvirt/config.toml')
    >>> values["pool"]
    'vms'
    """

    values: dict[str, object] = {}
    paths: dict[str, str | None] = {}
    for _layer, data, path in layers:
        for key, value in data.items():
            normalized = normalize_key(key)
            values[normalized] = deepcopy(value)
            paths[normalized] = path
    return values, paths


def normalize_key(key: str) -> str:
    """Lower-case *key* and turn dashes into underscores.

    Examples
    --------
    >>> normalize_key("Fetch-Timeout")
    'fetch_timeout'
    """

    return key.strip().lower().replace("-", "_")
