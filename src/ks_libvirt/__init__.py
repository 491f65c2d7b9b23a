"""Public package surface for ``ks_libvirt``.

Exposes the composition-root entry points (:func:`prepare_kickstart`,
:func:`read_settings`, :func:`write_kickstart`), the configuration value object
and the error taxonomy so ``import ks_libvirt`` and ``python -m ks_libvirt``
reach the same pipeline.
"""

from __future__ import annotations

from .core import LayerLoadError, PreparedKickstart, prepare_kickstart, read_settings, write_kickstart
from .domain.config import MISSING, EffectiveConfig
from .domain.errors import (
    FetchError,
    FirmwareError,
    IncludeCycleError,
    InstallSourceError,
    InvalidFormat,
    KickstartError,
    NetworkSpecError,
    NotFound,
    UnknownDirectiveError,
)
from .observability import bind_run_id, get_logger

__all__ = [
    "EffectiveConfig",
    "FetchError",
    "FirmwareError",
    "IncludeCycleError",
    "InstallSourceError",
    "InvalidFormat",
    "KickstartError",
    "LayerLoadError",
    "MISSING",
    "NetworkSpecError",
    "NotFound",
    "PreparedKickstart",
    "UnknownDirectiveError",
    "bind_run_id",
    "get_logger",
    "prepare_kickstart",
    "read_settings",
    "write_kickstart",
]
