"""Tiered configuration value object.

Purpose
-------
Resolve configuration keys through four precedence tiers: explicit command
line values, in-document directives, settings files and built-in defaults.
The module belongs to the domain layer and performs no I/O.

Contents
--------
* :data:`MISSING` – sentinel returned when no tier holds a key.
* :data:`TIER_ORDER` / :data:`KNOWN_KEYS` / :data:`DEFAULTS` – the tier names,
  recognised keys and built-in default tier.
* :class:`SourceInfo` – provenance of a resolved key.
* :class:`Tier` – one named source of values (plus per-key file paths).
* :class:`EffectiveConfig` – lazy, pure per-key resolver over the tiers.

System Role
-----------
A tier *has* a key when the key is present in its mapping. Values such as
``0``, ``""`` or ``False`` still short-circuit lower tiers: a ``#NOSSH:``
directive must beat ``ssh = true`` in a settings file, and ``--disk2 0`` must
beat a directive. Nothing here ever tests a value for truthiness to decide
presence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final, Iterable, Mapping, Sequence, TypedDict

from .errors import InvalidFormat


class _Missing:
    """Type of the :data:`MISSING` sentinel."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()
"""Returned by :meth:`EffectiveConfig.resolve` when no tier holds the key."""

TIER_ORDER: Final[tuple[str, ...]] = ("cli", "directive", "file", "default")

KNOWN_KEYS: Final[tuple[str, ...]] = (
    "name",
    "arch",
    "machine",
    "cpu",
    "ram",
    "disk",
    "disk2",
    "iso",
    "os",
    "pool",
    "net",
    "ip",
    "gw",
    "dns",
    "hostname",
    "qga",
    "ssh",
    "console",
    "uefi",
    "secureboot",
    "firmware",
    "tpm",
    "mirrors",
    "fetch_timeout",
    "verbose",
    "quiet",
)

DEFAULTS: Final[Mapping[str, Any]] = MappingProxyType(
    {
        "machine": "q35",
        "cpu": 2,
        "ram": 2048,
        "disk": 20,
        "pool": "default",
        "net": "default",
        "qga": True,
        "ssh": True,
        "console": False,
        "uefi": False,
        "secureboot": False,
        "firmware": "/usr/share/edk2/ovmf",
        "tpm": False,
        "fetch_timeout": 30.0,
        "verbose": False,
        "quiet": False,
    }
)

_FALSE_STRINGS: Final[frozenset[str]] = frozenset({"", "0", "false", "no", "off"})


class SourceInfo(TypedDict):
    """Describe the origin of a resolved configuration key.

    Attributes
    ----------
    tier:
        Winning tier (``"cli"``, ``"directive"``, ``"file"`` or ``"default"``).
    path:
        Settings file that supplied the value, ``None`` for in-memory tiers.
    key:
        The resolved key.
    """

    tier: str
    path: str | None
    key: str


@dataclass(frozen=True, slots=True)
class Tier:
    """One named precedence tier.

    ``paths`` optionally maps keys to the file that supplied them; only the
    ``file`` tier fills it.
    """

    name: str
    values: Mapping[str, Any]
    paths: Mapping[str, str | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "paths", MappingProxyType(dict(self.paths)))

    def has(self, key: str) -> bool:
        return key in self.values


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Lazy resolver over the ordered configuration tiers.

    Why
    ----
    Later pipeline stages decide which keys they need (the rewriter only asks
    for ``ip`` when it meets a DHCP ``network`` line), so values are resolved
    on demand instead of materialised up front.

    Parameters
    ----------
    tiers:
        Tiers ordered from highest to lowest precedence.

    Examples
    --------
    >>> cfg = EffectiveConfig.from_layers(cli={"ram": 0}, directives={"ram": 4096})
    >>> cfg.resolve("ram")
    0
    >>> cfg.origin("ram")["tier"]
    'cli'
    >>> cfg.resolve("disk2")
    MISSING
    """

    tiers: Sequence[Tier]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tiers", tuple(self.tiers))

    @classmethod
    def from_layers(
        cls,
        *,
        cli: Mapping[str, Any] | None = None,
        directives: Mapping[str, Any] | None = None,
        file: Mapping[str, Any] | None = None,
        file_paths: Mapping[str, str | None] | None = None,
        defaults: Mapping[str, Any] = DEFAULTS,
    ) -> EffectiveConfig:
        """Assemble the four tiers in their fixed precedence order."""

        return cls(
            (
                Tier("cli", cli or {}),
                Tier("directive", directives or {}),
                Tier("file", file or {}, file_paths or {}),
                Tier("default", defaults),
            )
        )

    def resolve(self, key: str, default: Any = MISSING) -> Any:
        """Return the value of the first tier that holds *key*, else *default*."""

        tier = self._winner(key)
        if tier is None:
            return default
        return tier.values[key]

    def is_set(self, key: str) -> bool:
        """Return ``True`` when any tier explicitly holds *key*."""

        return self._winner(key) is not None

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for *key* or ``None`` when no tier holds it."""

        tier = self._winner(key)
        if tier is None:
            return None
        return {"tier": tier.name, "path": tier.paths.get(key), "key": key}

    def flag(self, key: str) -> bool:
        """Resolve *key* as a boolean toggle; unset keys are ``False``.

        Examples
        --------
        >>> cfg = EffectiveConfig.from_layers(directives={"ssh": 0}, file={"tpm": "yes"})
        >>> cfg.flag("ssh"), cfg.flag("tpm"), cfg.flag("iso")
        (False, True, False)
        """

        value = self.resolve(key, False)
        if isinstance(value, str):
            return value.strip().lower() not in _FALSE_STRINGS
        return bool(value)

    def integer(self, key: str) -> int | None:
        """Resolve *key* as an integer, ``None`` when unset.

        Raises
        ------
        InvalidFormat
            When the winning value is not an integer (``#RAM:lots``).

        Examples
        --------
        >>> EffectiveConfig.from_layers(directives={"ram": "4096"}).integer("ram")
        4096
        """

        value = self.resolve(key, None)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidFormat(f"Configuration key {key!r} must be an integer, got {value!r}") from exc

    def text(self, key: str) -> str | None:
        """Resolve *key* as a string, ``None`` when unset."""

        value = self.resolve(key, None)
        if value is None:
            return None
        return str(value)

    def as_dict(self, keys: Iterable[str] = KNOWN_KEYS) -> dict[str, Any]:
        """Return the resolved value of every key in *keys* that is set."""

        return {key: self.resolve(key) for key in keys if self.is_set(key)}

    def provenance(self, keys: Iterable[str] = KNOWN_KEYS) -> dict[str, SourceInfo]:
        """Return :meth:`origin` for every key in *keys* that is set."""

        result: dict[str, SourceInfo] = {}
        for key in keys:
            info = self.origin(key)
            if info is not None:
                result[key] = info
        return result

    def _winner(self, key: str) -> Tier | None:
        for tier in self.tiers:
            if tier.has(key):
                return tier
        return None
