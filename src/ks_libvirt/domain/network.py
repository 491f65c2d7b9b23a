"""Static network settings for the guest.

Purpose
-------
Turn the ``ip``/``gw``/``dns``/``hostname`` configuration keys into a
validated :class:`NetworkSpec`. A spec is either fully unset (the guest uses
DHCP) or carries an address with prefix length and a gateway.

Contents
--------
* :class:`NetworkSpec` – value object with the derived netmask and the dracut
  kernel arguments used while the installer boots.
* :func:`network_spec_from_config` – validation entry point.
* :func:`prefix_to_netmask` – dotted netmask for a prefix length.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field
from typing import Any, Final, Sequence

from .config import EffectiveConfig
from .errors import NetworkSpecError

MIN_PREFIX: Final[int] = 1
MAX_PREFIX: Final[int] = 31

_ADDRESS_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(\d{1,3}(?:\.\d{1,3}){3})/(\d{1,2})$")


@dataclass(frozen=True, slots=True)
class NetworkSpec:
    """Resolved network settings.

    Examples
    --------
    >>> spec = NetworkSpec(ip="10.0.0.5", prefix=24, gateway="10.0.0.1", dns=("8.8.8.8",))
    >>> spec.netmask
    '255.255.255.0'
    >>> spec.kernel_args()
    ['ip=10.0.0.5::10.0.0.1:255.255.255.0:::none', 'nameserver=8.8.8.8']
    """

    ip: str | None = None
    prefix: int | None = None
    gateway: str | None = None
    hostname: str | None = None
    dns: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_static(self) -> bool:
        return self.ip is not None

    @property
    def netmask(self) -> str | None:
        if self.prefix is None:
            return None
        return prefix_to_netmask(self.prefix)

    def kernel_args(self) -> list[str]:
        """Return dracut ``ip=``/``nameserver=`` arguments for the installer boot."""

        if not self.is_static:
            return []
        hostname = self.hostname or ""
        args = [f"ip={self.ip}::{self.gateway}:{self.netmask}:{hostname}::none"]
        args.extend(f"nameserver={server}" for server in self.dns)
        return args

    def as_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "prefix": self.prefix,
            "netmask": self.netmask,
            "gateway": self.gateway,
            "hostname": self.hostname,
            "dns": list(self.dns),
        }


def prefix_to_netmask(prefix: int) -> str:
    """Return the dotted netmask for *prefix* (1-31).

    Examples
    --------
    >>> prefix_to_netmask(24)
    '255.255.255.0'
    >>> prefix_to_netmask(31)
    '255.255.255.254'
    """

    if not MIN_PREFIX <= prefix <= MAX_PREFIX:
        raise NetworkSpecError(f"Prefix length must be between {MIN_PREFIX} and {MAX_PREFIX}, got {prefix}")
    return str(ipaddress.IPv4Network(f"0.0.0.0/{prefix}").netmask)


def network_spec_from_config(config: EffectiveConfig) -> NetworkSpec:
    """Validate the network keys of *config* and build a :class:`NetworkSpec`.

    Raises
    ------
    NetworkSpecError
        For a malformed ``ip`` (must be ``a.b.c.d/prefix``), a prefix outside
        1-31, an invalid gateway or DNS address, or when only one of ``ip`` and
        ``gw`` is set.
    """

    ip_value = config.text("ip")
    gateway = config.text("gw")
    hostname = config.text("hostname") or None
    dns = _split_servers(config.resolve("dns", None))

    if not ip_value and not gateway:
        return NetworkSpec(hostname=hostname, dns=dns)
    if not ip_value:
        raise NetworkSpecError("A gateway was given without an IP address")
    if not gateway:
        raise NetworkSpecError("An IP address was given without a gateway")

    address, prefix = _parse_address(ip_value)
    _check_address(gateway, "gateway")
    for server in dns:
        _check_address(server, "DNS server")
    return NetworkSpec(ip=address, prefix=prefix, gateway=gateway, hostname=hostname, dns=dns)


def _parse_address(value: str) -> tuple[str, int]:
    match = _ADDRESS_PATTERN.match(value.strip())
    if match is None:
        raise NetworkSpecError(f"IP address must be given as a.b.c.d/prefix, got {value!r}")
    address, prefix = match.group(1), int(match.group(2))
    _check_address(address, "IP address")
    prefix_to_netmask(prefix)
    return address, prefix


def _check_address(value: str, label: str) -> None:
    try:
        ipaddress.IPv4Address(value)
    except ValueError as exc:
        raise NetworkSpecError(f"Invalid {label} {value!r}") from exc


def _split_servers(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items: Sequence[object] = value.replace(",", " ").split()
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return tuple(str(item).strip() for item in items if str(item).strip())
