"""UEFI firmware selection.

Secure boot needs the ``.secboot.fd`` OVMF code and variable images; when they
are missing the run is aborted before anything is handed to the installer.
Plain UEFI uses the generic images when present and otherwise leaves the
choice to the installer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from ..domain.config import EffectiveConfig
from ..domain.errors import FirmwareError
from ..observability import log_debug, make_event

CODE_IMAGE: Final[str] = "OVMF_CODE.fd"
VARS_IMAGE: Final[str] = "OVMF_VARS.fd"
SECURE_CODE_IMAGE: Final[str] = "OVMF_CODE.secboot.fd"
SECURE_VARS_IMAGE: Final[str] = "OVMF_VARS.secboot.fd"


@dataclass(frozen=True, slots=True)
class FirmwareSelection:
    uefi: bool = False
    secure_boot: bool = False
    tpm: bool = False
    code: str | None = None
    variables: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "uefi": self.uefi,
            "secure_boot": self.secure_boot,
            "tpm": self.tpm,
            "code": self.code,
            "vars": self.variables,
        }


def select_firmware(config: EffectiveConfig) -> FirmwareSelection:
    """Return the firmware images for the ``uefi``/``secureboot``/``tpm`` keys.

    Secure boot implies UEFI.

    Raises
    ------
    FirmwareError
        When secure boot is requested and either secure boot image is missing
        from the ``firmware`` directory.
    """

    secure_boot = config.flag("secureboot")
    uefi = secure_boot or config.flag("uefi")
    tpm = config.flag("tpm")
    if not uefi:
        return FirmwareSelection(tpm=tpm)

    directory = Path(config.text("firmware") or "").expanduser()
    if secure_boot:
        code, variables = directory / SECURE_CODE_IMAGE, directory / SECURE_VARS_IMAGE
        missing = [str(path) for path in (code, variables) if not path.is_file()]
        if missing:
            raise FirmwareError(f"Secure boot requested but firmware files are missing: {', '.join(missing)}")
        return FirmwareSelection(True, True, tpm, str(code), str(variables))

    code, variables = directory / CODE_IMAGE, directory / VARS_IMAGE
    if code.is_file() and variables.is_file():
        return FirmwareSelection(True, False, tpm, str(code), str(variables))
    log_debug("firmware_default", **make_event("firmware", str(directory)))
    return FirmwareSelection(True, False, tpm)
