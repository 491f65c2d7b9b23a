from __future__ import annotations

import pytest

from ks_libvirt import LayerLoadError
from ks_libvirt.domain import errors


@pytest.mark.parametrize(
    "error_type",
    [
        errors.InvalidFormat,
        errors.NotFound,
        errors.FetchError,
        errors.UnknownDirectiveError,
        errors.IncludeCycleError,
        errors.NetworkSpecError,
        errors.InstallSourceError,
        errors.FirmwareError,
        LayerLoadError,
    ],
)
def test_every_error_is_a_kickstart_error(error_type: type[Exception]) -> None:
    assert issubclass(error_type, errors.KickstartError)
    with pytest.raises(errors.KickstartError, match="boom"):
        raise error_type("boom")
