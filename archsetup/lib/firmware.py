from __future__ import annotations

from pathlib import Path

from ..errors import PreconditionError


def is_efi_boot(efivars: str = "/sys/firmware/efi/efivars") -> bool:
    return Path(efivars).is_dir()


def require_efi_boot(efivars: str = "/sys/firmware/efi/efivars") -> None:
    """Raise unless the live system was booted in UEFI mode.

    systemd-boot and the ESP layout only make sense on UEFI.
    """

    if not is_efi_boot(efivars):
        raise PreconditionError(f"System is not booted in UEFI mode ({efivars} missing)")
