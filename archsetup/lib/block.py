from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..errors import InstallerError
from .command import run_cmd

logger = logging.getLogger(__name__)

_HIDDEN_DISKS = re.compile(r"boot|rpmb|loop")


@dataclass(frozen=True)
class DiskInfo:
    path: str
    size: str


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return filesystem (or LUKS header) UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], dry_run=dry_run)
    uuid = (r.stdout or "").strip()
    if not uuid and not dry_run:
        raise InstallerError(f"Unable to determine UUID for {dev}")
    return uuid


def get_partuuid(dev: str, *, dry_run: bool = False) -> str:
    """Return the GPT partition UUID of a partition."""

    r = run_cmd(["blkid", "-s", "PARTUUID", "-o", "value", dev], dry_run=dry_run)
    partuuid = (r.stdout or "").strip()
    if not partuuid and not dry_run:
        raise InstallerError(f"Unable to determine PARTUUID for {dev}")
    return partuuid


def device_size_bytes(dev: str, *, dry_run: bool = False) -> int:
    r = run_cmd(["blockdev", "--getsize64", dev], dry_run=dry_run)
    out = (r.stdout or "").strip()
    return int(out) if out else 0


def is_mounted(path: str, *, dry_run: bool = False) -> bool:
    r = run_cmd(["mountpoint", "-q", path], check=False, dry_run=dry_run)
    return r.returncode == 0


def list_disks() -> list[DiskInfo]:
    """Whole disks that can be installed to, largest first.

    eMMC boot areas, RPMB partitions and loop devices are left out.
    """

    r = run_cmd(["lsblk", "-dplnx", "size", "-o", "name,size"])
    disks: list[DiskInfo] = []
    for line in (r.stdout or "").splitlines():
        parts = line.split()
        if len(parts) < 2 or _HIDDEN_DISKS.search(parts[0]):
            continue
        disks.append(DiskInfo(path=parts[0], size=parts[1]))
    disks.reverse()
    return disks
