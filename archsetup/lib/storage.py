from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List

from ..install_config import Tunables
from .command import run_cmd

logger = logging.getLogger(__name__)


class PartitionRole(str, enum.Enum):
    ESP = "esp"
    RESERVED = "reserved"
    ROOT = "root"


@dataclass(frozen=True)
class Partition:
    number: int
    role: PartitionRole
    path: str
    fstype: str
    start: str
    end: str


@dataclass(frozen=True)
class DiskLayout:
    """Fixed 3-slot GPT layout.

    Partition 1 is the ESP, partition 2 is a reserved slot (secrets), the
    last partition is handed to the storage backend.
    """

    disk: str
    partitions: List[Partition]

    @property
    def boot(self) -> Partition:
        return self.partitions[0]

    @property
    def reserved(self) -> Partition:
        return self.partitions[1]

    @property
    def root(self) -> Partition:
        return self.partitions[-1]


def part_path(disk: str, n: int) -> str:
    # nvme/mmcblk/loop devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def plan_layout(disk: str, tunables: Tunables | None = None) -> DiskLayout:
    t = tunables or Tunables()
    return DiskLayout(
        disk=disk,
        partitions=[
            Partition(1, PartitionRole.ESP, part_path(disk, 1), "fat32", "1MiB", t.esp_end),
            Partition(2, PartitionRole.RESERVED, part_path(disk, 2), "ext4", t.esp_end, t.reserved_end),
            Partition(3, PartitionRole.ROOT, part_path(disk, 3), "ext4", t.reserved_end, "100%"),
        ],
    )


def parted_script(layout: DiskLayout) -> list[str]:
    argv = ["parted", "--script", layout.disk, "--", "mklabel", "gpt"]
    for p in layout.partitions:
        name = "ESP" if p.role is PartitionRole.ESP else "primary"
        argv += ["mkpart", name, p.fstype, p.start, p.end]
        if p.role is PartitionRole.ESP:
            argv += ["set", str(p.number), "boot", "on"]
    return argv


def partition_disk(
    *,
    layout: DiskLayout,
    wipe_blocks: int = 20480,
    dry_run: bool = False,
) -> None:
    """Create the GPT table, clear old signatures and format the ESP.

    The root partition is left for the backend; its first blocks are
    overwritten so stale pool/LUKS/LVM headers cannot be picked up again.
    """

    disk = layout.disk
    logger.info("Partitioning disk=%s", disk)

    run_cmd(parted_script(layout), dry_run=dry_run)

    # Inform kernel
    run_cmd(["partprobe", disk], dry_run=dry_run)

    run_cmd(["wipefs", "-a", layout.boot.path], dry_run=dry_run)
    run_cmd(["wipefs", "-a", layout.root.path], dry_run=dry_run)
    run_cmd(
        ["dd", "if=/dev/urandom", f"of={layout.root.path}", "bs=512", f"count={wipe_blocks}"],
        dry_run=dry_run,
    )

    run_cmd(["mkfs.vfat", "-F32", layout.boot.path], dry_run=dry_run)
    logger.info("Partitioned %s (esp=%s root=%s)", disk, layout.boot.path, layout.root.path)
