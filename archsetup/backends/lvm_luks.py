from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List

from ..errors import FormatError, ToolInvocationError
from ..install_config import Tunables
from ..lib.block import device_size_bytes, get_uuid
from ..lib.command import run_cmd
from ..lib.fstab import generate_fstab
from ..lib.mounts import unmount
from ..lib.pkg import pacman_install
from .base import Backend, tolerate

logger = logging.getLogger(__name__)

GIB = 1024 ** 3
MIB = 1024 ** 2
DEFAULT_EXTENT = 4 * MIB

LVM_HOOKS = ["base", "udev", "autodetect", "keyboard", "keymap", "modconf", "block", "encrypt", "lvm2", "filesystems", "fsck"]


@dataclass(frozen=True)
class LogicalVolume:
    name: str
    mountpoint: str
    size_bytes: int
    # Takes whatever is left in the volume group (lvcreate -l 100%FREE).
    fill: bool = False


def _whole_extents(n: int, extent: int) -> int:
    return (n // extent) * extent


def plan_logical_volumes(
    vg_bytes: int,
    partition_bytes: int,
    tunables: Tunables | None = None,
    *,
    extent_bytes: int = DEFAULT_EXTENT,
) -> List[LogicalVolume]:
    """Split a volume group into root, var, home and data.

    Root is a fixed floor on partitions below the threshold, a percentage of
    the volume group otherwise. var and home are percentages of the volume
    group, each capped by what is still free. data gets the remainder.
    Sizes are whole extents, so the total never exceeds the group.
    """

    t = tunables or Tunables()
    capacity = _whole_extents(vg_bytes, extent_bytes)

    if partition_bytes < t.lvm_root_threshold_gib * GIB:
        root = t.lvm_root_floor_gib * GIB
    else:
        root = capacity * t.lvm_root_percent // 100
    root = _whole_extents(root, extent_bytes)
    if root <= 0 or root > capacity:
        raise FormatError(
            f"Volume group too small: {capacity} bytes available, root needs {root} bytes"
        )

    vols = [LogicalVolume("root", "/", root)]
    remaining = capacity - root
    for name, pct in (("var", t.lvm_var_percent), ("home", t.lvm_home_percent)):
        size = min(_whole_extents(capacity * pct // 100, extent_bytes), remaining)
        if size < extent_bytes:
            logger.info("No room left for %s volume", name)
            continue
        vols.append(LogicalVolume(name, f"/{name}", size))
        remaining -= size

    if remaining >= extent_bytes:
        vols.append(LogicalVolume("data", "/data", remaining, fill=True))
    return vols


class LvmState(enum.IntEnum):
    UNINITIALIZED = 0
    LUKS_OPENED = 1
    VOLUME_GROUP_CREATED = 2
    LOGICAL_VOLUMES_CREATED = 3
    FORMATTED = 4
    MOUNTED = 5
    VERIFIED_BY_RELOCK = 6


class LvmLuksBackend(Backend):
    """LUKS container holding one LVM volume group with ext4 volumes."""

    name = "lvm-luks"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.vg = self.tunables.lvm_vg
        self.mapper = self.tunables.luks_mapper
        self.root_partition: str | None = None
        self.volumes: List[LogicalVolume] = []
        self.state = LvmState.UNINITIALIZED

    @property
    def mapper_path(self) -> str:
        return f"/dev/mapper/{self.mapper}"

    def lv_path(self, name: str) -> str:
        return f"/dev/{self.vg}/{name}"

    @property
    def _key_input(self) -> str:
        return f"{self.config.passphrase}\n"

    def check_dependencies(self) -> None:
        self._require_modules(["dm_crypt", "dm_mod"])
        self._require_tools(["cryptsetup", "pvcreate", "vgcreate", "lvcreate"])

    def format_and_mount_root(self, root_partition: str) -> None:
        self.root_partition = root_partition
        try:
            self._create_container(root_partition)
            self._create_volume_group()
            self._create_volumes(root_partition)
            self._format_volumes()
        except ToolInvocationError as e:
            raise FormatError(f"LVM/LUKS setup failed in state {self.state.name}: {e}", device=root_partition) from e

        for lv in self.volumes:
            self.mounts.add(self.lv_path(lv.name), self.paths.target(lv.mountpoint), "ext4")
        self.mounts.mount_all()
        self._mount_boot()
        self._advance(LvmState.MOUNTED)

        self.verify_relock()

    def _create_container(self, root_partition: str) -> None:
        run_cmd(
            ["cryptsetup", "luksFormat", "--batch-mode", "--type", "luks2", "--key-file=-", root_partition],
            input_text=self._key_input,
            dry_run=self.dry_run,
        )
        self._open_container()
        self._advance(LvmState.LUKS_OPENED)

    def _open_container(self) -> None:
        run_cmd(
            ["cryptsetup", "open", "--key-file=-", self.root_partition or self.layout.root.path, self.mapper],
            input_text=self._key_input,
            dry_run=self.dry_run,
        )

    def _create_volume_group(self) -> None:
        run_cmd(["pvcreate", "--yes", self.mapper_path], dry_run=self.dry_run)
        run_cmd(["vgcreate", self.vg, self.mapper_path], dry_run=self.dry_run)
        self._advance(LvmState.VOLUME_GROUP_CREATED)

    def _vg_geometry(self) -> tuple[int, int]:
        r = run_cmd(
            ["vgs", "--noheadings", "--units", "b", "--nosuffix", "-o", "vg_size,vg_extent_size", self.vg],
            dry_run=self.dry_run,
        )
        fields = r.stdout.split()
        if len(fields) < 2:
            if self.dry_run:
                return 0, DEFAULT_EXTENT
            raise FormatError(f"Could not read size of volume group {self.vg}")
        return int(fields[0]), int(fields[1])

    def _create_volumes(self, root_partition: str) -> None:
        vg_bytes, extent = self._vg_geometry()
        if self.dry_run and vg_bytes == 0:
            # Nothing to measure without a real group; plan against the partition threshold.
            vg_bytes = self.tunables.lvm_root_threshold_gib * GIB
        partition_bytes = device_size_bytes(root_partition, dry_run=self.dry_run) or vg_bytes
        self.volumes = plan_logical_volumes(vg_bytes, partition_bytes, self.tunables, extent_bytes=extent)

        for lv in self.volumes:
            size = ["-l", "100%FREE"] if lv.fill else ["-L", f"{lv.size_bytes // MIB}M"]
            run_cmd(["lvcreate", "--yes", *size, "-n", lv.name, self.vg], dry_run=self.dry_run)
        self._advance(LvmState.LOGICAL_VOLUMES_CREATED)

    def _format_volumes(self) -> None:
        for lv in self.volumes:
            run_cmd(["mkfs.ext4", "-F", self.lv_path(lv.name)], dry_run=self.dry_run)
        self._advance(LvmState.FORMATTED)

    def verify_relock(self) -> None:
        """Close and reopen the whole stack from cold before building on it."""

        logger.info("Verifying %s can be locked and unlocked again", self.mapper)
        self.mounts.unmount_all()
        run_cmd(["vgchange", "-an", self.vg], dry_run=self.dry_run)
        run_cmd(["cryptsetup", "close", self.mapper], dry_run=self.dry_run)

        self._open_container()
        run_cmd(["vgchange", "-ay", self.vg], dry_run=self.dry_run)
        self.mounts.mount_all()
        self._advance(LvmState.VERIFIED_BY_RELOCK)

    def generate_fstab(self, boot_partition: str, root_partition: str) -> None:
        generate_fstab(self.target_root, only_sources=None, dry_run=self.dry_run)

    def initramfs_hooks(self) -> List[str]:
        return list(LVM_HOOKS)

    def install_extra_packages(self) -> None:
        pacman_install(self.target_root, ["lvm2"], dry_run=self.dry_run)

    def extra_boot_options(self) -> str:
        part = self.root_partition or self.layout.root.path
        uuid = get_uuid(part, dry_run=self.dry_run)
        return f"cryptdevice=UUID={uuid}:{self.mapper} root={self.lv_path('root')} rw"

    def _mount_targets(self) -> List[str]:
        # Every place this backend may have mounted something, outermost first.
        return [self.paths.target(m) for m in ("/", "/var", "/home", "/data")] + [self.boot_target]

    def _deactivate_group(self) -> None:
        if run_cmd(["vgs", self.vg], check=False, dry_run=self.dry_run).ok:
            run_cmd(["vgchange", "-an", self.vg], dry_run=self.dry_run)

    def _close_container(self) -> None:
        if run_cmd(["cryptsetup", "status", self.mapper], check=False, dry_run=self.dry_run).ok:
            run_cmd(["cryptsetup", "close", self.mapper], dry_run=self.dry_run)

    def teardown(self) -> None:
        for target in reversed(self._mount_targets()):
            unmount(target, dry_run=self.dry_run)
        self._deactivate_group()
        self._close_container()

    def clean(self) -> None:
        # Each stage on its own: a busy mount must not keep the mapper open.
        for target in reversed(self._mount_targets()):
            with tolerate(f"unmounting {target}"):
                unmount(target, dry_run=self.dry_run)
        with tolerate(f"deactivating {self.vg}"):
            self._deactivate_group()
        with tolerate(f"closing {self.mapper}"):
            self._close_container()
