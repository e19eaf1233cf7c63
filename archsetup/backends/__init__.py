from __future__ import annotations

from typing import Dict, Type

from ..install_config import FsMode, InstallConfig
from ..lib.env import Paths
from ..lib.storage import DiskLayout
from .base import Backend
from .ext4 import Ext4Backend
from .lvm_luks import LvmLuksBackend
from .zfs import ZfsBackend

BACKENDS: Dict[FsMode, Type[Backend]] = {
    FsMode.EXT4: Ext4Backend,
    FsMode.LVM_LUKS: LvmLuksBackend,
    FsMode.ZFS: ZfsBackend,
}


def select_backend(config: InstallConfig, layout: DiskLayout, paths: Paths, *, dry_run: bool = False) -> Backend:
    return BACKENDS[config.mode](config, layout, paths, dry_run=dry_run)


__all__ = [
    "BACKENDS",
    "Backend",
    "Ext4Backend",
    "LvmLuksBackend",
    "ZfsBackend",
    "select_backend",
]
