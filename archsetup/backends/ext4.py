from __future__ import annotations

import logging

from ..errors import FormatError, ToolInvocationError
from ..lib.block import get_partuuid
from ..lib.command import run_cmd
from ..lib.fstab import generate_fstab
from ..lib.mounts import unmount
from .base import Backend, tolerate

logger = logging.getLogger(__name__)


class Ext4Backend(Backend):
    """Single unencrypted ext4 root partition."""

    name = "ext4"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.root_partition: str | None = None

    def check_dependencies(self) -> None:
        # mkfs.ext4 ships with every Arch live image
        return None

    def format_and_mount_root(self, root_partition: str) -> None:
        try:
            run_cmd(["mkfs.ext4", "-F", root_partition], dry_run=self.dry_run)
        except ToolInvocationError as e:
            raise FormatError(f"mkfs.ext4 failed on {root_partition}: {e}", device=root_partition) from e
        self.root_partition = root_partition

        self.mounts.mount(self.mounts.add(root_partition, self.target_root, "ext4"))
        self._mount_boot()
        logger.info("ext4 root mounted at %s", self.target_root)

    def generate_fstab(self, boot_partition: str, root_partition: str) -> None:
        generate_fstab(self.target_root, only_sources=None, dry_run=self.dry_run)

    def extra_boot_options(self) -> str:
        root = self.root_partition or self.layout.root.path
        return f"root=PARTUUID={get_partuuid(root, dry_run=self.dry_run)} rw"

    def teardown(self) -> None:
        unmount(self.boot_target, dry_run=self.dry_run)
        unmount(self.target_root, dry_run=self.dry_run)

    def clean(self) -> None:
        for target in (self.boot_target, self.target_root):
            with tolerate(f"unmounting {target}"):
                unmount(target, dry_run=self.dry_run)
