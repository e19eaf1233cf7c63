from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd
from ..lib.initramfs import write_hooks

logger = logging.getLogger(__name__)


class InitramfsStep:
    step_id = "50_initramfs"

    def run(self, ctx: InstallCtx) -> None:
        changed = write_hooks(ctx.target_root, ctx.backend.initramfs_hooks(), dry_run=ctx.dry_run)

        ctx.backend.install_extra_packages()

        if changed:
            chroot_cmd(ctx.target_root, ["mkinitcpio", "-P"], dry_run=ctx.dry_run)
