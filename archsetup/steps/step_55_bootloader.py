from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.bootloader import install_systemd_boot
from ..lib.chroot import chroot_cmd

logger = logging.getLogger(__name__)

SERVICES = ["sshd", "NetworkManager.service", "systemd-timesyncd.service"]


class BootloaderStep:
    step_id = "55_bootloader"

    def run(self, ctx: InstallCtx) -> None:
        install_systemd_boot(target_root=ctx.target_root, dry_run=ctx.dry_run)

        for unit in SERVICES:
            chroot_cmd(ctx.target_root, ["systemctl", "enable", unit], dry_run=ctx.dry_run)
        logger.info("Enabled %s", ", ".join(SERVICES))
