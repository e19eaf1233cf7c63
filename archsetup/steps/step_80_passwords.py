from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd

logger = logging.getLogger(__name__)


class PasswordsStep:
    step_id = "80_passwords"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config

        chroot_cmd(ctx.target_root, ["chpasswd"], input_text=f"{cfg.username}:{cfg.password}\n", dry_run=ctx.dry_run)

        if cfg.root_password:
            chroot_cmd(ctx.target_root, ["chpasswd"], input_text=f"root:{cfg.root_password}\n", dry_run=ctx.dry_run)
            logger.info("Set passwords for %s and root", cfg.username)
        else:
            # wheel has sudo; no root password means no root login.
            chroot_cmd(ctx.target_root, ["passwd", "--lock", "root"], dry_run=ctx.dry_run)
            logger.info("Set password for %s, root account locked", cfg.username)
