from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd
from ..lib.files import write_file

logger = logging.getLogger(__name__)

FIRST_BOOT = "first-boot.sh"

BASHRC_TRIGGER = (
    "# one-shot first-boot configuration; removes itself and this line\n"
    f"~/{FIRST_BOOT} && rm ~/{FIRST_BOOT} && sed -i '/first-boot/d' ~/.bashrc\n"
)


class FirstBootStep:
    step_id = "75_first_boot"

    def run(self, ctx: InstallCtx) -> None:
        user = ctx.config.username
        home = f"/home/{user}"

        script = ctx.backend.first_boot_script()
        if script:
            write_file(ctx.target_root, f"{home}/{FIRST_BOOT}", script, mode=0o755, dry_run=ctx.dry_run)
            write_file(ctx.target_root, f"{home}/.bashrc", BASHRC_TRIGGER, append=True, dry_run=ctx.dry_run)
            logger.info("Installed one-shot %s for %s", FIRST_BOOT, user)
        else:
            logger.info("Backend %s needs no first-boot script", ctx.backend.name)

        chroot_cmd(ctx.target_root, ["chown", "-R", f"{user}:", home], dry_run=ctx.dry_run)
