from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd
from ..lib.files import read_file, write_file

logger = logging.getLogger(__name__)

WHEEL_SUDOERS = "%wheel ALL=(ALL) ALL"


class UsersStep:
    step_id = "70_users"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        t = cfg.tunables

        chroot_cmd(
            ctx.target_root,
            ["useradd", "-mU", "--uid", str(t.admin_uid), "-G", ",".join(t.admin_groups), cfg.username],
            dry_run=ctx.dry_run,
        )

        sudoers = read_file(ctx.target_root, "/etc/sudoers")
        if WHEEL_SUDOERS not in sudoers.splitlines():
            prefix = "" if not sudoers or sudoers.endswith("\n") else "\n"
            write_file(ctx.target_root, "/etc/sudoers", f"{prefix}{WHEEL_SUDOERS}\n", append=True, dry_run=ctx.dry_run)

        logger.info("Created admin user %s (uid=%s groups=%s)", cfg.username, t.admin_uid, ",".join(t.admin_groups))
