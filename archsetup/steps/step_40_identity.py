from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd
from ..lib.files import write_file

logger = logging.getLogger(__name__)


def render_hosts(hostname: str, short: str) -> str:
    return "\n".join(
        [
            "127.0.0.1 localhost",
            "::1       localhost",
            f"::1       {hostname} {short}",
            f"127.0.1.1\t{hostname} {short}",
            "",
        ]
    )


class IdentityStep:
    step_id = "40_identity"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        root = ctx.target_root

        write_file(root, "/etc/hostname", cfg.hostname + "\n", dry_run=ctx.dry_run)
        write_file(root, "/etc/hosts", render_hosts(cfg.hostname, cfg.short_hostname), dry_run=ctx.dry_run)

        tz = cfg.tunables.timezone
        chroot_cmd(root, ["ln", "-sf", f"/usr/share/zoneinfo/{tz}", "/etc/localtime"], dry_run=ctx.dry_run)
        chroot_cmd(root, ["hwclock", "--systohc"], dry_run=ctx.dry_run)

        logger.info("Configured hostname=%s timezone=%s", cfg.hostname, tz)
