from __future__ import annotations

import logging
import os

from ..context import InstallCtx
from ..errors import PreconditionError
from ..lib.command import run_cmd
from ..lib.firmware import require_efi_boot
from ..lib.pkg import host_install, rank_mirrors

logger = logging.getLogger(__name__)


def require_root(*, dry_run: bool = False) -> None:
    if dry_run:
        return
    if os.geteuid() != 0:
        raise PreconditionError("The installer must run as root")


class PreflightStep:
    step_id = "00_preflight"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        t = cfg.tunables

        require_root(dry_run=ctx.dry_run)
        require_efi_boot(ctx.paths.efivars)
        ctx.backend.check_dependencies()

        if cfg.clean:
            logger.info("Clean mode: removing leftovers of a previous %s run", ctx.backend.name)
            ctx.backend.clean()

        host_install(["pacman-contrib"], dry_run=ctx.dry_run)

        # A clean run is a retry; the mirror list was already ranked.
        if cfg.clean:
            logger.info("Clean mode: keeping current mirror list")
        else:
            rank_mirrors(
                url=t.mirrorlist_url,
                count=t.mirror_count,
                mirrorlist_path=ctx.paths.host_mirrorlist,
                dry_run=ctx.dry_run,
            )

        run_cmd(["timedatectl", "set-ntp", "true"], dry_run=ctx.dry_run)
