from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.pkg import base_packages, pacstrap

logger = logging.getLogger(__name__)


class BootstrapStep:
    step_id = "30_bootstrap"

    def run(self, ctx: InstallCtx) -> None:
        packages = base_packages(ctx.config.tunables)
        pacstrap(ctx.target_root, packages, dry_run=ctx.dry_run)
        logger.info("Bootstrapped %d packages into %s", len(packages), ctx.target_root)
