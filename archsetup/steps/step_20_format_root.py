from __future__ import annotations

import logging

from ..context import InstallCtx

logger = logging.getLogger(__name__)


class FormatRootStep:
    step_id = "20_format_root"

    def run(self, ctx: InstallCtx) -> None:
        ctx.backend.format_and_mount_root(ctx.layout.root.path)
        logger.info("Root storage ready (backend=%s, target_root=%s)", ctx.backend.name, ctx.target_root)
