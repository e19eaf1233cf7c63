from __future__ import annotations

import logging

from ..context import InstallCtx

logger = logging.getLogger(__name__)


class TeardownStep:
    step_id = "90_teardown"

    def run(self, ctx: InstallCtx) -> None:
        ctx.backend.teardown()
        logger.info(
            "Installation complete! You may now reboot, or re-run in clean mode to start over."
        )
