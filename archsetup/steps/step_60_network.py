from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.net import write_wifi_profile

logger = logging.getLogger(__name__)


class NetworkStep:
    step_id = "60_network"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        if not cfg.wifi:
            logger.info("No wifi network configured")
            return
        write_wifi_profile(ctx.target_root, cfg.wifi_ssid or "", cfg.wifi_password or "", dry_run=ctx.dry_run)
