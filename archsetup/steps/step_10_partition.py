from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.storage import partition_disk

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "10_partition"

    def run(self, ctx: InstallCtx) -> None:
        partition_disk(
            layout=ctx.layout,
            wipe_blocks=ctx.config.tunables.root_wipe_blocks,
            dry_run=ctx.dry_run,
        )
