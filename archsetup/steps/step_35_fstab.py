from __future__ import annotations

from ..context import InstallCtx


class FstabStep:
    step_id = "35_fstab"

    def run(self, ctx: InstallCtx) -> None:
        ctx.backend.generate_fstab(ctx.layout.boot.path, ctx.layout.root.path)
