from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.bootloader import write_loader_entries
from ..lib.files import write_file
from ..lib.hwdetect import detect_quirk
from ..lib.pkg import pacman_install

logger = logging.getLogger(__name__)


class BootEntriesStep:
    step_id = "65_boot_entries"

    def run(self, ctx: InstallCtx) -> None:
        t = ctx.config.tunables
        options = [ctx.backend.extra_boot_options()]

        quirk = detect_quirk(t.quirks, dmi_product_name=ctx.paths.dmi_product_name)
        if quirk:
            pacman_install(ctx.target_root, quirk.packages, dry_run=ctx.dry_run)
            if quirk.console_font:
                write_file(
                    ctx.target_root,
                    "/etc/vconsole.conf",
                    f"FONT={quirk.console_font}\n",
                    append=True,
                    dry_run=ctx.dry_run,
                )
            options.append(quirk.boot_options)

        write_loader_entries(
            target_root=ctx.target_root,
            kernels=t.kernels,
            options=" ".join(o for o in options if o),
            timeout=t.loader_timeout,
            dry_run=ctx.dry_run,
        )
