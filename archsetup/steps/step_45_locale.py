from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.chroot import chroot_cmd
from ..lib.files import write_file

logger = logging.getLogger(__name__)


def locale_gen_line(locale: str) -> str:
    """en_US.UTF-8 -> "en_US.UTF-8 UTF-8"; a locale without charset is ISO-8859-1."""

    charset = locale.split(".", 1)[1] if "." in locale else "ISO-8859-1"
    return f"{locale} {charset}"


class LocaleStep:
    step_id = "45_locale"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        root = ctx.target_root
        locale = cfg.tunables.locale

        # Locale before the backend's packages so the rebuilt initramfs picks it up.
        write_file(root, "/etc/locale.gen", locale_gen_line(locale) + "\n", dry_run=ctx.dry_run)
        chroot_cmd(root, ["locale-gen"], dry_run=ctx.dry_run)
        write_file(root, "/etc/locale.conf", f"LANG={locale}\n", dry_run=ctx.dry_run)

        # Rewritten from scratch; hardware quirks may append a FONT= line later.
        write_file(root, "/etc/vconsole.conf", f"KEYMAP={cfg.keymap}\n", dry_run=ctx.dry_run)

        logger.info("Configured locale=%s keymap=%s", locale, cfg.keymap)
