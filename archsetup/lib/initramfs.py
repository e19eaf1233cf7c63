from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

_HOOKS_LINE = re.compile(r"^HOOKS.*$", re.MULTILINE)


def render_hooks(hooks: Sequence[str]) -> str:
    return f"HOOKS=({' '.join(hooks)})"


def splice_hooks(conf_text: str, hooks: Sequence[str]) -> str:
    """Replace the HOOKS=(...) line of a mkinitcpio.conf, appending it if absent."""

    line = render_hooks(hooks)
    if _HOOKS_LINE.search(conf_text):
        return _HOOKS_LINE.sub(lambda _m: line, conf_text, count=1)
    if conf_text and not conf_text.endswith("\n"):
        conf_text += "\n"
    return conf_text + line + "\n"


def write_hooks(target_root: str, hooks: Sequence[str], *, dry_run: bool = False) -> bool:
    """Splice ``hooks`` into <target_root>/etc/mkinitcpio.conf.

    An empty hook list leaves the file alone. Returns True if it was changed.
    """

    if not hooks:
        logger.info("No initramfs hook changes requested")
        return False

    conf = Path(target_root) / "etc/mkinitcpio.conf"
    if dry_run:
        logger.info("Would set %s in %s", render_hooks(hooks), str(conf))
        return True

    text = conf.read_text(encoding="utf-8") if conf.exists() else ""
    conf.parent.mkdir(parents=True, exist_ok=True)
    conf.write_text(splice_hooks(text, hooks), encoding="utf-8")
    logger.info("Set %s", render_hooks(hooks))
    return True
