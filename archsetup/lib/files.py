from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def write_file(
    root: str,
    rel: str,
    contents: str,
    *,
    append: bool = False,
    mode: Optional[int] = None,
    dry_run: bool = False,
) -> Path:
    """Write (or append to) a file below ``root``."""

    p = Path(root) / rel.lstrip("/")
    if dry_run:
        logger.info("Would %s %s", "append to" if append else "write", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a" if append else "w", encoding="utf-8") as f:
        f.write(contents)
    if mode is not None:
        os.chmod(p, mode)
    return p


def read_file(root: str, rel: str) -> str:
    p = Path(root) / rel.lstrip("/")
    return p.read_text(encoding="utf-8") if p.exists() else ""
