from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

FSTAB_HEADER = "# Static information about the filesystems.\n# See fstab(5) for details.\n\n# <file system> <dir> <type> <options> <dump> <pass>\n"


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0
    # Device the entry was generated from (genfstab's "# /dev/sdX1" line).
    source: Optional[str] = None


def parse_fstab(text: str) -> List[FstabEntry]:
    """Parse fstab text as emitted by genfstab."""

    entries: List[FstabEntry] = []
    source: Optional[str] = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            source = None
            continue
        if line.startswith("#"):
            words = line.lstrip("#").split()
            source = words[0] if words and words[0].startswith("/") else None
            continue
        fields = line.split()
        if len(fields) < 4:
            logger.debug("Ignoring malformed fstab line: %s", line)
            continue
        entries.append(
            FstabEntry(
                spec=fields[0],
                mountpoint=fields[1],
                fstype=fields[2],
                options=fields[3],
                dump=int(fields[4]) if len(fields) > 4 else 0,
                passno=int(fields[5]) if len(fields) > 5 else 0,
                source=source,
            )
        )
        source = None
    return entries


def render_fstab(entries: Iterable[FstabEntry]) -> str:
    out = [FSTAB_HEADER]
    for e in entries:
        if e.source:
            out.append(f"# {e.source}\n")
        out.append(f"{e.spec}\t{e.mountpoint}\t{e.fstype}\t{e.options}\t{e.dump} {e.passno}\n\n")
    return "".join(out)


def generate_fstab(
    target_root: str,
    *,
    only_sources: Optional[Iterable[str]] = None,
    dry_run: bool = False,
) -> List[FstabEntry]:
    """Write <target_root>/etc/fstab from what is currently mounted there.

    With ``only_sources`` the table is restricted to entries generated from
    those devices (ZFS mounts its own datasets and must not appear).
    """

    r = run_cmd(["genfstab", "-t", "PARTUUID", target_root], dry_run=dry_run)
    entries = parse_fstab(r.stdout)
    if only_sources is not None:
        keep = set(only_sources)
        entries = [e for e in entries if e.source in keep]

    fstab_path = Path(target_root) / "etc/fstab"
    if dry_run:
        logger.info("Would write %s", str(fstab_path))
    else:
        fstab_path.parent.mkdir(parents=True, exist_ok=True)
        fstab_path.write_text(render_fstab(entries), encoding="utf-8")

    logger.info("Wrote fstab with %d entries: %s", len(entries), ", ".join(e.mountpoint for e in entries))
    return entries
