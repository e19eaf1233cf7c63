from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..errors import MountError, ToolInvocationError
from .block import is_mounted
from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MountBinding:
    source: str
    target: str
    fstype: Optional[str] = None


class MountPlan:
    """Ordered mounts under the target root.

    Bindings mount in insertion order and unmount in reverse. The boot
    partition is nested under the root mount, so it must be added last.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._bindings: List[MountBinding] = []

    def add(self, source: str, target: str, fstype: Optional[str] = None) -> MountBinding:
        b = MountBinding(source=source, target=target, fstype=fstype)
        self._bindings.append(b)
        return b

    def mount(self, b: MountBinding) -> None:
        if not self.dry_run:
            Path(b.target).mkdir(parents=True, exist_ok=True)
        argv = ["mount"]
        if b.fstype:
            argv += ["-t", b.fstype]
        argv += [b.source, b.target]
        try:
            run_cmd(argv, dry_run=self.dry_run)
        except ToolInvocationError as e:
            raise MountError(f"Failed to mount {b.source} on {b.target}: {e}", target=b.target) from e

    def mount_all(self) -> None:
        for b in self._bindings:
            self.mount(b)

    def unmount_all(self) -> None:
        """Unmount whatever of the plan is currently mounted, innermost first.

        Safe to call repeatedly and when nothing is mounted.
        """

        for b in reversed(self._bindings):
            unmount(b.target, dry_run=self.dry_run)


def unmount(target: str, *, dry_run: bool = False) -> bool:
    """Unmount ``target`` if it is a mountpoint. Returns True if it unmounted."""

    if not is_mounted(target, dry_run=dry_run):
        logger.debug("Not mounted, skipping: %s", target)
        return False
    try:
        run_cmd(["umount", target], dry_run=dry_run)
    except ToolInvocationError as e:
        raise MountError(f"Failed to unmount {target}: {e}", target=target) from e
    return True
