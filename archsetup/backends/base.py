from __future__ import annotations

import abc
import enum
import logging
import shutil
from contextlib import contextmanager
from typing import Iterator, List, Sequence

from ..errors import DependencyError, InstallerError, MountError, ToolInvocationError
from ..install_config import InstallConfig
from ..lib.command import run_cmd
from ..lib.env import Paths
from ..lib.mounts import MountPlan
from ..lib.storage import DiskLayout

logger = logging.getLogger(__name__)


@contextmanager
def tolerate(what: str) -> Iterator[None]:
    """Swallow tool and mount failures, for clean-mode teardown only."""

    try:
        yield
    except (ToolInvocationError, MountError) as e:
        logger.warning("Ignoring failure while %s: %s", what, e)


class Backend(abc.ABC):
    """Root-storage backend driven by the pipeline.

    One instance lives for one install run and accumulates whatever state
    its storage stack needs (pool, volume group, mapper name...).
    """

    name: str = ""

    def __init__(self, config: InstallConfig, layout: DiskLayout, paths: Paths, *, dry_run: bool = False) -> None:
        self.config = config
        self.tunables = config.tunables
        self.layout = layout
        self.paths = paths
        self.dry_run = dry_run
        self.mounts = MountPlan(dry_run=dry_run)

    @property
    def target_root(self) -> str:
        return self.paths.target_root

    @property
    def boot_target(self) -> str:
        return self.paths.target("boot")

    def _require_modules(self, modules: Sequence[str]) -> None:
        for m in modules:
            r = run_cmd(["modprobe", m], check=False, dry_run=self.dry_run)
            if r.returncode != 0:
                raise DependencyError(f"kernel module {m}", (r.stderr or "").strip())

    def _require_tools(self, tools: Sequence[str]) -> None:
        if self.dry_run:
            return
        for t in tools:
            if shutil.which(t) is None:
                raise DependencyError(t, "not found on PATH")

    def _advance(self, state: enum.IntEnum) -> None:
        """Move the backend state machine forward; transitions are one-way."""

        current = getattr(self, "state", None)
        if current is not None and state <= current:
            raise InstallerError(f"{self.name} backend cannot go from {current.name} to {state.name}")
        logger.info("%s %s -> %s", self.name, getattr(current, "name", None), state.name)
        self.state = state

    def _mount_boot(self) -> None:
        # Nested under the root mount: always the last binding.
        self.mounts.mount(self.mounts.add(self.layout.boot.path, self.boot_target))

    @abc.abstractmethod
    def check_dependencies(self) -> None:
        ...

    @abc.abstractmethod
    def format_and_mount_root(self, root_partition: str) -> None:
        ...

    @abc.abstractmethod
    def generate_fstab(self, boot_partition: str, root_partition: str) -> None:
        ...

    def initramfs_hooks(self) -> List[str]:
        return []

    def install_extra_packages(self) -> None:
        return None

    def extra_boot_options(self) -> str:
        return ""

    def first_boot_script(self) -> str:
        return ""

    @abc.abstractmethod
    def teardown(self) -> None:
        ...

    @abc.abstractmethod
    def clean(self) -> None:
        """Clean mode: tear down leftovers of an earlier run.

        Every stage runs under its own ``tolerate`` so one failure does not
        leave later stages undone.
        """
