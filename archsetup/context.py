from __future__ import annotations

from dataclasses import dataclass

from .backends import Backend, select_backend
from .install_config import InstallConfig
from .lib.env import Paths
from .lib.storage import DiskLayout, plan_layout


@dataclass(frozen=True)
class InstallCtx:
    """What every step gets: the config, where things live, and the backend."""

    config: InstallConfig
    paths: Paths
    layout: DiskLayout
    backend: Backend
    dry_run: bool = False

    @property
    def target_root(self) -> str:
        return self.paths.target_root


def build_ctx(config: InstallConfig, paths: Paths, *, dry_run: bool = False) -> InstallCtx:
    layout = plan_layout(config.device, config.tunables)
    backend = select_backend(config, layout, paths, dry_run=dry_run)
    return InstallCtx(config=config, paths=paths, layout=layout, backend=backend, dry_run=dry_run)
