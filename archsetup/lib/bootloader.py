from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .chroot import chroot_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootEntry:
    entry_id: str
    title: str
    linux: str
    initrd: str
    options: str

    def render(self) -> str:
        return (
            f"title    {self.title}\n"
            f"linux    {self.linux}\n"
            f"initrd   {self.initrd}\n"
            f"options  {self.options}\n"
        )


def entry_for_kernel(kernel: str, options: str) -> BootEntry:
    """linux -> arch.conf "Arch Linux"; linux-lts -> arch-lts.conf "Arch Linux LTS"."""

    flavour = kernel[len("linux-"):] if kernel.startswith("linux-") else ""
    return BootEntry(
        entry_id=f"arch-{flavour}" if flavour else "arch",
        title=f"Arch Linux {flavour.upper()}" if flavour else "Arch Linux",
        linux=f"/vmlinuz-{kernel}",
        initrd=f"/initramfs-{kernel}.img",
        options=options,
    )


def install_systemd_boot(*, target_root: str, dry_run: bool = False) -> None:
    """Install systemd-boot onto the ESP mounted at <target_root>/boot."""

    chroot_cmd(target_root, ["bootctl", "install"], dry_run=dry_run)
    logger.info("systemd-boot installed")


def write_loader_entries(
    *,
    target_root: str,
    kernels: Sequence[str],
    options: str,
    timeout: int = 3,
    dry_run: bool = False,
) -> List[BootEntry]:
    """Write loader.conf and one entry per kernel. The first kernel is the default."""

    entries = [entry_for_kernel(k, options) for k in kernels]
    loader_dir = Path(target_root) / "boot/loader"
    default = entries[0].entry_id if entries else "arch"
    loader_conf = f"default {default}\ntimeout {timeout}\n"

    if dry_run:
        logger.info("Would write %s with %d entries", str(loader_dir), len(entries))
        return entries

    (loader_dir / "entries").mkdir(parents=True, exist_ok=True)
    (loader_dir / "loader.conf").write_text(loader_conf, encoding="utf-8")
    for e in entries:
        p = loader_dir / "entries" / f"{e.entry_id}.conf"
        p.write_text(e.render(), encoding="utf-8")
        logger.info("Wrote boot entry: %s", str(p))
    return entries
