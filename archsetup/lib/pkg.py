from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from ..install_config import Tunables
from .chroot import chroot_cmd
from .command import run_cmd

logger = logging.getLogger(__name__)

PACMAN_FLAGS = ["-Sy", "--needed", "--noconfirm"]


def base_packages(tunables: Tunables) -> List[str]:
    """Package set handed to pacstrap: base, each kernel with headers, firmware, extras."""

    pkgs = ["base"]
    for k in tunables.kernels:
        pkgs += [k, f"{k}-headers"]
    pkgs.append("linux-firmware")
    for p in tunables.extra_packages:
        if p not in pkgs:
            pkgs.append(p)
    return pkgs


def host_install(packages: Sequence[str], *, dry_run: bool = False) -> None:
    """Install packages into the live environment."""
    if not packages:
        return
    run_cmd(["pacman", *PACMAN_FLAGS, *packages], dry_run=dry_run)


def pacstrap(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    run_cmd(["pacstrap", target_root, *packages], dry_run=dry_run)


def pacman_install(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    chroot_cmd(target_root, ["pacman", *PACMAN_FLAGS, *packages], dry_run=dry_run)


def add_repo(target_root: str, name: str, server: str, *, dry_run: bool = False) -> bool:
    """Append a [name] repository section to the target pacman.conf (once)."""

    conf = Path(target_root) / "etc/pacman.conf"
    section = f"[{name}]"
    if dry_run:
        logger.info("Would add %s to %s", section, str(conf))
        return True

    text = conf.read_text(encoding="utf-8") if conf.exists() else ""
    if any(line.strip() == section for line in text.splitlines()):
        logger.info("Repository %s already configured", section)
        return False

    conf.parent.mkdir(parents=True, exist_ok=True)
    with conf.open("a", encoding="utf-8") as f:
        if text and not text.endswith("\n"):
            f.write("\n")
        f.write(f"{section}\nServer = {server}\n")
    logger.info("Configured repository %s (%s)", section, server)
    return True


def trust_key(target_root: str, key_id: str, *, keyserver: str, dry_run: bool = False) -> None:
    """Receive and locally sign a repository signing key inside the target."""

    chroot_cmd(target_root, ["pacman-key", "--recv-keys", key_id, "--keyserver", keyserver], dry_run=dry_run)
    chroot_cmd(target_root, ["pacman-key", "--lsign-key", key_id], dry_run=dry_run)


def prepare_mirrorlist(text: str) -> str:
    """Uncomment every Server line and drop all other comments."""

    lines = []
    for line in text.splitlines():
        if line.startswith("#Server"):
            line = line[1:]
        if line.startswith("#"):
            continue
        lines.append(line)
    return "\n".join(lines) + "\n"


def rank_mirrors(
    *,
    url: str,
    count: int,
    mirrorlist_path: str,
    dry_run: bool = False,
) -> None:
    """Replace the live environment's mirrorlist with the ``count`` fastest mirrors."""

    logger.info("Updating mirror list")
    fetched = run_cmd(["curl", "-s", url], dry_run=dry_run)
    ranked = run_cmd(
        ["rankmirrors", "-n", str(count), "-"],
        input_text=prepare_mirrorlist(fetched.stdout),
        dry_run=dry_run,
    )
    if dry_run:
        logger.info("Would write %s", mirrorlist_path)
        return
    p = Path(mirrorlist_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(ranked.stdout, encoding="utf-8")
