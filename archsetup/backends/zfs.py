from __future__ import annotations

import enum
import logging
import shutil
from pathlib import Path
from typing import List

from ..errors import FormatError, ToolInvocationError
from ..lib.command import run_cmd
from ..lib.fstab import generate_fstab
from ..lib.mounts import unmount
from ..lib.pkg import add_repo, pacman_install, trust_key
from .base import Backend, tolerate

logger = logging.getLogger(__name__)

# zfs must come before filesystems: the pool is unlocked and imported first.
ZFS_HOOKS = ["base", "udev", "keyboard", "keymap", "autodetect", "modconf", "block", "encrypt", "zfs", "filesystems"]

FIRST_BOOT_TEMPLATE = """#!/bin/bash

set -euo pipefail

echo "


!! WE WILL NOW PERFORM FIRST-BOOT CONFIGURATION OF THE ZFS SYSTEM !!
   DO NOT SKIP THIS OR YOUR SYSTEM WILL FAIL TO BOOT AGAIN

   If you don't have an internet connection, sort that out and then
   run './first-boot.sh'. Afterwards, remove the final line from
   .bashrc so this doesn't run again.


"

# Check for internet
ping -c 1 archlinux.org > /dev/null

sudo zpool set cachefile=/etc/zfs/zpool.cache {pool}
sudo systemctl enable zfs.target
sudo systemctl enable zfs-import-cache
sudo systemctl enable zfs-mount
sudo systemctl enable zfs-import.target
sudo zgenhostid $(hostid)
{mkinitcpio}

echo "


First run configuration has been completed. It's suggested that you restart
before proceeding to do anything else.

"
"""


class ZfsState(enum.IntEnum):
    UNINITIALIZED = 0
    POOL_CREATED = 1
    DATASETS_CREATED = 2
    EXPORTED = 3
    REIMPORTED_AT_TARGET = 4
    CACHE_FILE_COPIED = 5
    BOOT_MOUNTED = 6


class ZfsBackend(Backend):
    """Encrypted, compressed ZFS pool with one dataset per isolated path."""

    name = "zfs"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.pool = self.tunables.zfs_pool
        self.state = ZfsState.UNINITIALIZED

    @property
    def root_dataset(self) -> str:
        return f"{self.pool}/ROOT"

    @property
    def secrets_dataset(self) -> str:
        return f"{self.pool}/secrets"

    def expected_datasets(self) -> List[str]:
        return [
            self.root_dataset,
            *[f"{self.root_dataset}{p}" for p in self.tunables.zfs_datasets],
            self.secrets_dataset,
        ]

    @property
    def _key_input(self) -> str:
        return f"{self.config.passphrase}\n"

    def check_dependencies(self) -> None:
        self._require_modules(["zfs"])
        self._require_tools(["zpool", "zfs"])

    def _dataset_exists(self, dataset: str) -> bool:
        r = run_cmd(["zfs", "list", "-H", "-o", "name", dataset], check=False, dry_run=self.dry_run)
        return r.returncode == 0

    def _create_dataset(self, dataset: str, options: List[str], *, encrypted: bool = False) -> None:
        argv = ["zfs", "create", "-p"]
        for o in options:
            argv += ["-o", o]
        argv.append(dataset)
        r = run_cmd(
            argv,
            check=False,
            input_text=self._key_input if encrypted else None,
            dry_run=self.dry_run,
        )
        if r.returncode == 0:
            return
        # Creating a dataset whose mountpoint's parent is not mounted yet
        # leaves it created but unmounted; that is expected here.
        if self._dataset_exists(dataset):
            logger.info("Dataset %s created but not mounted yet", dataset)
            return
        raise ToolInvocationError(r.argv, r.returncode, r.stderr)

    def _verify_datasets(self) -> None:
        if self.dry_run:
            return
        r = run_cmd(["zfs", "list", "-H", "-o", "name", "-r", self.pool])
        present = set(r.stdout.split())
        missing = [d for d in self.expected_datasets() if d not in present]
        if missing:
            raise FormatError(f"Datasets missing after creation: {', '.join(missing)}")

    def _pool_imported(self) -> bool:
        r = run_cmd(["zpool", "list", "-H", "-o", "name", self.pool], check=False, dry_run=self.dry_run)
        return r.returncode == 0

    def format_and_mount_root(self, root_partition: str) -> None:
        try:
            self._create_pool(root_partition)
            self._create_datasets()
            self._export()
            self._reimport()
            self._copy_cache_file()
        except ToolInvocationError as e:
            raise FormatError(f"ZFS setup failed in state {self.state.name}: {e}", device=root_partition) from e

        self._mount_boot()
        self._advance(ZfsState.BOOT_MOUNTED)

    def _create_pool(self, root_partition: str) -> None:
        run_cmd(["zpool", "create", "-f", self.pool, "-m", "none", root_partition], dry_run=self.dry_run)
        self._advance(ZfsState.POOL_CREATED)

    def _create_datasets(self) -> None:
        self._create_dataset(
            self.root_dataset,
            ["atime=off", "compression=on", "mountpoint=/", "encryption=on", "keyformat=passphrase"],
            encrypted=True,
        )
        for path in self.tunables.zfs_datasets:
            self._create_dataset(f"{self.root_dataset}{path}", [f"mountpoint={path}"])

        # Manually mounted vault, never mounted at boot.
        self._create_dataset(
            self.secrets_dataset,
            ["canmount=noauto", "mountpoint=/secrets", "encryption=on", "keyformat=passphrase"],
            encrypted=True,
        )
        self._verify_datasets()
        self._advance(ZfsState.DATASETS_CREATED)

    def _export(self) -> None:
        run_cmd(["zfs", "unmount", "-a"], dry_run=self.dry_run)

        journal = f"{self.root_dataset}/var/log/journal"
        if "/var/log/journal" in self.tunables.zfs_datasets:
            run_cmd(["zfs", "set", "acltype=posixacl", journal], dry_run=self.dry_run)
            run_cmd(["zfs", "set", "xattr=sa", journal], dry_run=self.dry_run)

        run_cmd(["zpool", "set", f"bootfs={self.root_dataset}", self.pool], dry_run=self.dry_run)
        run_cmd(["zpool", "export", self.pool], dry_run=self.dry_run)
        self._advance(ZfsState.EXPORTED)

    def _reimport(self) -> None:
        # Importing by id swaps /dev/sdX references for stable ones.
        run_cmd(
            ["zpool", "import", "-l", "-d", self.paths.disk_by_id, "-R", self.target_root, self.pool],
            input_text=self._key_input * 2,
            dry_run=self.dry_run,
        )
        self._advance(ZfsState.REIMPORTED_AT_TARGET)

    def _copy_cache_file(self) -> None:
        cache = self.paths.host_zpool_cache
        run_cmd(["zpool", "set", f"cachefile={cache}", self.pool], dry_run=self.dry_run)
        dest = Path(self.paths.target("etc/zfs/zpool.cache"))
        if self.dry_run:
            logger.info("Would copy %s to %s", cache, str(dest))
        else:
            dest.parent.mkdir(parents=True, exist_ok=True)
            try:
                shutil.copy2(cache, dest)
            except OSError as e:
                raise FormatError(f"Could not copy pool cache file {cache}: {e}") from e
        self._advance(ZfsState.CACHE_FILE_COPIED)

    def generate_fstab(self, boot_partition: str, root_partition: str) -> None:
        # ZFS mounts its own datasets; only the ESP goes in fstab.
        generate_fstab(self.target_root, only_sources=[boot_partition], dry_run=self.dry_run)

    def initramfs_hooks(self) -> List[str]:
        return list(ZFS_HOOKS)

    def install_extra_packages(self) -> None:
        add_repo(self.target_root, "archzfs", self.tunables.archzfs_server, dry_run=self.dry_run)
        trust_key(self.target_root, self.tunables.archzfs_key, keyserver=self.tunables.keyserver, dry_run=self.dry_run)
        pacman_install(self.target_root, [f"zfs-{k}" for k in self.tunables.kernels], dry_run=self.dry_run)

    def extra_boot_options(self) -> str:
        # Mount root from the pool, prompting for the key like `zpool import -l`.
        return f"zfs={self.pool} rw"

    def first_boot_script(self) -> str:
        mkinitcpio = "\n".join(f"sudo mkinitcpio -p {k}" for k in self.tunables.kernels)
        return FIRST_BOOT_TEMPLATE.format(pool=self.pool, mkinitcpio=mkinitcpio)

    def teardown(self) -> None:
        unmount(self.boot_target, dry_run=self.dry_run)
        if not self._pool_imported():
            logger.info("Pool %s not imported, nothing to export", self.pool)
            return
        run_cmd(["zfs", "umount", "-a"], dry_run=self.dry_run)
        run_cmd(["zpool", "export", self.pool], dry_run=self.dry_run)

    def clean(self) -> None:
        with tolerate("unmounting boot"):
            unmount(self.boot_target, dry_run=self.dry_run)
        with tolerate("unmounting datasets"):
            run_cmd(["zfs", "umount", "-a"], dry_run=self.dry_run)
        if not self._pool_imported():
            with tolerate(f"importing {self.pool}"):
                run_cmd(["zpool", "import", "-N", "-f", self.pool], dry_run=self.dry_run)
        with tolerate(f"destroying {self.pool}"):
            run_cmd(["zpool", "destroy", "-f", self.pool], dry_run=self.dry_run)
