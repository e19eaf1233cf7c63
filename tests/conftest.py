"""
Pytest configuration and shared fixtures for archsetup tests.

External tools are never run: ``FakeSystem`` stands in for subprocess.run
and keeps just enough state (mounts, pools, volume groups, LUKS mappings)
for the backends to behave as they would on a live ISO.
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

from archsetup.install_config import config_from_mapping
from archsetup.lib.env import Paths

GIB = 1024 ** 3
MIB = 1024 ** 2


class FakeSystem:
    """Callable replacement for subprocess.run with a tiny model of the host."""

    def __init__(self, target_root: str) -> None:
        self.target_root = target_root
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        # target -> (source, fstype)
        self.mounted: Dict[str, Tuple[str, str]] = {}
        self.pools: Dict[str, Set[str]] = {}
        self.imported: Set[str] = set()
        self.vgs: Set[str] = set()
        self.mappers: Set[str] = set()
        self.sizes: Dict[str, int] = {}
        self.vg_bytes = 500 * GIB
        self.extent_bytes = 4 * MIB
        self.failures: Dict[Tuple[str, ...], Tuple[int, str]] = {}
        # datasets whose `zfs create` exits non-zero after creating them (unmountable)
        self.unmountable: Set[str] = set()

    # -- configuration ---------------------------------------------------

    def fail(self, *prefix: str, rc: int = 1, stderr: str = "boom") -> None:
        self.failures[tuple(prefix)] = (rc, stderr)

    # -- inspection ------------------------------------------------------

    def commands(self) -> List[str]:
        return [" ".join(c) for c in self.calls]

    def ran(self, *prefix: str) -> bool:
        return self.index(*prefix) >= 0

    def index(self, *prefix: str) -> int:
        for i, c in enumerate(self.calls):
            if tuple(c[: len(prefix)]) == prefix:
                return i
        return -1

    def input_for(self, *prefix: str) -> Optional[str]:
        i = self.index(*prefix)
        return self.inputs[i] if i >= 0 else None

    # -- subprocess.run ----------------------------------------------------

    def __call__(self, argv: Sequence[str], input: Optional[str] = None, **kwargs) -> subprocess.CompletedProcess:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input)

        for prefix, (rc, err) in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(argv, rc, "", err)

        handler = getattr(self, "_" + argv[0].replace("-", "_").replace(".", "_"), None)
        if handler is None:
            return self._result(argv)
        return handler(argv, input)

    @staticmethod
    def _result(argv: List[str], rc: int = 0, out: str = "", err: str = "") -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(argv, rc, out, err)

    @staticmethod
    def _key(path: str) -> str:
        return os.path.normpath(path)

    def _mountpoint(self, argv, _input):
        return self._result(argv, 0 if self._key(argv[-1]) in self.mounted else 32)

    def _mount(self, argv, _input):
        fstype = argv[argv.index("-t") + 1] if "-t" in argv else "vfat"
        self.mounted[self._key(argv[-1])] = (argv[-2], fstype)
        return self._result(argv)

    def _umount(self, argv, _input):
        if self.mounted.pop(self._key(argv[-1]), None) is None:
            return self._result(argv, 32, err="not mounted")
        return self._result(argv)

    def _blkid(self, argv, _input):
        kind = argv[argv.index("-s") + 1].lower()
        return self._result(argv, out=f"{kind}-{os.path.basename(argv[-1])}\n")

    def _blockdev(self, argv, _input):
        return self._result(argv, out=f"{self.sizes.get(argv[-1], 500 * GIB)}\n")

    def _curl(self, argv, _input):
        return self._result(argv, out="## United States\n#Server = https://a.example/$repo/os/$arch\n#Server = https://b.example/$repo/os/$arch\n")

    def _rankmirrors(self, argv, input_text):
        return self._result(argv, out=input_text or "")

    def _genfstab(self, argv, _input):
        root = self._key(argv[-1])
        out = []
        for target in sorted(self.mounted, key=len):
            if target != root and not target.startswith(root + "/"):
                continue
            source, fstype = self.mounted[target]
            mp = target[len(root):] or "/"
            spec = source if fstype == "zfs" else f"PARTUUID=partuuid-{os.path.basename(source)}"
            out.append(f"# {source}\n{spec}\t{mp}\t{fstype}\trw,relatime\t0 {1 if mp == '/' else 2}\n\n")
        return self._result(argv, out="".join(out))

    # LVM / LUKS

    def _cryptsetup(self, argv, _input):
        action = argv[1]
        if action == "open":
            self.mappers.add(argv[-1])
        elif action == "close":
            if argv[-1] not in self.mappers:
                return self._result(argv, 4, err="not active")
            self.mappers.discard(argv[-1])
        elif action == "status":
            return self._result(argv, 0 if argv[-1] in self.mappers else 4)
        return self._result(argv)

    def _vgcreate(self, argv, _input):
        self.vgs.add(argv[1])
        return self._result(argv)

    def _vgs(self, argv, _input):
        vg = argv[-1]
        if vg not in self.vgs:
            return self._result(argv, 5, err=f"Volume group \"{vg}\" not found")
        if "-o" in argv:
            return self._result(argv, out=f"  {self.vg_bytes} {self.extent_bytes}\n")
        return self._result(argv)

    # ZFS

    def _zpool(self, argv, _input):
        action, pool = argv[1], argv[-1]
        if action == "create":
            self.pools[argv[3]] = {argv[3]}
            self.imported.add(argv[3])
        elif action == "list":
            return self._result(argv, 0 if pool in self.imported else 1)
        elif action == "export":
            if pool not in self.imported:
                return self._result(argv, 1, err="no such pool")
            self.imported.discard(pool)
        elif action == "import":
            if pool not in self.pools:
                return self._result(argv, 1, err="no such pool available")
            self.imported.add(pool)
            if "-R" in argv and "-N" not in argv:
                altroot = argv[argv.index("-R") + 1]
                for d in sorted(self.pools[pool]):
                    prefix = f"{pool}/ROOT"
                    if d == prefix or d.startswith(prefix + "/"):
                        self.mounted[self._key(altroot + (d[len(prefix):] or "/"))] = (d, "zfs")
        elif action == "destroy":
            if pool not in self.pools:
                return self._result(argv, 1, err="no such pool")
            self.pools.pop(pool)
            self.imported.discard(pool)
        elif action == "set" and argv[2].startswith("cachefile="):
            cache = Path(argv[2].split("=", 1)[1])
            cache.parent.mkdir(parents=True, exist_ok=True)
            cache.write_bytes(b"zpool-cache")
        return self._result(argv)

    def _zfs(self, argv, _input):
        action = argv[1]
        if action == "create":
            dataset = argv[-1]
            self.pools.setdefault(dataset.split("/", 1)[0], set()).add(dataset)
            if dataset in self.unmountable:
                return self._result(argv, 1, err="filesystem successfully created, but not mounted")
        elif action == "list":
            name = argv[-1]
            datasets = self.pools.get(name.split("/", 1)[0], set())
            if "-r" in argv:
                return self._result(argv, out="".join(f"{d}\n" for d in sorted(datasets) if d.startswith(name)))
            return self._result(argv, 0 if name in datasets else 1)
        elif action in ("umount", "unmount") and "-a" in argv:
            for target in [t for t, (_s, fs) in self.mounted.items() if fs == "zfs"]:
                self.mounted.pop(target)
        return self._result(argv)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def paths(tmp_path) -> Paths:
    """Paths with every host location redirected under tmp_path."""
    root = tmp_path / "mnt"
    root.mkdir()
    efivars = tmp_path / "efivars"
    efivars.mkdir()
    dmi = tmp_path / "product_name"
    dmi.write_text("Generic PC\n")
    return Paths(
        target_root=str(root),
        efivars=str(efivars),
        host_zpool_cache=str(tmp_path / "host-zfs" / "zpool.cache"),
        host_mirrorlist=str(tmp_path / "mirrorlist"),
        dmi_product_name=str(dmi),
        disk_by_id="/dev/disk/by-id",
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def fake_system(paths, monkeypatch) -> FakeSystem:
    """Route every external command through a FakeSystem."""
    fs = FakeSystem(paths.target_root)
    monkeypatch.setattr("archsetup.lib.command.subprocess.run", fs)
    monkeypatch.setattr("archsetup.backends.base.shutil.which", lambda tool: f"/usr/bin/{tool}")
    monkeypatch.setattr("archsetup.steps.step_00_preflight.os.geteuid", lambda: 0)
    return fs


@pytest.fixture
def make_config():
    """Factory for validated InstallConfig objects with sensible answers."""

    def _make(**overrides):
        values = {
            "device": "/dev/sda",
            "filesystem": "ext4",
            "hostname": "h1",
            "username": "alice",
            "password": "alice-pw",
            "passphrase": "correct horse battery staple",
            "wifi": None,
        }
        values.update(overrides)
        return config_from_mapping(values)

    return _make
