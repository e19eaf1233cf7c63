from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import UserInputError

DEFAULT_MIRRORLIST_URL = "https://archlinux.org/mirrorlist/?country=US&protocol=https&use_mirror_status=on"

DEFAULT_ZFS_DATASETS = [
    "/home",
    "/var",
    "/var/log",
    "/var/log/journal",
    "/etc",
    "/data",
    "/docker",
]

DEFAULT_ADMIN_GROUPS = ["wheel", "uucp", "video", "audio", "storage", "games", "input"]

# zfs refuses shorter passphrase keys; LUKS gets the same floor.
MIN_PASSPHRASE_LENGTH = 8

# DMI product name (whitespace stripped) -> adjustments for that machine.
DEFAULT_QUIRKS: Dict[str, Dict[str, Any]] = {
    "XPS159560": {
        "packages": ["terminus-font"],
        "console_font": "ter-132n",
        "boot_options": "nouveau.modeset=0 acpi_rev_override=1",
    },
}


class FsMode(str, enum.Enum):
    EXT4 = "ext4"
    LVM_LUKS = "lvm-luks"
    ZFS = "zfs"

    @classmethod
    def parse(cls, value: str) -> "FsMode":
        v = (value or "").strip().lower()
        # "lvm" is accepted as shorthand
        if v == "lvm":
            v = cls.LVM_LUKS.value
        for mode in cls:
            if mode.value == v:
                return mode
        raise UserInputError(f"Unknown filesystem mode: {value!r} (expected ext4|lvm-luks|zfs)")

    @property
    def encrypted(self) -> bool:
        return self is not FsMode.EXT4


@dataclass(frozen=True)
class Tunables:
    """Defaults that drifted between revisions of the install scripts.

    Every property can be overridden from the ``tunables`` mapping of a
    preseed file.
    """

    raw: Dict[str, Any] = field(default_factory=dict)

    def _get(self, key: str, default: Any) -> Any:
        v = self.raw.get(key)
        return default if v is None else v

    @property
    def timezone(self) -> str:
        return str(self._get("timezone", "America/Los_Angeles"))

    @property
    def locale(self) -> str:
        return str(self._get("locale", "en_US.UTF-8"))

    @property
    def keymap(self) -> str:
        return str(self._get("keymap", "dvorak"))

    @property
    def kernels(self) -> List[str]:
        return [str(k) for k in self._get("kernels", ["linux", "linux-lts"])]

    @property
    def extra_packages(self) -> List[str]:
        return [
            str(p)
            for p in self._get(
                "extra_packages",
                ["git", "neovim", "networkmanager", "openssh", "sudo", "tmux"],
            )
        ]

    @property
    def esp_end(self) -> str:
        return str(self._get("esp_end", "2GiB"))

    @property
    def reserved_end(self) -> str:
        return str(self._get("reserved_end", "4GiB"))

    @property
    def root_wipe_blocks(self) -> int:
        return int(self._get("root_wipe_blocks", 20480))

    @property
    def admin_uid(self) -> int:
        return int(self._get("admin_uid", 1185))

    @property
    def admin_groups(self) -> List[str]:
        return [str(g) for g in self._get("admin_groups", DEFAULT_ADMIN_GROUPS)]

    @property
    def mirrorlist_url(self) -> str:
        return str(self._get("mirrorlist_url", DEFAULT_MIRRORLIST_URL))

    @property
    def mirror_count(self) -> int:
        return int(self._get("mirror_count", 5))

    @property
    def zfs_pool(self) -> str:
        return str(self._get("zfs_pool", "zroot"))

    @property
    def zfs_datasets(self) -> List[str]:
        seen: List[str] = []
        for p in self._get("zfs_datasets", DEFAULT_ZFS_DATASETS):
            p = "/" + str(p).strip("/")
            if p != "/" and p not in seen:
                seen.append(p)
        return seen

    @property
    def archzfs_server(self) -> str:
        return str(self._get("archzfs_server", "https://archzfs.com/$repo/x86_64"))

    @property
    def archzfs_key(self) -> str:
        return str(self._get("archzfs_key", "F75D9D76"))

    @property
    def keyserver(self) -> str:
        return str(self._get("keyserver", "keyserver.ubuntu.com"))

    @property
    def lvm_vg(self) -> str:
        return str(self._get("lvm_vg", "vg0"))

    @property
    def luks_mapper(self) -> str:
        return str(self._get("luks_mapper", "cryptlvm"))

    @property
    def lvm_root_threshold_gib(self) -> int:
        return int(self._get("lvm_root_threshold_gib", 100))

    @property
    def lvm_root_floor_gib(self) -> int:
        return int(self._get("lvm_root_floor_gib", 16))

    @property
    def lvm_root_percent(self) -> int:
        return int(self._get("lvm_root_percent", 20))

    @property
    def lvm_var_percent(self) -> int:
        return int(self._get("lvm_var_percent", 10))

    @property
    def lvm_home_percent(self) -> int:
        return int(self._get("lvm_home_percent", 40))

    @property
    def loader_timeout(self) -> int:
        return int(self._get("loader_timeout", 3))

    @property
    def quirks(self) -> Dict[str, Dict[str, Any]]:
        q = self._get("quirks", DEFAULT_QUIRKS)
        if not isinstance(q, dict):
            raise ValueError("tunables.quirks must be a mapping")
        return dict(q)


@dataclass(frozen=True)
class InstallConfig:
    """Everything the pipeline needs, resolved before the first destructive step."""

    device: str
    mode: FsMode
    hostname: str
    username: str
    password: str
    root_password: Optional[str] = None
    passphrase: Optional[str] = None
    wifi_ssid: Optional[str] = None
    wifi_password: Optional[str] = None
    keymap: str = "dvorak"
    clean: bool = False
    tunables: Tunables = field(default_factory=Tunables)

    @property
    def wifi(self) -> bool:
        return bool(self.wifi_ssid)

    @property
    def short_hostname(self) -> str:
        return self.hostname.split(".", 1)[0]

    def validate(self) -> "InstallConfig":
        for name in ("device", "hostname", "username", "password"):
            if not str(getattr(self, name) or "").strip():
                raise UserInputError(f"{name} cannot be empty")
        if self.mode.encrypted and not self.passphrase:
            raise UserInputError(f"passphrase is required for {self.mode.value}")
        if self.mode.encrypted and len(self.passphrase) < MIN_PASSPHRASE_LENGTH:
            raise UserInputError(f"passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters")
        if bool(self.wifi_ssid) != bool(self.wifi_password):
            raise UserInputError("wifi SSID and wifi password must be given together")
        if self.username == "root":
            raise UserInputError("admin username cannot be root")
        return self

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks.
        return (
            f"InstallConfig(device={self.device!r}, mode={self.mode.value!r}, "
            f"hostname={self.hostname!r}, username={self.username!r}, "
            f"wifi={self.wifi}, keymap={self.keymap!r}, clean={self.clean})"
        )


def load_preseed(path: str) -> Dict[str, Any]:
    """Read a YAML preseed file into a plain mapping."""

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)
    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("preseed file must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("preseed file must contain a mapping/object")

    tunables = raw.get("tunables")
    if tunables is not None and not isinstance(tunables, dict):
        raise ValueError("preseed.tunables must be a mapping")
    return raw


def flag_set(value: Optional[str]) -> bool:
    """Environment-style flag: any non-empty value turns it on."""
    return bool(value and value.strip())


def config_from_mapping(values: Mapping[str, Any]) -> InstallConfig:
    """Build and validate an InstallConfig from already-resolved values."""

    wifi = values.get("wifi") or {}
    return InstallConfig(
        device=str(values.get("device") or ""),
        mode=FsMode.parse(str(values.get("filesystem") or FsMode.ZFS.value)),
        hostname=str(values.get("hostname") or "").strip(),
        username=str(values.get("username") or "").strip(),
        password=str(values.get("password") or ""),
        root_password=values.get("root_password") or None,
        passphrase=values.get("passphrase") or None,
        wifi_ssid=(wifi.get("ssid") or None) if isinstance(wifi, dict) else None,
        wifi_password=(wifi.get("password") or None) if isinstance(wifi, dict) else None,
        keymap=str(values.get("keymap") or Tunables(values.get("tunables") or {}).keymap),
        clean=bool(values.get("clean", False)),
        tunables=Tunables(dict(values.get("tunables") or {})),
    ).validate()
