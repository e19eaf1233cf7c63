from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    efivars: str = "/sys/firmware/efi/efivars"
    host_zpool_cache: str = "/etc/zfs/zpool.cache"
    host_mirrorlist: str = "/etc/pacman.d/mirrorlist"
    dmi_product_name: str = "/sys/class/dmi/id/product_name"
    disk_by_id: str = "/dev/disk/by-id"
    log_dir: str = "."

    def target(self, rel: str) -> str:
        """Absolute host path of ``rel`` inside the target root."""
        rel = rel.strip("/")
        root = self.target_root.rstrip("/") or "/"
        if not rel:
            return root
        return f"{root.rstrip('/')}/{rel}"


PATHS = Paths()
