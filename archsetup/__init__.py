"""Arch Linux disk installer (Python-first, step-driven).

Core design goals:
- One immutable configuration collected before anything destructive happens
- Interchangeable root-storage backends (ext4, LVM-on-LUKS, encrypted ZFS)
- Strictly ordered steps, abort on first error
- Clean mode to recover from a half-finished run
- Centralized logging
"""

__all__ = []
