"""Installer exceptions.

Hierarchy:
    InstallerError (base)
        ├── PreconditionError
        │   └── DependencyError
        ├── UserInputError
        ├── ToolInvocationError
        ├── MountError
        └── FormatError

Every one of them is fatal to the pipeline. ``main`` turns them into a
non-zero exit status.
"""

from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base exception for all installer failures."""


class PreconditionError(InstallerError):
    """The live environment is not fit to run the installer."""


class DependencyError(PreconditionError):
    """A kernel module or tool required by a backend is missing."""

    def __init__(self, what: str, reason: str = ""):
        self.what = what
        self.reason = reason
        msg = f"Missing dependency: {what}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class UserInputError(InstallerError):
    """A required value was empty, did not match, or the prompt was cancelled."""


class ToolInvocationError(InstallerError):
    """An external command exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr and stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class MountError(InstallerError):
    """Mounting or unmounting failed."""

    def __init__(self, message: str, target: str | None = None):
        self.target = target
        super().__init__(message)


class FormatError(InstallerError):
    """Creating a filesystem, pool, volume or container failed."""

    def __init__(self, message: str, device: str | None = None):
        self.device = device
        super().__init__(message)
