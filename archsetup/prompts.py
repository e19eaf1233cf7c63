"""Interactive prompts for whatever the command line and preseed left open.

Prompting happens before the first destructive step, so cancelling a
dialog aborts the run with nothing changed on disk.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import PreconditionError, UserInputError
from .install_config import FsMode, InstallConfig, config_from_mapping
from .lib.block import DiskInfo, list_disks

logger = logging.getLogger(__name__)


def _clear_screen() -> None:
    try:
        subprocess.run(["clear"], check=False)
    except FileNotFoundError:
        logger.debug("clear not available, leaving dialog output on screen")


class DialogPrompter:
    """Ask questions with dialog(1).

    Answers come back on stdout (``--stdout``) and are never logged.
    """

    def __init__(self, binary: str = "dialog") -> None:
        self.binary = binary

    def _run(self, args: Sequence[str], *, capture: bool = False) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                [self.binary, *args],
                text=True,
                stdout=subprocess.PIPE if capture else None,
            )
        except FileNotFoundError as e:
            raise PreconditionError(f"{self.binary} is required for interactive mode") from e
        finally:
            _clear_screen()

    def _dialog(self, args: Sequence[str], what: str) -> str:
        p = self._run(["--stdout", *args], capture=True)
        if p.returncode != 0:
            raise UserInputError(f"Cancelled: {what}")
        return p.stdout.strip()

    def input(self, title: str) -> str:
        return self._dialog(["--inputbox", title, "0", "0"], title)

    def password(self, title: str) -> str:
        return self._dialog(["--insecure", "--passwordbox", title, "0", "0"], title)

    def menu(self, title: str, items: Sequence[Tuple[str, str]]) -> str:
        args = ["--menu", title, "0", "0", "0"]
        for tag, label in items:
            args += [tag, label]
        return self._dialog(args, title)

    def yesno(self, title: str) -> bool:
        p = self._run(["--yesno", title, "0", "0"])
        # 0 yes, 1 no, 255 escape
        if p.returncode == 255:
            raise UserInputError(f"Cancelled: {title}")
        return p.returncode == 0


def _required(value: str, what: str) -> str:
    if not value.strip():
        raise UserInputError(f"{what} cannot be empty")
    return value


def ask_confirmed(prompter: Any, what: str) -> str:
    """Ask for a secret twice; a mismatch is fatal."""

    first = _required(prompter.password(f"Enter {what}"), what)
    second = prompter.password(f"Confirm {what}")
    if first != second:
        raise UserInputError(f"{what} confirmation does not match")
    return first


def collect_config(
    values: Mapping[str, Any],
    prompter: Any,
    *,
    disks: Optional[Callable[[], List[DiskInfo]]] = None,
) -> InstallConfig:
    """Prompt for every value still missing from ``values`` and validate the result."""

    v: Dict[str, Any] = dict(values)
    mode = FsMode.parse(str(v.get("filesystem") or FsMode.ZFS.value))
    v["filesystem"] = mode.value

    if not v.get("device"):
        found = (disks or list_disks)()
        if not found:
            raise PreconditionError("No installable disks found")
        v["device"] = prompter.menu("Select installation disk", [(d.path, d.size) for d in found])

    if not v.get("hostname"):
        v["hostname"] = _required(prompter.input("Enter hostname"), "hostname")

    if not v.get("username"):
        v["username"] = _required(prompter.input("Enter admin username"), "username")

    if not v.get("password"):
        v["password"] = ask_confirmed(prompter, f"password for {v['username']}")

    if mode.encrypted and not v.get("passphrase"):
        v["passphrase"] = ask_confirmed(prompter, "disk encryption passphrase")

    # An explicit `wifi:` key in the preseed (even empty) means "don't ask".
    # `--wifi` leaves True here: ask for the network, skip the question.
    if "wifi" not in v or v["wifi"] is True:
        if v.get("wifi") is True or prompter.yesno("Configure wifi for target system?"):
            ssid = _required(prompter.input("Enter wifi SSID"), "wifi SSID")
            v["wifi"] = {
                "ssid": ssid,
                "password": _required(prompter.password("Enter wifi password"), "wifi password"),
            }
        else:
            v["wifi"] = None

    config = config_from_mapping(v)
    logger.info("Resolved %r", config)
    return config
