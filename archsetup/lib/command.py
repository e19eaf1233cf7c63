from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import ToolInvocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command, never ``input_text`` (it carries passphrases).
    - Captures stdout/stderr; they are logged at DEBUG (stderr of a failing
      checked command at WARNING).
    - dry_run logs but does not execute and reports success.
    - check=True raises ToolInvocationError on a non-zero exit.
    """

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        raise ToolInvocationError(argv_list, 127, f"{argv_list[0]}: command not found") from e

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    failed = check and p.returncode != 0
    if p.stderr:
        # stderr of a fatal command also belongs in stderr.log
        logger.log(logging.WARNING if failed else logging.DEBUG, "STDERR %s", p.stderr.strip())

    if failed:
        raise ToolInvocationError(argv_list, p.returncode, p.stderr or "")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")
