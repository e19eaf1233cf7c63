from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from .context import build_ctx
from .errors import InstallerError, ToolInvocationError, UserInputError
from .install_config import flag_set, load_preseed
from .lib.env import PATHS, Paths
from .logging_utils import configure_logging
from .pipeline import PipelineResult, StepFailed, run_pipeline
from .prompts import DialogPrompter, collect_config
from .steps import (
    BootEntriesStep,
    BootloaderStep,
    BootstrapStep,
    FirstBootStep,
    FormatRootStep,
    FstabStep,
    IdentityStep,
    InitramfsStep,
    LocaleStep,
    NetworkStep,
    PartitionStep,
    PasswordsStep,
    PreflightStep,
    TeardownStep,
    UsersStep,
)

logger = logging.getLogger(__name__)


def build_steps():
    return [
        PreflightStep(),
        PartitionStep(),
        FormatRootStep(),
        BootstrapStep(),
        FstabStep(),
        IdentityStep(),
        LocaleStep(),
        InitramfsStep(),
        BootloaderStep(),
        NetworkStep(),
        BootEntriesStep(),
        UsersStep(),
        FirstBootStep(),
        PasswordsStep(),
        TeardownStep(),
    ]


def resolve_values(
    *,
    preseed: Optional[Mapping[str, Any]] = None,
    filesystem: Optional[str] = None,
    clean: bool = False,
    keymap: Optional[str] = None,
    hostname: Optional[str] = None,
    username: Optional[str] = None,
    wifi: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Merge config sources: command line > environment > preseed."""

    env = os.environ if environ is None else environ
    values: Dict[str, Any] = dict(preseed or {})

    if flag_set(env.get("FS")):
        values["filesystem"] = env["FS"].strip()
    if flag_set(env.get("KEYMAP")):
        values["keymap"] = env["KEYMAP"].strip()
    if flag_set(env.get("CLEAN")):
        values["clean"] = True

    if filesystem:
        values["filesystem"] = filesystem
    if keymap:
        values["keymap"] = keymap
    if clean:
        values["clean"] = True
    if hostname:
        values["hostname"] = hostname
    if username:
        values["username"] = username
    # a preseeded network already answers --wifi
    if wifi and not isinstance(values.get("wifi"), Mapping):
        values["wifi"] = True
    return values


def run(
    *,
    preseed_path: Optional[str] = None,
    filesystem: Optional[str] = None,
    clean: bool = False,
    keymap: Optional[str] = None,
    hostname: Optional[str] = None,
    username: Optional[str] = None,
    wifi: bool = False,
    paths: Paths = PATHS,
    dry_run: bool = False,
    prompter: Any = None,
    environ: Optional[Mapping[str, str]] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Resolve the configuration, then run the install pipeline."""

    preseed: Dict[str, Any] = {}
    if preseed_path:
        try:
            preseed = load_preseed(preseed_path)
        except (OSError, ValueError) as e:
            raise UserInputError(f"Cannot use preseed {preseed_path}: {e}") from e

    values = resolve_values(
        preseed=preseed,
        filesystem=filesystem,
        clean=clean,
        keymap=keymap,
        hostname=hostname,
        username=username,
        wifi=wifi,
        environ=environ,
    )
    config = collect_config(values, prompter or DialogPrompter())
    ctx = build_ctx(config, paths, dry_run=dry_run)

    logger.info(
        "Installing to %s (mode=%s, clean=%s, dry_run=%s)",
        config.device,
        config.mode.value,
        config.clean,
        dry_run,
    )
    result = run_pipeline(ctx=ctx, steps=build_steps(), stop_after=stop_after)
    logger.info("Ran steps: %s", ", ".join(result.ran_steps))
    return result


def exit_code_for(error: BaseException) -> int:
    if isinstance(error, StepFailed):
        error = error.error
    if isinstance(error, ToolInvocationError):
        return error.returncode or 1
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="archsetup", description="Install Arch Linux onto a whole disk")
    p.add_argument("--filesystem", choices=["ext4", "lvm-luks", "lvm", "zfs"], default=None, help="Root storage (env FS; default zfs)")
    p.add_argument("--clean", action="store_true", help="Tear down leftovers of a failed run first (env CLEAN)")
    p.add_argument("--keymap", default=None, help="Console keymap (env KEYMAP; default dvorak)")
    p.add_argument("--hostname", default=None, help="Hostname of the new system")
    p.add_argument("--username", default=None, help="Admin user to create")
    p.add_argument("--wifi", action="store_true", help="Configure wifi on the target (asks for SSID and password)")
    p.add_argument("--preseed", default=None, help="YAML file with answers and tunables")
    p.add_argument("--target-root", default=PATHS.target_root, help="Where the new system is mounted")
    p.add_argument("--log-dir", default=PATHS.log_dir, help="Directory for stdout.log and stderr.log")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--verbose", action="store_true", help="Show command output on the console too")
    p.add_argument("--stop-after", default=None, help="Stop after step_id (e.g. 35_fstab)")

    args = p.parse_args(argv)

    configure_logging(log_dir=args.log_dir, level=logging.DEBUG if args.verbose else logging.INFO)
    paths = replace(PATHS, target_root=args.target_root, log_dir=args.log_dir)

    try:
        run(
            preseed_path=args.preseed,
            filesystem=args.filesystem,
            clean=args.clean,
            keymap=args.keymap,
            hostname=args.hostname,
            username=args.username,
            wifi=args.wifi,
            paths=paths,
            dry_run=args.dry_run,
            stop_after=args.stop_after,
        )
    except StepFailed as e:
        logger.error("Installer failed at step %s: %s", e.step_id, e.error)
        return exit_code_for(e)
    except InstallerError as e:
        logger.error("Installer failed: %s", e)
        return exit_code_for(e)
    except KeyboardInterrupt:
        logger.error("Installer interrupted")
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
