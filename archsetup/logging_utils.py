from __future__ import annotations

import logging
import sys
from pathlib import Path

STDOUT_LOG = "stdout.log"
STDERR_LOG = "stderr.log"


class _BelowLevel(logging.Filter):
    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def _writable_dir(log_dir: str) -> Path:
    p = Path(log_dir or ".")
    try:
        p.mkdir(parents=True, exist_ok=True)
        log_file = p / STDOUT_LOG
        with log_file.open("a", encoding="utf-8"):
            pass
        return p
    except OSError:
        return Path("/tmp")


def configure_logging(
    log_dir: str = ".",
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Everything the installer reports goes to two append-only files:
    - stdout.log: records below WARNING (progress, every CMD line)
    - stderr.log: WARNING and above (tolerated failures, the fatal error)

    The files always record DEBUG, so tool output captured by ``run_cmd``
    lands in stdout.log. ``level`` only applies to the console, which gets
    the same split over stdout/stderr. If ``log_dir`` is not writable
    (read-only live media) the files go to /tmp instead.

    Returns the directory actually used.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_archsetup_configured", False):
        return getattr(logger, "_archsetup_log_dir", log_dir)

    chosen = _writable_dir(log_dir)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    out_file = logging.FileHandler(chosen / STDOUT_LOG, mode="a", encoding="utf-8")
    out_file.addFilter(_BelowLevel(logging.WARNING))
    err_file = logging.FileHandler(chosen / STDERR_LOG, mode="a", encoding="utf-8")
    err_file.setLevel(logging.WARNING)
    handlers: list[logging.Handler] = [out_file, err_file]

    if also_console:
        out_console = logging.StreamHandler(sys.stdout)
        out_console.setLevel(level)
        out_console.addFilter(_BelowLevel(logging.WARNING))
        err_console = logging.StreamHandler(sys.stderr)
        err_console.setLevel(max(level, logging.WARNING))
        handlers += [out_console, err_console]

    for h in handlers:
        h.setFormatter(fmt)
        logger.addHandler(h)

    setattr(logger, "_archsetup_configured", True)
    setattr(logger, "_archsetup_log_dir", str(chosen))

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_dir, chosen)
    return str(chosen)
