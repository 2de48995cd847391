"""
Package-level logging configuration.

* Rich console output (colourised, nicely formatted).
* Rotating **JSON** log file inside the platform user-log directory (or
  ``$CLINTRIALDATA_LOG_DIR`` when set).  Logs never land inside the cache
  root, where every folder is treated as a study.
* Optional plain-text mirror controlled via ``--save-logfile`` on the CLI.
* Python warnings (lock notices, stale listings) are routed through logging
  so they share the console formatting.

The public helper :func:`setup_logging` wires everything and should be the
sole entry-point used by the CLI.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog
from rich.logging import RichHandler
from structlog.dev import ConsoleRenderer as StructlogConsoleRenderer
from structlog.stdlib import LoggerFactory

from .paths import log_dir

__all__ = ["setup_logging"]


# --------------------------------------------------------------------------- #
# Internal helpers – file-based handlers                                      #
# --------------------------------------------------------------------------- #
def _json_file_handler(level: int) -> logging.Handler:
    """Return a rotating file handler for ``clintrialdata.log``.

    Args:
        level: Log-level for the handler.
    """
    logdir = log_dir()
    logdir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=logdir / "clintrialdata.log",
        maxBytes=5_000_000,  # ~5 MB before rollover
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _plain_text_file_handler(
    path: Optional[Path], level: int
) -> logging.Handler | None:
    """Return a plain-text file handler or *None* when *path* is *None*."""
    if path is None:
        return None

    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8", mode="a")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    # Ensure the buffer is flushed on interpreter exit.
    atexit.register(handler.close)
    return handler


# --------------------------------------------------------------------------- #
# Public API – main entry-point                                               #
# --------------------------------------------------------------------------- #
def setup_logging(
    *,
    verbose: bool = False,
    debug: bool = False,
    force_info: bool = False,
    extra_text_log: Optional[Path] = None,
) -> None:
    """Configure rich console logging and optional file mirrors.

    Args:
        verbose: Emit INFO-level messages to the console.
        debug: Emit DEBUG-level messages plus rich tracebacks.
        force_info: Force INFO level with a minimal, markup-free console even
            when both *verbose* and *debug* are *False* (download progress).
        extra_text_log: Optional path for a plain-text mirror of console output.
    """
    console_lvl = (
        logging.DEBUG
        if debug
        else logging.INFO if verbose or force_info else logging.WARNING
    )
    file_lvl = logging.DEBUG if debug else logging.INFO

    handlers: list[logging.Handler] = []

    # --- Rich or minimal console handler ---------------------------------------
    if force_info and not (verbose or debug):
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(console_lvl)
        console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    else:
        console = RichHandler(
            level=console_lvl,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
    handlers.append(console)

    # --- Rotating JSON log ------------------------------------------------------
    try:
        handlers.append(_json_file_handler(file_lvl))
    except OSError as exc:
        # Read-only home directories must not prevent the CLI from running.
        print(f"[WARNING] file logging disabled: {exc}", file=sys.stderr)

    # --- Optional plain-text logfile -------------------------------------------
    txt_handler = _plain_text_file_handler(extra_text_log, console_lvl)
    if txt_handler:
        handlers.append(txt_handler)

    # --- Configure root logger --------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG,  # root logger stays at DEBUG
        handlers=handlers,
        format="%(message)s",
        force=True,
    )
    logging.captureWarnings(True)
    logging.getLogger("urllib3").setLevel(logging.DEBUG if debug else logging.WARNING)

    # --- structlog binds --------------------------------------------------------
    structlog.configure(
        processors=[
            *(
                []
                if force_info and not (verbose or debug)
                else [
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.add_log_level,
                ]
            ),
            (
                StructlogConsoleRenderer()
                if verbose or debug or force_info
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(console_lvl),
        logger_factory=LoggerFactory(),
    )
