"""Root-logger setup for the example scripts and per-rank distributed runs."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional


_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_CONSOLE_FORMAT = "%(levelname)s - %(message)s"


def format_timespan(seconds: float) -> str:
    """Render a wall-clock duration for run summaries, e.g. ``"1m 14.2s"``.

    Spans under a minute keep two decimals; negative spans clamp to zero.
    """
    seconds = max(float(seconds), 0.0)
    whole_minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(whole_minutes), 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:04.1f}s"
    if minutes:
        return f"{minutes}m {secs:04.1f}s"
    return f"{secs:05.2f}s"


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _configure_root(level: int, handlers) -> None:
    # Handlers installed by earlier runs in the same process are dropped, not closed.
    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)


def setup_basic_logging(
    output_dir: Optional[Path],
    log_name: str = "estimate.log",
    verbose: bool = False,
) -> Optional[Path]:
    """Log to stdout, and to ``output_dir / log_name`` when a directory is given.

    Returns:
        Path of the log file, or ``None`` for console-only logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [_handler(logging.StreamHandler(sys.stdout), level, _CONSOLE_FORMAT)]

    log_path = None
    if output_dir is not None:
        log_path = Path(output_dir) / log_name
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_handler(logging.FileHandler(log_path), level, _FILE_FORMAT))

    _configure_root(level, handlers)
    return log_path


def setup_rank_logging(
    output_dir: Path,
    rank: int,
    verbose: bool,
    log_prefix: str = "pi",
) -> Path:
    """One log file per rank; the console belongs to rank 0.

    With ``verbose`` every rank also logs to the console, non-zero ranks
    tagging their lines with ``[rank N]``.
    """
    level = logging.DEBUG if verbose else logging.INFO
    log_path = Path(output_dir) / f"{log_prefix}_rank{rank}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers = [_handler(logging.FileHandler(log_path), level, _FILE_FORMAT)]
    if rank == 0:
        handlers.append(_handler(logging.StreamHandler(sys.stdout), level, _CONSOLE_FORMAT))
    elif verbose:
        handlers.append(
            _handler(logging.StreamHandler(sys.stdout), level, f"[rank {rank}] {_CONSOLE_FORMAT}")
        )

    _configure_root(level, handlers)
    return log_path
