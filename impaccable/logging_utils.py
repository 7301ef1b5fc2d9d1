from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional


def configure_logging(level: int = logging.WARNING, log_path: Optional[str] = None) -> Optional[str]:
    """Configure logging for one command invocation.

    - Console (stderr) at `level`.
    - Optional file log at DEBUG, so the file always has the full command trail.

    Calling it again replaces the handlers from the previous call.
    Returns the file path in use, or None when only the console is logging.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in getattr(root, "_impaccable_handlers", []):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handlers.append(console)

    chosen_path: Optional[str] = None
    file_error: Optional[OSError] = None
    if log_path:
        try:
            Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(fmt)
            handlers.append(file_handler)
            chosen_path = log_path
        except OSError as e:
            file_error = e

    for h in handlers:
        root.addHandler(h)
    setattr(root, "_impaccable_handlers", handlers)

    log = logging.getLogger(__name__)
    if file_error is not None:
        log.warning("Cannot write log file %s (%s), logging to console only", log_path, file_error)
    log.debug("Logging initialized (level=%s, file=%s)", logging.getLevelName(level), chosen_path)
    return chosen_path
