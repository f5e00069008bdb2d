from __future__ import annotations

import logging
import os
import traceback
from datetime import datetime
from pathlib import Path

_LOGGER = logging.getLogger("promptscore.logging")
_PACKAGE_LOGGER = "promptscore"
_LOG_DIR_ENV = "PROMPTSCORE_LOG_DIR"
_LOG_LEVEL_ENV = "PROMPTSCORE_LOG_LEVEL"
_LOG_FILE = "promptscore.log"
_configured = False


def get_log_dir() -> Path:
    configured = os.environ.get(_LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "promptscore" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / _LOG_FILE


def _env_level() -> int | None:
    value = os.environ.get(_LOG_LEVEL_ENV, "").strip().upper()
    if not value:
        return None
    level = logging.getLevelName(value)
    if isinstance(level, int):
        return level
    _LOGGER.warning("Ignoring unknown %s value: %s", _LOG_LEVEL_ENV, value)
    return None


def configure_logging() -> None:
    """Attach a NullHandler to the package logger and honour PROMPTSCORE_LOG_LEVEL."""
    global _configured
    logger = logging.getLogger(_PACKAGE_LOGGER)
    level = _env_level()
    if level is not None:
        logger.setLevel(level)
    if _configured:
        return
    _configured = True
    logger.addHandler(logging.NullHandler())


def _format_entry(context: str, exc: BaseException) -> str:
    stamp = datetime.now().isoformat(timespec="seconds")
    header = f"{stamp} | {context} | {type(exc).__name__}: {exc}"
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"{header}\n{trace.rstrip()}\n\n"


def log_exception(context: str, exc: BaseException) -> Path | None:
    """Append ``exc`` and its traceback to the package log file; never raises."""
    path = get_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(_format_entry(context, exc))
    except OSError as log_exc:
        _LOGGER.warning("Could not write %s: %s", path, log_exc)
        return None
    return path
