import logging
import os
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(os.getenv("TOURNAMENT_LOG_DIR", "logs"))

_LOGGERS = {}
_FILE_HANDLERS = {}

_FORMATTER = logging.Formatter(
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


def _console_level() -> int:
    value = os.getenv("TOURNAMENT_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(value)
    return level if isinstance(level, int) else logging.INFO


def _file_handler(runtime: str) -> logging.Handler:
    # All loggers of one runtime append to the same file for this process
    handler = _FILE_HANDLERS.get(runtime)
    if handler is None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        handler = logging.FileHandler(LOG_DIR / f"{runtime}-{timestamp}.log", encoding="utf-8")
        handler.setFormatter(_FORMATTER)
        _FILE_HANDLERS[runtime] = handler
    return handler


def get_logger(
    name: str,
    *,
    runtime: str = "tournaments",
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. core.registry, tournaments.lifecycle)
    - runtime: log file prefix shared by every logger of the process

    The console shows TOURNAMENT_LOG_LEVEL and above (INFO by default); the
    run file under TOURNAMENT_LOG_DIR keeps DEBUG. TOURNAMENT_LOG_FILE=0
    disables the file.
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(_console_level())
    console.setFormatter(_FORMATTER)
    logger.addHandler(console)

    if os.getenv("TOURNAMENT_LOG_FILE", "1") != "0":
        logger.addHandler(_file_handler(runtime))

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger
