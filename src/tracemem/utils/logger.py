import logging
from typing import Dict, Union

ROOT_LOGGER_NAME = "tracemem"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_loggers: Dict[str, logging.Logger] = {}
_global_level: int = logging.INFO


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(_global_level)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a named logger below the shared ``tracemem`` root logger."""
    if name in _loggers:
        return _loggers[name]
    _configure_root()
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    logger.setLevel(_global_level)
    _loggers[name] = logger
    return logger


def set_global_log_level(level: Union[int, str]) -> None:
    """Apply ``level`` to the root logger and every logger handed out so far."""
    global _global_level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level: {level}")
        level = resolved
    _global_level = level
    _configure_root().setLevel(level)
    for logger in _loggers.values():
        logger.setLevel(level)
