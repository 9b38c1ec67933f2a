"""Package logging.

Every module logs through a child of the ``webp_studio`` logger, named after
its pipeline stage (``webp_studio.decoder``, ``webp_studio.session``, ...).
Two environment variables are read each time `setup_logger` runs:

- ``WEBP_STUDIO_LOG_LEVEL``: debug, info, warning, error or critical
- ``WEBP_STUDIO_LOG_CATS``: comma separated stage names to let through
"""

import logging
import os
import sys

BASE_NAME = "webp_studio"
LEVEL_ENV = "WEBP_STUDIO_LOG_LEVEL"
CATEGORIES_ENV = "WEBP_STUDIO_LOG_CATS"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}
_HANDLER_TAG = "_webp_studio_stderr"
_FORMATTER = logging.Formatter(fmt="[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S")


class _StageFilter(logging.Filter):
    """Pass records whose last logger-name component is one of `stages`."""

    def __init__(self, stages: set[str]):
        super().__init__()
        self.stages = stages

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.rpartition(".")[2] in self.stages


def _parse_stages(raw: str) -> set[str]:
    return {part.strip() for part in raw.split(",") if part.strip()}


def _stderr_handler(logger: logging.Logger) -> logging.StreamHandler:
    for handler in logger.handlers:
        if getattr(handler, _HANDLER_TAG, False):
            if handler.stream is not sys.stderr:  # type: ignore[attr-defined]
                # sys.stderr was swapped (test capture, host redirect); follow it
                handler.stream = sys.stderr  # type: ignore[attr-defined]
            return handler  # type: ignore[return-value]
    handler = logging.StreamHandler(stream=sys.stderr)
    setattr(handler, _HANDLER_TAG, True)
    logger.addHandler(handler)
    return handler


def setup_logger(level: int = logging.INFO, name: str = BASE_NAME) -> logging.Logger:
    """Configure the package logger and return it.

    Safe to call repeatedly: the single stderr handler is reused and its
    filter rebuilt from the current environment.
    """
    logger = logging.getLogger(name)
    env_level = (os.getenv(LEVEL_ENV) or "").strip().lower()
    logger.setLevel(_LEVELS.get(env_level, level))

    handler = _stderr_handler(logger)
    handler.setFormatter(_FORMATTER)
    handler.filters.clear()
    stages = _parse_stages(os.getenv(CATEGORIES_ENV) or "")
    if stages:
        handler.addFilter(_StageFilter(stages))

    logger.propagate = False
    return logger


def get_logger(stage: str | None = None) -> logging.Logger:
    base = setup_logger()
    return base.getChild(stage) if stage else base
