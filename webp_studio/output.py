"""Caller-visible output resources.

An `OutputHandle` is a temporary file holding one encoded result, ready to be
displayed or downloaded. `OutputSlot` keeps at most one of them live.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
import threading
from pathlib import Path

from .logger import get_logger

_logger = get_logger("output")


class OutputHandle:
    def __init__(self, data: bytes, suffix: str = ".webp", directory: str | None = None):
        fd, path = tempfile.mkstemp(prefix="webp_studio_", suffix=suffix, dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except Exception:
            with contextlib.suppress(OSError):
                os.unlink(path)
            raise
        self._path: Path | None = Path(path)
        self._lock = threading.Lock()
        _logger.debug("handle acquired: %s (%d bytes)", path, len(data))

    @property
    def path(self) -> Path | None:
        """Location of the resource, None once released."""
        return self._path

    @property
    def released(self) -> bool:
        return self._path is None

    def read_bytes(self) -> bytes:
        if self._path is None:
            raise RuntimeError("output handle already released")
        return self._path.read_bytes()

    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        with self._lock:
            path, self._path = self._path, None
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            _logger.debug("handle released: %s", path)
        except OSError as e:
            _logger.warning("failed to remove output file %s: %s", path, e)


class OutputSlot:
    """Holds the single live output handle of a session."""

    def __init__(self) -> None:
        self._current: OutputHandle | None = None
        self._lock = threading.Lock()

    @property
    def current(self) -> OutputHandle | None:
        return self._current

    def install(self, handle: OutputHandle) -> None:
        """Make `handle` live and release the one it replaces."""
        with self._lock:
            previous, self._current = self._current, handle
        if previous is not None and previous is not handle:
            previous.release()

    def clear(self) -> None:
        with self._lock:
            previous, self._current = self._current, None
        if previous is not None:
            previous.release()
