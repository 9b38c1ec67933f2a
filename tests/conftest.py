"""Pytest configuration.

`ConversionSession` is a QObject. We create a single `QCoreApplication` for the
entire session as early as possible so signal/slot plumbing behaves the same
way it does inside a host application, and shut it down cleanly at the end.
"""

from __future__ import annotations

from typing import Any

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QCoreApplication exists before collecting/running tests."""

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    global _APP

    app = QCoreApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QCoreApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    app = QCoreApplication.instance()
    if app is None:
        return

    app.quit()
    app.processEvents()
