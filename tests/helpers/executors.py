"""Executors that make the session's worker scheduling deterministic in tests."""

from __future__ import annotations

from concurrent.futures import Executor, Future


class ImmediateExecutor(Executor):
    """Runs each job inline on submit."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:  # noqa: BLE001 - mirror ThreadPoolExecutor
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Queues jobs until the test runs them, in any order it likes."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object, tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def run(self, index: int) -> Future:
        future, fn, args, kwargs = self.jobs[index]
        future.set_result(fn(*args, **kwargs))  # type: ignore[operator]
        return future

    def run_all(self) -> None:
        for i in range(len(self.jobs)):
            if not self.jobs[i][0].done():
                self.run(i)
