"""
Execution timing utilities.

Every backend wraps its stages in Timer sections so the result carries a
breakdown of where a test call spent its time. Sections may be entered
from the permutation engine's worker threads; their times are summed
across threads, so a section can exceed the wall-clock total.
"""

import threading
import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Wall-clock timer with named, thread-safe accumulating sections.

    Usage:
        timer = Timer()
        timer.start()

        with timer.section('moments'):
            moments = rank_sum_ds(design)

        with timer.section('permutation'):
            perm = permutation_test(stat, observed, unit="cluster")

        timer.stop()
        timer.result()
        # {'total_seconds': 0.05, 'moments': 0.001, 'permutation': 0.049}
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sections: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        self._t0 = time.perf_counter()

    def stop(self) -> None:
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._t0

    def add(self, name: str, seconds: float) -> None:
        """Add seconds to section `name`."""
        with self._lock:
            self._sections[name] = self._sections.get(name, 0.0) + seconds

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Time the enclosed block into section `name`."""
        t = time.perf_counter()
        try:
            yield
        finally:
            self.add(name, time.perf_counter() - t)

    def result(self) -> dict[str, float]:
        """
        'total_seconds' plus every section.

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        with self._lock:
            return {'total_seconds': self._total, **self._sections}
