"""
Progress reporting for MCSim experiments.

The runner advances a ``ProgressReporter`` once per finished condition row,
or once per finished chunk of rows in parallel mode. The reporter forwards a
throttled ``(current, total)`` stream to any callable: the console and tqdm
reporters below, or a custom function (e.g. a notebook widget).
"""

import sys
import time
from typing import Callable, Optional, TextIO


class ProgressReporter:
    """Throttled row counter feeding a ``(current, total)`` callback.

    Used as a context manager around a run: entering reports ``0/total``,
    a clean exit reports ``total/total``. A run that raises stops where it
    was, so a cancelled experiment does not claim to be complete.

    Args:
        total: Number of condition rows in the run.
        callback: Called as ``callback(current, total)``.
        n_updates: Approximate number of intermediate updates over the run
            (default 200).
    """

    def __init__(self, total: int, callback: Callable[[int, int], None], n_updates: int = 200):
        if total < 0:
            raise ValueError(f"total must be non-negative, got {total}")
        if n_updates < 1:
            raise ValueError(f"n_updates must be at least 1, got {n_updates}")
        self.total = total
        self.callback = callback
        self.step = max(1, -(-total // n_updates))
        self.current = 0

    @property
    def fraction(self) -> float:
        """Share of rows completed, in [0, 1]."""
        return self.current / self.total if self.total else 1.0

    def __enter__(self):
        self.current = 0
        self.callback(0, self.total)
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None and self.current < self.total:
            self.current = self.total
            self.callback(self.total, self.total)
        return False

    def advance(self, n_rows: int = 1):
        """Count *n_rows* finished rows.

        The callback fires whenever a multiple of ``step`` is passed, so a
        whole parallel chunk landing at once still produces an update.
        """
        before = self.current
        self.current = min(before + n_rows, self.total)
        if self.current == self.total or self.current // self.step > before // self.step:
            self.callback(self.current, self.total)


class PrintReporter:
    """Single-line console progress with elapsed time.

    Writes ``\\rProgress:  45.2% (723/1600 rows, 12.4s)`` to *stream*
    (default: ``sys.stderr`` at call time) and ends the line at completion.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self._started: Optional[float] = None

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        now = time.monotonic()
        if self._started is None or current == 0:
            self._started = now

        stream = self.stream if self.stream is not None else sys.stderr
        line = f"\rProgress: {100.0 * current / total:5.1f}% ({current}/{total} rows, {now - self._started:.1f}s)"
        stream.write(line + ("\n" if current >= total else ""))
        stream.flush()


class TqdmReporter:
    """tqdm progress bar; needs the ``progress`` extra.

    Keyword arguments are passed to ``tqdm.tqdm`` (``desc`` defaults to
    ``"Simulating"``, ``unit`` to ``"row"``)::

        experiment.run(progress_callback=TqdmReporter(leave=False))
    """

    def __init__(self, **tqdm_kwargs):
        tqdm_kwargs.setdefault("desc", "Simulating")
        tqdm_kwargs.setdefault("unit", "row")
        self._kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int):
        if self._bar is None:
            from tqdm import tqdm

            self._bar = tqdm(total=total, **self._kwargs)

        if current > self._bar.n:
            self._bar.update(current - self._bar.n)
        if current >= total:
            self.close()

    def close(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None
