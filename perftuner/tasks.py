"""
Cooperative task helpers.

Long-running work (optimization, validation, training) is written as a step
generator that yields one progress record per iteration and returns its
result through ``StopIteration``. The host drives it either synchronously with
``run_steps`` or from asyncio with ``run_steps_async``; both check a
``CancellationToken`` at every iteration boundary.
"""

import asyncio
import logging
from typing import Callable, Generator, Optional, TypeVar

from .errors import OperationCancelledError

logger = logging.getLogger(__name__)

P = TypeVar("P")
R = TypeVar("R")

Steps = Generator[P, None, R]


class CancellationToken:
    """Flag checked by step drivers between iterations."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError("operation cancelled")


def _check(steps, token: Optional[CancellationToken]) -> None:
    if token is not None and token.cancelled:
        # close() runs the generator's cleanup before we report the cancel
        steps.close()
        logger.info("Cancelled cooperative task at iteration boundary")
        raise OperationCancelledError("operation cancelled")


def run_steps(
    steps: Steps,
    token: Optional[CancellationToken] = None,
    on_progress: Optional[Callable[[P], None]] = None,
) -> R:
    """Drive a step generator to completion on the calling thread."""
    try:
        while True:
            _check(steps, token)
            try:
                progress = next(steps)
            except StopIteration as stop:
                return stop.value
            if on_progress is not None:
                on_progress(progress)
    finally:
        steps.close()


async def run_steps_async(
    steps: Steps,
    token: Optional[CancellationToken] = None,
    on_progress: Optional[Callable[[P], None]] = None,
) -> R:
    """Drive a step generator from asyncio, yielding to the loop between steps."""
    try:
        while True:
            _check(steps, token)
            try:
                progress = next(steps)
            except StopIteration as stop:
                return stop.value
            if on_progress is not None:
                on_progress(progress)
            await asyncio.sleep(0)
    finally:
        steps.close()
