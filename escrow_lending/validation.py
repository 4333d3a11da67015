"""
Validation Pipeline Module

Ordered, named checks evaluated lazily and short-circuiting on the first
failure. Check order determines which error code a caller observes.
"""

from dataclasses import dataclass
from typing import Callable, Iterable
import logging

from .errors import ErrorCode, LendingError


@dataclass(frozen=True)
class Check:
    """A named predicate and the error raised when it does not hold"""
    name: str
    predicate: Callable[[], bool]
    error: ErrorCode


def run_checks(checks: Iterable[Check], logger: logging.Logger) -> None:
    """
    Evaluate checks in order.

    Raises:
        LendingError: carrying the error code of the first failing check
    """
    for check in checks:
        if not check.predicate():
            logger.info(f"Check '{check.name}' failed: {check.error.name}")
            raise LendingError(check.error, f"{check.name} check failed")
