"""
Shared fixtures for adversarial tests.

Races run the real domain services on threads over the in-memory ports,
whose conditional writes (SET NX claim, guarded updates, single-use
reset tokens) mirror the adapters' atomic statements.
"""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest


def run_concurrently(action: Callable[[int], Any], attackers: int) -> list[Any]:
    """
    Start `attackers` calls of `action` at the same instant.

    Returns each call's result, or the exception it raised.
    """
    barrier = threading.Barrier(attackers)

    def attempt(index: int) -> Any:
        barrier.wait()
        try:
            return action(index)
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=attackers) as executor:
        return list(executor.map(attempt, range(attackers)))


@pytest.fixture
def concurrently() -> Callable[[Callable[[int], Any], int], list[Any]]:
    return run_concurrently
