"""
Wall clock helper; services take a clock callable so tests can fake time.
"""
import time
from typing import Callable

Clock = Callable[[], int]


def epoch_millis() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)
