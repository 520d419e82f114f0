"""
Lock-protected random streams.

A RandomSource may be shared by every concurrently handled request, on the
event loop or on worker threads. Each draw holds the source's lock, so the
generator state is never advanced by two callers at once.
"""
import random
import threading
from typing import List, Optional


class RandomSource:
    """Thread-safe wrapper around a single random.Random stream."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def uniform01(self) -> float:
        """One draw from Uniform[0, 1)."""
        with self._lock:
            return self._rng.random()

    def gamma(self, shape: float, rate: float) -> float:
        """One draw from Gamma(shape, rate).

        random.gammavariate is parameterised by scale, which is 1/rate.
        gammavariate consumes a variable number of underlying draws, so the
        whole call must run under the lock.
        """
        with self._lock:
            return self._rng.gammavariate(shape, 1.0 / rate)


def independent_sources(seed: Optional[int] = None, count: int = 2) -> List[RandomSource]:
    """Derive `count` independent streams from one root seed.

    With seed=None every stream is seeded from OS entropy.
    """
    if seed is None:
        return [RandomSource() for _ in range(count)]
    root = random.Random(seed)
    return [RandomSource(root.getrandbits(64)) for _ in range(count)]
