"""
Per-request draws: simulated processing time and error decisions.
"""
import math
import random

from latency_service.randomness import RandomSource


class LatencySampler:
    """Gamma(alpha, beta) latency in seconds, divided by a speed factor."""

    def __init__(self, alpha: float, beta: float, speed: float, source: RandomSource):
        self.alpha = alpha
        self.beta = beta
        self.speed = speed
        self._source = source

    def sample(self) -> float:
        """Return one simulated processing time in seconds (>= 0)."""
        return max(0.0, self._source.gamma(self.alpha, self.beta) / self.speed)

    def estimate_percentile(self, q: float, samples: int = 100_000, seed: int = 0) -> float:
        """
        Monte Carlo estimate of the q-th quantile (0 < q < 1) of sample().

        Uses a private generator so the live stream is not advanced. Meant
        for checking calibration, e.g. that P95 lands on the target SLO.
        """
        if not 0.0 < q < 1.0:
            raise ValueError(f"quantile must be in (0, 1), got {q}")
        rng = random.Random(seed)
        scale = 1.0 / self.beta
        draws = sorted(rng.gammavariate(self.alpha, scale) / self.speed for _ in range(samples))
        index = min(len(draws) - 1, math.ceil(q * len(draws)) - 1)
        return draws[index]


class ErrorInjector:
    """Decides per request whether to simulate a failure."""

    def __init__(self, error_probability: float, source: RandomSource):
        self.error_probability = error_probability
        self._source = source

    def should_fail(self) -> bool:
        # Always draw so the stream position does not depend on the rate
        draw = self._source.uniform01()
        if self.error_probability <= 0.0:
            return False
        return draw <= self.error_probability
