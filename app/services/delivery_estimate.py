import random
from datetime import datetime, timedelta
from typing import Optional


class DeliveryEstimator:
    """Computes the estimated delivery time for a new COD order."""

    def estimate(self, now: datetime) -> datetime:
        raise NotImplementedError


class RandomDeliveryEstimator(DeliveryEstimator):
    """Base lead time plus a uniform random delay, in whole minutes.

    Stands in for a routing/ETA service until one exists.
    """

    def __init__(self, base_minutes: int = 30, jitter_minutes: int = 60, rng: Optional[random.Random] = None):
        if base_minutes < 1:
            raise ValueError("base_minutes must be at least 1")
        if jitter_minutes < 0:
            raise ValueError("jitter_minutes cannot be negative")
        self.base_minutes = base_minutes
        self.jitter_minutes = jitter_minutes
        self._rng = rng or random.Random()

    def estimate(self, now: datetime) -> datetime:
        delay = self._rng.randint(0, self.jitter_minutes)
        return now + timedelta(minutes=self.base_minutes + delay)


class FixedDeliveryEstimator(DeliveryEstimator):
    def __init__(self, minutes: int):
        if minutes < 1:
            raise ValueError("minutes must be at least 1")
        self.minutes = minutes

    def estimate(self, now: datetime) -> datetime:
        return now + timedelta(minutes=self.minutes)
