"""
Reference price oracles.

The pool consumes anything with `get_twap(asset_in, asset_out)`. TWAPOracle is
the bundled implementation: it samples pool reserves and averages the spot
price over a sliding window, weighting every sample by how long it stood.
"""
import logging
import time
from decimal import Decimal
from typing import Protocol

logger = logging.getLogger(__name__)

# TWAP constants
TWAP_WINDOW = 3600  # 1 hour


class PriceOracle(Protocol):
    def get_twap(self, asset_in: str, asset_out: str) -> Decimal:
        """Units of `asset_out` one unit of `asset_in` is worth."""
        ...


def _pair_key(asset_x: str, asset_y: str) -> tuple[str, bool]:
    """Canonical pair key and whether (asset_x, asset_y) is the inverted order."""
    if asset_x <= asset_y:
        return f"{asset_x}/{asset_y}", False
    return f"{asset_y}/{asset_x}", True


class TWAPOracle:
    """Time-Weighted Average Price oracle for manipulation resistance."""

    def __init__(self, window: int = TWAP_WINDOW, clock=time.time):
        self.window = window
        self.clock = clock
        self.observations = {}  # pair -> [(timestamp, price)]
        self.last_update = 0

    def update(self, asset_a: str, asset_b: str, reserve_a: int, reserve_b: int,
               current_time: float = None):
        """Record the spot price implied by a pair of reserves."""
        if reserve_a == 0 or reserve_b == 0:
            return

        if current_time is None:
            current_time = self.clock()

        key, inverted = _pair_key(asset_a, asset_b)
        price = Decimal(reserve_b) / Decimal(reserve_a)
        if inverted:
            price = Decimal(reserve_a) / Decimal(reserve_b)

        samples = self.observations.setdefault(key, [])
        samples.append((current_time, str(price)))
        self.last_update = current_time
        logger.debug(f"TWAP sample {key} at {current_time}: {price}")

        cutoff = current_time - self.window
        # Keep the newest sample at or before the cutoff; its price held into the window
        while len(samples) >= 2 and samples[1][0] <= cutoff:
            samples.pop(0)

    def observe(self, pool):
        """Sample a pool's current reserves."""
        reserve_a, reserve_b = pool.get_reserves()
        self.update(pool.asset_a.asset_id, pool.asset_b.asset_id, reserve_a, reserve_b)

    def attach(self, pool):
        """Sample `pool` after every committed operation."""
        pool.events.subscribe(lambda event: self.observe(pool))

    def get_twap(self, asset_in: str, asset_out: str, current_time: float = None) -> Decimal:
        """Calculate time-weighted average price of `asset_in` in `asset_out`."""
        key, inverted = _pair_key(asset_in, asset_out)
        samples = self.observations.get(key)
        if not samples:
            return Decimal(0)

        if current_time is None:
            current_time = self.clock()
        cutoff = current_time - self.window

        total_weighted_price = Decimal(0)
        total_time = Decimal(0)

        for i, (sample_time, price) in enumerate(samples):
            start = max(sample_time, cutoff)
            end = samples[i + 1][0] if i + 1 < len(samples) else current_time
            time_delta = Decimal(end) - Decimal(start)
            if time_delta > 0:
                total_weighted_price += Decimal(price) * time_delta
                total_time += time_delta

        if total_time == 0:
            twap = Decimal(samples[-1][1])
        else:
            twap = total_weighted_price / total_time

        if inverted:
            return Decimal(1) / twap if twap else Decimal(0)
        return twap

    def to_dict(self) -> dict:
        return {
            'window': self.window,
            'observations': {k: [list(s) for s in v] for k, v in self.observations.items()},
            'last_update': self.last_update
        }

    @staticmethod
    def from_dict(data: dict, clock=time.time) -> 'TWAPOracle':
        oracle = TWAPOracle(window=data.get('window', TWAP_WINDOW), clock=clock)
        oracle.observations = {
            k: [tuple(s) for s in v] for k, v in data.get('observations', {}).items()
        }
        oracle.last_update = data.get('last_update', 0)
        return oracle
