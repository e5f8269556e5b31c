"""
Pool events and the bus that delivers them.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidityAdded:
    provider: bytes
    amount_a: int
    amount_b: int
    shares: int

    name = 'liquidity_added'


@dataclass(frozen=True)
class LiquidityRemoved:
    provider: bytes
    amount_a: int
    amount_b: int
    shares: int

    name = 'liquidity_removed'


@dataclass(frozen=True)
class Swapped:
    trader: bytes
    asset_in: str
    amount_in: int
    amount_out: int

    name = 'swap'


def event_to_dict(event) -> dict:
    """JSON-friendly view of an event (addresses as hex)."""
    data = {'event': event.name}
    for key, value in asdict(event).items():
        data[key] = value.hex() if isinstance(value, bytes) else value
    return data


class EventBus:
    """Append-only event log with synchronous subscribers."""

    def __init__(self):
        self.log = []
        self._listeners = []

    def subscribe(self, listener: Callable):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable):
        self._listeners.remove(listener)

    def emit(self, event):
        """
        Record and deliver a committed event.

        A listener failure is logged and does not stop delivery to the others;
        the operation that produced the event has already committed.
        """
        self.log.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on {event.name}")

    def __len__(self) -> int:
        return len(self.log)
