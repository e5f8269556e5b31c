"""
Guard layer wrapped around every state-mutating pool operation.

- ReentrancyGuard: per-pool busy flag, released on every exit path
- BalanceProbe: measures what a ledger call actually moved
- journal(): snapshots pool state and ledgers, rolls all of them back on failure
"""
import logging
from contextlib import contextmanager

from liquidity_pool.errors import ReentrancyDetected

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Busy flag for one pool."""

    def __init__(self):
        self._active = None

    @property
    def locked(self) -> bool:
        return self._active is not None

    @property
    def active_operation(self):
        return self._active

    @contextmanager
    def hold(self, operation: str):
        """
        Hold the flag for the duration of `operation`.

        Re-entry fails before anything is touched, so the outer operation's
        flag and journal stay intact.
        """
        if self._active is not None:
            logger.warning(f"Re-entry into {operation} during {self._active} rejected")
            raise ReentrancyDetected(
                f"{operation} attempted while {self._active} is in progress"
            )

        self._active = operation
        try:
            yield
        finally:
            self._active = None


class BalanceProbe:
    """
    Records a holder's balance now so the real movement can be read later.

    Example:
        probe = BalanceProbe(ledger, pool_address)
        ledger.transfer_from(trader, pool_address, amount)
        received = probe.delta()
    """

    def __init__(self, ledger, holder: bytes):
        self.ledger = ledger
        self.holder = holder
        self.before = ledger.balance_of(holder)

    def delta(self) -> int:
        """Balance change since the probe was taken (negative on outflow)."""
        return self.ledger.balance_of(self.holder) - self.before


@contextmanager
def journal(pool, ledgers):
    """
    Make the body atomic.

    Pool state is snapshotted through its storage dict and each ledger through
    its own snapshot hook. Any exception restores all of them and re-raises.
    """
    state_snapshot = pool.state.to_dict()
    ledger_snapshots = [(ledger, ledger.snapshot()) for ledger in ledgers]

    try:
        yield
    except Exception:
        pool.state = type(pool.state)(state_snapshot)
        for ledger, snapshot in ledger_snapshots:
            ledger.restore(snapshot)
        logger.debug(f"Rolled back pool state and {len(ledger_snapshots)} ledgers")
        raise
