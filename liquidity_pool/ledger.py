"""
Asset ledgers the pool settles against.

The pool only relies on the AssetLedger protocol. InMemoryAssetLedger is the
account-balance implementation used by the simulator and the tests; it can
skim a fee on every transfer to behave like a fee-on-transfer token.
"""
import logging
from typing import Protocol

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000


class AssetLedger(Protocol):
    """Balance ledger for one fungible asset."""

    asset_id: str

    def balance_of(self, holder: bytes) -> int:
        ...

    def transfer_from(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        """Move `amount` out of `sender` on the pool's behalf. May deliver less."""
        ...

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        """Move `amount` out of the pool's own holding. May deliver less."""
        ...

    def snapshot(self):
        """Opaque token capturing every balance."""
        ...

    def restore(self, snapshot) -> None:
        """Roll every balance back to `snapshot`."""
        ...


class InMemoryAssetLedger:
    """Dict-backed ledger. Debits the full amount, delivers amount minus fee."""

    def __init__(self, asset_id: str, transfer_fee_bps: int = 0):
        if not 0 <= transfer_fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"transfer_fee_bps must be in [0, {BPS_DENOMINATOR})")
        self.asset_id = asset_id
        self.transfer_fee_bps = transfer_fee_bps
        self.balances = {}
        self.total_burned = 0

    def balance_of(self, holder: bytes) -> int:
        return self.balances.get(holder, 0)

    def total_supply(self) -> int:
        return sum(self.balances.values())

    def credit(self, holder: bytes, amount: int):
        """Issue new units to `holder` (faucet / genesis funding)."""
        if amount < 0:
            raise ValueError("Cannot credit a negative amount")
        self.balances[holder] = self.balance_of(holder) + amount

    def transfer_from(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        return self._move(sender, recipient, amount)

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        return self._move(sender, recipient, amount)

    def fee_for(self, amount: int) -> int:
        return (amount * self.transfer_fee_bps) // BPS_DENOMINATOR

    def snapshot(self):
        return dict(self.balances), self.total_burned

    def restore(self, snapshot) -> None:
        balances, burned = snapshot
        self.balances = dict(balances)
        self.total_burned = burned

    def _move(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        if amount < 0:
            return False

        if self.balance_of(sender) < amount:
            logger.debug(
                f"{self.asset_id}: transfer of {amount} from {sender.hex()[:8]} "
                f"refused, balance {self.balance_of(sender)}"
            )
            return False

        fee = self.fee_for(amount)
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[recipient] = self.balance_of(recipient) + (amount - fee)
        # Skimmed fee leaves circulation
        self.total_burned += fee
        return True

    def __repr__(self) -> str:
        return (
            f"InMemoryAssetLedger("
            f"asset_id={self.asset_id!r}, "
            f"holders={len(self.balances)}, "
            f"fee_bps={self.transfer_fee_bps})"
        )
