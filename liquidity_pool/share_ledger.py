"""
Share ledger - ownership units of the pool.
Tracks per-provider balances plus historical mint/burn totals.
"""
from liquidity_pool.errors import InsufficientShares, InvalidAmount


class ShareLedger:
    """
    Bookkeeping for pool shares.

    Balances are keyed by provider address. Zero balances are dropped so a
    provider that withdraws fully disappears from the ledger.
    """

    def __init__(self, data: dict = None):
        """
        Initialize share ledger.

        Args:
            data: Dict with balances and supply tracking
        """
        if data is None:
            data = {
                'balances': {},
                'total_minted': 0,
                'total_burned': 0,
            }

        self.balances = {bytes(k): int(v) for k, v in data['balances'].items()}
        self.total_minted = int(data['total_minted'])
        self.total_burned = int(data['total_burned'])
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage (amounts as decimal strings).
        """
        return {
            'balances': {k: str(v) for k, v in self.balances.items()},
            'total_minted': str(self.total_minted),
            'total_burned': str(self.total_burned),
        }

    def total_supply(self) -> int:
        """Shares currently outstanding."""
        return self.total_minted - self.total_burned

    def balance_of(self, holder: bytes) -> int:
        return self.balances.get(holder, 0)

    def holders(self) -> list:
        return list(self.balances)

    def mint(self, to: bytes, amount: int):
        """Create `amount` new shares owned by `to`."""
        if amount < 0:
            raise InvalidAmount(f"Cannot mint negative shares: {amount}")
        if amount == 0:
            return
        self.balances[to] = self.balances.get(to, 0) + amount
        self.total_minted += amount

    def burn(self, from_: bytes, amount: int):
        """Destroy `amount` shares held by `from_`."""
        if amount < 0:
            raise InvalidAmount(f"Cannot burn negative shares: {amount}")
        balance = self.balance_of(from_)
        if balance < amount:
            raise InsufficientShares(
                f"Insufficient shares: balance {balance}, requested {amount}"
            )
        if amount == 0:
            return
        remaining = balance - amount
        if remaining == 0:
            del self.balances[from_]
        else:
            self.balances[from_] = remaining
        self.total_burned += amount

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"ShareLedger("
            f"holders={len(self.balances)}, "
            f"supply={self.total_supply()}, "
            f"minted={self.total_minted}, "
            f"burned={self.total_burned})"
        )

    def _validate(self):
        """Ensure ledger consistency."""
        if self.total_minted < 0 or self.total_burned < 0:
            raise ValueError("Minted/burned cannot be negative")

        if self.total_burned > self.total_minted:
            raise ValueError("Burned exceeds minted")

        if any(v <= 0 for v in self.balances.values()):
            raise ValueError("Share balances must be positive")

        # Sum of balances must equal supply
        held = sum(self.balances.values())
        if held != self.total_supply():
            raise ValueError(
                f"Share balances ({held}) do not match supply ({self.total_supply()})"
            )
