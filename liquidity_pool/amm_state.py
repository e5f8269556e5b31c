"""
AMM (Automated Market Maker) liquidity pool state.
Implements constant product formula: x * y = k
"""
from decimal import Decimal

import msgpack

from liquidity_pool.errors import ArithmeticOverflow
from liquidity_pool.share_ledger import ShareLedger

MAX_UINT256 = 2**256 - 1


def require_uint(value: int, what: str) -> int:
    """Reject values outside the unsigned 256-bit range instead of wrapping."""
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflow(f"{what} out of uint256 range: {value}")
    return value


class PoolState:
    """
    Reserves and shares of a two-asset pool.

    Uses the constant product formula (Uniswap V2 style):
    reserve_a * reserve_b = k (constant, before fees)
    """

    # Fee configuration (30 basis points = 0.30%)
    FEE_NUMERATOR = 997  # Keep 99.7% of input
    FEE_DENOMINATOR = 1000

    def __init__(self, data: dict = None):
        """
        Initialize pool state.

        Args:
            data: Dict with pool reserves and the share ledger
        """
        if data is None:
            data = {
                'reserve_a': 0,
                'reserve_b': 0,
                'shares': None,
            }

        self.reserve_a = int(data['reserve_a'])
        self.reserve_b = int(data['reserve_b'])
        self.shares = ShareLedger(data.get('shares'))
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.

        Integers are kept as decimal strings; uint256 values overflow msgpack ints.
        """
        return {
            'reserve_a': str(self.reserve_a),
            'reserve_b': str(self.reserve_b),
            'shares': self.shares.to_dict(),
        }

    def encode(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def decode(cls, raw: bytes) -> 'PoolState':
        return cls(msgpack.unpackb(raw, raw=False))

    @property
    def total_shares(self) -> int:
        return self.shares.total_supply()

    @property
    def k(self) -> int:
        return self.reserve_a * self.reserve_b

    @property
    def current_price(self) -> Decimal:
        """
        Price of one unit of asset A in units of asset B.

        Price = Reserve B / Reserve A

        Returns:
            Decimal('0') while the pool is empty
        """
        if self.reserve_a == 0:
            return Decimal('0')

        return Decimal(self.reserve_b) / Decimal(self.reserve_a)

    def reserves_for(self, input_is_a: bool) -> tuple[int, int]:
        """Return (reserve_in, reserve_out) for a swap direction."""
        if input_is_a:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    @classmethod
    def apply_fee(cls, amount_in: int) -> int:
        """Input amount left after the 0.3% fee (1000 -> 997)."""
        return (amount_in * cls.FEE_NUMERATOR) // cls.FEE_DENOMINATOR

    def get_swap_output(self, amount_in: int, input_is_a: bool) -> int:
        """
        Calculate swap output using constant product formula with fees.

        Formula: (x + Δx * 0.997) * (y - Δy) = x * y
        Solving for Δy: Δy = (y * Δx * 0.997) / (x + Δx * 0.997)

        Args:
            amount_in: Amount of input asset (in smallest unit)
            input_is_a: True if swapping A for B, False if B for A

        Returns:
            Amount of output asset (in smallest unit)
        """
        if amount_in <= 0:
            return 0

        input_with_fee = self.apply_fee(amount_in)
        reserve_in, reserve_out = self.reserves_for(input_is_a)

        numerator = reserve_out * input_with_fee
        denominator = reserve_in + input_with_fee

        if denominator == 0:
            return 0

        return numerator // denominator

    def shares_for_deposit(self, amount_a: int, amount_b: int) -> int:
        """
        Shares minted for a deposit of (amount_a, amount_b).

        The first deposit sets the unit scale at amount_a + amount_b. Later
        deposits are priced from asset A's contribution alone; an off-ratio
        deposit is accepted as-is and the surplus of B accrues to the pool.
        """
        total = self.total_shares
        if total == 0:
            return amount_a + amount_b

        return (amount_a * total) // self.reserve_a

    def amounts_for_shares(self, share_amount: int) -> tuple[int, int]:
        """Proportional (amount_a, amount_b) redeemed by `share_amount` shares."""
        total = self.total_shares
        amount_a = (share_amount * self.reserve_a) // total
        amount_b = (share_amount * self.reserve_b) // total
        return amount_a, amount_b

    def get_required_b(self, amount_a: int) -> int:
        """
        Calculate asset B needed to add liquidity alongside `amount_a` of A.

        Maintains pool ratio: amount_b / amount_a = reserve_b / reserve_a

        Returns:
            Required amount of B (1:1 for the first provider)
        """
        if self.reserve_a == 0:
            return amount_a

        return (amount_a * self.reserve_b) // self.reserve_a

    def get_required_a(self, amount_b: int) -> int:
        """Calculate asset A needed alongside `amount_b` of B."""
        if self.reserve_b == 0:
            return amount_b

        return (amount_b * self.reserve_a) // self.reserve_b

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"PoolState("
            f"reserve_a={self.reserve_a}, "
            f"reserve_b={self.reserve_b}, "
            f"total_shares={self.total_shares}, "
            f"price={self.current_price})"
        )

    def _validate(self):
        """Ensure state consistency."""
        if self.reserve_a < 0 or self.reserve_b < 0:
            raise ValueError("Reserves cannot be negative")

        if self.reserve_a > MAX_UINT256 or self.reserve_b > MAX_UINT256:
            raise ValueError("Reserves exceed uint256 range")

        if self.total_shares > 0 and (self.reserve_a == 0 or self.reserve_b == 0):
            raise ValueError("Outstanding shares require non-zero reserves")
