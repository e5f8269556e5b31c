"""
Pool error taxonomy.

Every failure is an atomic abort: by the time one of these reaches the caller
the pool and its ledgers are back where they were before the call.
"""


class PoolError(Exception):
    """Base class for all pool failures."""
    pass


class InvalidAmount(PoolError):
    """Raised when an amount is zero, negative or not an integer."""
    pass


class InvalidToken(PoolError):
    """Raised when a swap names an asset the pool does not hold."""
    pass


class InsufficientShares(PoolError):
    """Raised when a withdrawal exceeds the caller's share balance."""
    pass


class InsufficientLiquidity(PoolError):
    """Raised when the output side of a swap has no reserve."""
    pass


class NoLiquidity(PoolError):
    """Raised when shares are redeemed against a pool with no shares outstanding."""
    pass


class SlippageExceeded(PoolError):
    """Raised when computed or delivered output is below the caller's floor."""
    pass


class PriceManipulationDetected(PoolError):
    """Raised when a swap would pay out more than the reference price allows."""
    pass


class ReentrancyDetected(PoolError):
    """Raised when a mutating operation starts while another is in progress."""
    pass


class TransferFailed(PoolError):
    """Raised when an asset ledger reports a failed transfer."""
    pass


class ArithmeticOverflow(PoolError):
    """Raised when a reserve or share total leaves the uint256 range."""
    pass
