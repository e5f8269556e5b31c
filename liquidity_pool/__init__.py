"""
Accounting core of a two-asset constant-product liquidity pool.
"""
from liquidity_pool.amm_state import PoolState
from liquidity_pool.errors import (
    ArithmeticOverflow,
    InsufficientLiquidity,
    InsufficientShares,
    InvalidAmount,
    InvalidToken,
    NoLiquidity,
    PoolError,
    PriceManipulationDetected,
    ReentrancyDetected,
    SlippageExceeded,
    TransferFailed,
)
from liquidity_pool.events import LiquidityAdded, LiquidityRemoved, Swapped
from liquidity_pool.ledger import InMemoryAssetLedger
from liquidity_pool.oracle import TWAPOracle
from liquidity_pool.pool import LiquidityPool
from liquidity_pool.share_ledger import ShareLedger

__version__ = "0.1.0"
