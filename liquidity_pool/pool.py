"""
Two-asset liquidity pool.

Liquidity provisioning and swaps over a PoolState, with every mutating
operation run under the guard layer:
- Reentrancy fence (busy flag, released on every exit path)
- Balance-delta accounting (fee-on-transfer assets are credited what arrived)
- Journal/rollback of pool state and both asset ledgers on failure
- Reference price ceiling (TWAP oracle) on swap output
"""
import logging
import time
from contextlib import contextmanager
from decimal import Decimal, ROUND_FLOOR, localcontext

from liquidity_pool.amm_state import PoolState, require_uint
from liquidity_pool.config import PoolConfig
from liquidity_pool.crypto import pool_address
from liquidity_pool.errors import (
    InsufficientLiquidity,
    InsufficientShares,
    InvalidAmount,
    InvalidToken,
    NoLiquidity,
    PriceManipulationDetected,
    SlippageExceeded,
    TransferFailed,
)
from liquidity_pool.events import EventBus, LiquidityAdded, LiquidityRemoved, Swapped
from liquidity_pool.guard import BalanceProbe, ReentrancyGuard, journal

logger = logging.getLogger(__name__)

# Decimal digits used for the oracle ceiling; uint256 products need ~160
PRICE_PRECISION = 200


def _require_amount(value, what: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{what} must be an integer, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmount(f"{what} must be positive, got {value}")
    return value


class LiquidityPool:
    """Constant-product pool over two asset ledgers."""

    def __init__(self, asset_a, asset_b, oracle, config: PoolConfig = None,
                 address: bytes = None, monitor=None):
        if asset_a.asset_id == asset_b.asset_id:
            raise ValueError("Pool assets must differ")

        if config is None:
            config = PoolConfig(asset_a=asset_a.asset_id, asset_b=asset_b.asset_id)
        elif (config.asset_a, config.asset_b) != (asset_a.asset_id, asset_b.asset_id):
            raise ValueError(
                f"Config assets {config.asset_a}/{config.asset_b} do not match "
                f"ledgers {asset_a.asset_id}/{asset_b.asset_id}"
            )

        self.asset_a = asset_a
        self.asset_b = asset_b
        self.oracle = oracle
        self.price_tolerance = config.price_tolerance
        self.address = address or pool_address(asset_a.asset_id, asset_b.asset_id)
        self.state = PoolState()
        self.events = EventBus()
        self.monitor = monitor
        self._guard = ReentrancyGuard()

        logger.info(
            f"Pool {self.address.hex()[:8]} created for "
            f"{asset_a.asset_id}/{asset_b.asset_id}"
        )

    # ==========================================================================
    # READ-ONLY VIEWS
    # ==========================================================================

    @property
    def locked(self) -> bool:
        """True while a mutating operation is in progress."""
        return self._guard.locked

    def get_reserves(self) -> tuple[int, int]:
        return self.state.reserve_a, self.state.reserve_b

    def balance_of(self, provider: bytes) -> int:
        return self.state.shares.balance_of(provider)

    def total_supply(self) -> int:
        return self.state.total_shares

    @property
    def current_price(self) -> Decimal:
        return self.state.current_price

    def quote(self, asset_in: str, amount_in: int) -> int:
        """Output a swap of `amount_in` would pay at current reserves."""
        ledger_in, _ = self._route(asset_in)
        return self.state.get_swap_output(amount_in, ledger_in is self.asset_a)

    def get_required_b(self, amount_a: int) -> int:
        return self.state.get_required_b(amount_a)

    def get_required_a(self, amount_b: int) -> int:
        return self.state.get_required_a(amount_b)

    def get_stats(self) -> dict:
        """Get current pool statistics."""
        return {
            'address': self.address.hex(),
            'asset_a': self.asset_a.asset_id,
            'asset_b': self.asset_b.asset_id,
            'reserve_a': str(self.state.reserve_a),
            'reserve_b': str(self.state.reserve_b),
            'total_shares': str(self.state.total_shares),
            'providers': str(len(self.state.shares.holders())),
            'current_price': str(self.state.current_price),
            'k': str(self.state.k),
        }

    # ==========================================================================
    # LIQUIDITY PROVISIONING
    # ==========================================================================

    def add_liquidity(self, provider: bytes, amount_a: int, amount_b: int) -> int:
        """
        Deposit both assets and mint shares for what actually arrived.

        Returns:
            Shares minted to `provider`
        """
        with self._operation('add_liquidity') as pending:
            _require_amount(amount_a, "amount_a")
            _require_amount(amount_b, "amount_b")

            probe_a = BalanceProbe(self.asset_a, self.address)
            probe_b = BalanceProbe(self.asset_b, self.address)
            self._pull(self.asset_a, provider, amount_a)
            self._pull(self.asset_b, provider, amount_b)
            real_a = probe_a.delta()
            real_b = probe_b.delta()

            if real_a <= 0 or real_b <= 0:
                raise InvalidAmount(f"Pool received {real_a} A / {real_b} B")
            if real_a < amount_a or real_b < amount_b:
                logger.warning(
                    f"Short delivery on deposit: requested {amount_a}/{amount_b}, "
                    f"received {real_a}/{real_b}"
                )

            state = self.state
            # NOTE: priced from asset A alone; an off-ratio B surplus is donated to the pool
            shares = state.shares_for_deposit(real_a, real_b)
            if shares == 0:
                logger.warning(
                    f"Deposit of {real_a}/{real_b} by {provider.hex()[:8]} mints no shares"
                )
            state.reserve_a = require_uint(state.reserve_a + real_a, "reserve_a")
            state.reserve_b = require_uint(state.reserve_b + real_b, "reserve_b")
            require_uint(state.total_shares + shares, "total_shares")
            state.shares.mint(provider, shares)

            pending.append(LiquidityAdded(provider, real_a, real_b, shares))

        logger.info(
            f"Liquidity added by {provider.hex()[:8]}: {real_a} {self.asset_a.asset_id} + "
            f"{real_b} {self.asset_b.asset_id} -> {shares} shares, "
            f"reserves {self.get_reserves()}"
        )
        return shares

    def remove_liquidity(self, provider: bytes, share_amount: int) -> tuple[int, int]:
        """
        Burn shares and pay out the proportional slice of both reserves.

        Returns:
            (amount_a, amount_b) sent to `provider`
        """
        with self._operation('remove_liquidity') as pending:
            _require_amount(share_amount, "share_amount")

            state = self.state
            if state.total_shares == 0:
                raise NoLiquidity("No liquidity in pool")

            balance = state.shares.balance_of(provider)
            if balance < share_amount:
                raise InsufficientShares(
                    f"Insufficient shares: balance {balance}, requested {share_amount}"
                )

            # Pre-burn totals
            amount_a, amount_b = state.amounts_for_shares(share_amount)

            state.shares.burn(provider, share_amount)
            state.reserve_a -= amount_a
            state.reserve_b -= amount_b

            self._push(self.asset_a, provider, amount_a)
            self._push(self.asset_b, provider, amount_b)

            pending.append(LiquidityRemoved(provider, amount_a, amount_b, share_amount))

        logger.info(
            f"Liquidity removed by {provider.hex()[:8]}: {share_amount} shares -> "
            f"{amount_a} {self.asset_a.asset_id} + {amount_b} {self.asset_b.asset_id}, "
            f"reserves {self.get_reserves()}"
        )
        return amount_a, amount_b

    # ==========================================================================
    # SWAP
    # ==========================================================================

    def swap(self, trader: bytes, asset_in: str, amount_in: int,
             min_amount_out: int = 0) -> int:
        """
        Swap `amount_in` of `asset_in` for the other asset.

        Output is the fee-adjusted constant-product amount, bounded below by
        `min_amount_out` (checked again on what the trader actually received)
        and above by the oracle's reference price.

        Returns:
            Amount of the output asset credited to `trader`
        """
        with self._operation('swap') as pending:
            ledger_in, ledger_out = self._route(asset_in)
            _require_amount(amount_in, "amount_in")
            _require_amount(min_amount_out, "min_amount_out", allow_zero=True)

            input_is_a = ledger_in is self.asset_a
            reserve_in, reserve_out = self.state.reserves_for(input_is_a)
            if reserve_out == 0:
                raise InsufficientLiquidity(f"No {ledger_out.asset_id} reserve")

            reference_price = self.oracle.get_twap(ledger_in.asset_id, ledger_out.asset_id)

            expected_out = self.state.get_swap_output(amount_in, input_is_a)
            if expected_out < min_amount_out:
                raise SlippageExceeded(f"Slippage: got {expected_out}, expected {min_amount_out}")

            ceiling = self._price_ceiling(amount_in, reference_price)
            if expected_out > ceiling:
                raise PriceManipulationDetected(
                    f"Output {expected_out} exceeds reference ceiling {ceiling} "
                    f"(twap {reference_price}, spot {self.state.current_price})"
                )

            pool_in = BalanceProbe(ledger_in, self.address)
            self._pull(ledger_in, trader, amount_in)
            received_in = pool_in.delta()
            if received_in < amount_in:
                logger.warning(
                    f"Short delivery on swap input: requested {amount_in}, received {received_in}"
                )

            pool_out = BalanceProbe(ledger_out, self.address)
            trader_out = BalanceProbe(ledger_out, trader)
            self._push(ledger_out, trader, expected_out)
            received = trader_out.delta()
            if received < min_amount_out:
                raise SlippageExceeded(
                    f"Slippage: delivered {received}, expected {min_amount_out}"
                )

            # NOTE: input reserve grows by what arrived, not the requested amount_in
            new_in = require_uint(reserve_in + received_in, "reserve_in")
            new_out = reserve_out + pool_out.delta()
            if input_is_a:
                self.state.reserve_a, self.state.reserve_b = new_in, new_out
            else:
                self.state.reserve_b, self.state.reserve_a = new_in, new_out

            pending.append(Swapped(trader, ledger_in.asset_id, amount_in, expected_out))

        logger.info(
            f"Swap: {amount_in} {ledger_in.asset_id} -> {expected_out} "
            f"{ledger_out.asset_id} (delivered {received}), "
            f"twap: {reference_price}, reserves {self.get_reserves()}"
        )
        return received

    # ==========================================================================
    # INTERNALS
    # ==========================================================================

    @contextmanager
    def _operation(self, name: str):
        """Guard, journal and time one mutating operation; emit its events on commit."""
        pending = []
        with self._guard.hold(name):
            started = time.perf_counter()
            try:
                with journal(self, (self.asset_a, self.asset_b)):
                    yield pending
            except Exception as e:
                logger.warning(f"{name} failed: {e}")
                self._record(name, 'failed', started)
                raise
            self._record(name, 'ok', started)

        for event in pending:
            self.events.emit(event)

    def _record(self, name: str, status: str, started: float):
        latency = time.perf_counter() - started
        logger.debug(f"{name} {status} in {latency * 1000:.3f}ms")
        if self.monitor is not None:
            self.monitor.record_operation(name, status, latency)

    def _route(self, asset_in: str):
        """(input ledger, output ledger) for a swap direction."""
        if asset_in == self.asset_a.asset_id:
            return self.asset_a, self.asset_b
        if asset_in == self.asset_b.asset_id:
            return self.asset_b, self.asset_a
        raise InvalidToken(
            f"Unknown asset {asset_in!r}; pool holds "
            f"{self.asset_a.asset_id}/{self.asset_b.asset_id}"
        )

    def _price_ceiling(self, amount_in: int, reference_price) -> int:
        """Largest output the reference price justifies for `amount_in`."""
        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            limit = Decimal(amount_in) * Decimal(reference_price) * (1 + self.price_tolerance)
            if limit <= 0:
                return 0
            return int(limit.to_integral_value(rounding=ROUND_FLOOR))

    def _pull(self, ledger, sender: bytes, amount: int):
        if not ledger.transfer_from(sender, self.address, amount):
            raise TransferFailed(
                f"{ledger.asset_id}: transfer of {amount} from {sender.hex()[:8]} failed"
            )

    def _push(self, ledger, recipient: bytes, amount: int):
        if amount == 0:
            return
        if not ledger.transfer(self.address, recipient, amount):
            raise TransferFailed(
                f"{ledger.asset_id}: transfer of {amount} to {recipient.hex()[:8]} failed"
            )

    def __repr__(self) -> str:
        return (
            f"LiquidityPool("
            f"{self.asset_a.asset_id}/{self.asset_b.asset_id}, "
            f"{self.state!r})"
        )
