"""
Guard layer tests: reentrancy fence, balance probes and rollback journal.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from liquidity_pool.amm_state import PoolState
from liquidity_pool.crypto import new_address
from liquidity_pool.errors import InvalidAmount, ReentrancyDetected
from liquidity_pool.events import LiquidityAdded
from liquidity_pool.guard import BalanceProbe, ReentrancyGuard, journal
from liquidity_pool.ledger import InMemoryAssetLedger
from liquidity_pool.pool import LiquidityPool


class ReentrantLedger(InMemoryAssetLedger):
    """Ledger that runs `hook` once from inside its next transfer_from."""

    def __init__(self, asset_id):
        super().__init__(asset_id)
        self.hook = None

    def transfer_from(self, sender, recipient, amount):
        hook, self.hook = self.hook, None
        if hook is not None:
            hook()
        return super().transfer_from(sender, recipient, amount)


class ReentrantOracle:
    """Oracle that calls back into the pool while pricing a swap."""

    def __init__(self):
        self.pool = None
        self.callback = None
        self.observed = []

    def get_twap(self, asset_in, asset_out):
        self.observed.append((self.pool.locked, self.pool.get_reserves()))
        if self.callback is not None:
            self.callback()
        return Decimal(2) if asset_in == 'A' else Decimal('0.5')


@pytest.fixture
def alice():
    return new_address()


@pytest.fixture
def bob():
    return new_address()


@pytest.fixture
def oracle():
    return ReentrantOracle()


@pytest.fixture
def pool(oracle, alice, bob):
    p = LiquidityPool(ReentrantLedger('A'), ReentrantLedger('B'), oracle)
    oracle.pool = p
    for address in (alice, bob):
        p.asset_a.credit(address, 100_000)
        p.asset_b.credit(address, 100_000)
    p.add_liquidity(alice, 1000, 2000)
    return p


def ledger_view(pool, *holders):
    return [
        (pool.asset_a.balance_of(h), pool.asset_b.balance_of(h))
        for h in (pool.address,) + holders
    ]


class TestReentrancy:

    def test_nested_call_rejected_outer_completes(self, pool, alice, bob):
        captured = []

        def reenter():
            try:
                pool.swap(bob, 'A', 100, 0)
            except ReentrancyDetected as e:
                captured.append(e)

        pool.asset_a.hook = reenter
        shares = pool.add_liquidity(alice, 500, 1000)

        assert len(captured) == 1
        assert "swap attempted while add_liquidity is in progress" in str(captured[0])
        assert shares == 1500
        assert pool.get_reserves() == (1500, 3000)
        assert pool.asset_a.balance_of(bob) == 100_000
        assert pool.asset_b.balance_of(bob) == 100_000
        assert [type(e) for e in pool.events.log] == [LiquidityAdded, LiquidityAdded]

    def test_propagated_reentry_aborts_outer_call(self, pool, alice, bob):
        before_reserves = pool.get_reserves()
        before_ledgers = ledger_view(pool, alice, bob)
        before_events = len(pool.events)

        pool.asset_a.hook = lambda: pool.remove_liquidity(alice, 1000)

        with pytest.raises(ReentrancyDetected):
            pool.swap(bob, 'A', 100, 0)

        assert pool.get_reserves() == before_reserves
        assert pool.balance_of(alice) == 3000
        assert ledger_view(pool, alice, bob) == before_ledgers
        assert len(pool.events) == before_events
        assert not pool.locked

    def test_reentry_from_oracle(self, pool, oracle, alice, bob):
        oracle.callback = lambda: pool.add_liquidity(alice, 10, 20)

        with pytest.raises(ReentrancyDetected):
            pool.swap(bob, 'A', 100, 0)

        assert pool.get_reserves() == (1000, 2000)
        assert pool.total_supply() == 3000

        oracle.callback = None
        assert pool.swap(bob, 'A', 100, 0) == 180

    def test_read_only_queries_allowed_mid_operation(self, pool, oracle, bob):
        seen = []
        pool.asset_a.hook = lambda: seen.append(
            (pool.locked, pool.get_reserves(), pool.total_supply(), pool.quote('A', 100))
        )

        pool.swap(bob, 'A', 100, 0)

        assert oracle.observed[-1] == (True, (1000, 2000))
        assert seen == [(True, (1000, 2000), 3000, 180)]
        assert not pool.locked

    def test_guard_released_after_failure(self, pool, alice):
        with pytest.raises(InvalidAmount):
            pool.add_liquidity(alice, 0, 0)

        assert not pool.locked
        assert pool.add_liquidity(alice, 100, 200) == 300


class TestReentrancyGuard:

    def test_nested_hold_rejected(self):
        guard = ReentrancyGuard()

        with guard.hold('outer'):
            assert guard.locked
            assert guard.active_operation == 'outer'
            with pytest.raises(ReentrancyDetected, match="inner attempted while outer"):
                with guard.hold('inner'):
                    pass
            # Failed re-entry leaves the outer hold intact
            assert guard.active_operation == 'outer'

        assert not guard.locked

    def test_released_on_exception(self):
        guard = ReentrancyGuard()

        with pytest.raises(RuntimeError):
            with guard.hold('op'):
                raise RuntimeError("boom")

        assert not guard.locked


class TestBalanceProbe:

    def test_measures_net_movement(self):
        ledger = InMemoryAssetLedger('A', transfer_fee_bps=250)
        sender, pool = b'\x01' * 20, b'\x02' * 20
        ledger.credit(sender, 1000)

        inbound = BalanceProbe(ledger, pool)
        outbound = BalanceProbe(ledger, sender)
        ledger.transfer_from(sender, pool, 400)

        assert inbound.delta() == 390
        assert outbound.delta() == -400


class TestJournal:

    def test_restores_state_and_ledgers(self):
        holder = SimpleNamespace(state=PoolState({'reserve_a': 10, 'reserve_b': 20, 'shares': None}))
        ledger = InMemoryAssetLedger('A')
        account = b'\x03' * 20
        ledger.credit(account, 5)

        with pytest.raises(RuntimeError):
            with journal(holder, [ledger]):
                holder.state.reserve_a = 99
                holder.state.shares.mint(account, 7)
                ledger.credit(account, 100)
                raise RuntimeError("boom")

        assert holder.state.reserve_a == 10
        assert holder.state.total_shares == 0
        assert ledger.balance_of(account) == 5

    def test_restores_uint256_sized_state(self):
        big = 2**200
        holder = SimpleNamespace(state=PoolState({'reserve_a': big, 'reserve_b': big, 'shares': None}))

        with pytest.raises(RuntimeError):
            with journal(holder, []):
                holder.state.reserve_a = 1
                raise RuntimeError("boom")

        assert holder.state.reserve_a == big
        assert holder.state.reserve_b == big

    def test_keeps_changes_on_success(self):
        holder = SimpleNamespace(state=PoolState())
        ledger = InMemoryAssetLedger('A')

        with journal(holder, [ledger]):
            holder.state.reserve_a = 1
            ledger.credit(b'\x04' * 20, 3)

        assert holder.state.reserve_a == 1
        assert ledger.balance_of(b'\x04' * 20) == 3
