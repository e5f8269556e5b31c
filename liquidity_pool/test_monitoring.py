# liquidity_pool/test_monitoring.py
import pytest

from liquidity_pool.crypto import new_address
from liquidity_pool.errors import InvalidToken
from liquidity_pool.ledger import InMemoryAssetLedger
from liquidity_pool.monitoring import Monitor
from liquidity_pool.oracle import TWAPOracle
from liquidity_pool.pool import LiquidityPool


@pytest.fixture
def monitor():
    # Server is never started; metrics are read straight from the registry
    return Monitor(port=0)


@pytest.fixture
def provider():
    return new_address()


@pytest.fixture
def pool(monitor, provider):
    p = LiquidityPool(InMemoryAssetLedger('A'), InMemoryAssetLedger('B'),
                      TWAPOracle(clock=lambda: 0))
    p.oracle.attach(p)
    monitor.attach(p)
    p.asset_a.credit(provider, 10_000)
    p.asset_b.credit(provider, 10_000)
    return p


def sample(monitor, name, **labels):
    return monitor.registry.get_sample_value(name, labels)


def test_attach_links_pool(monitor, pool):
    assert pool.monitor is monitor
    assert sample(monitor, 'pool_total_shares') == 0


def test_operations_counted_by_status(monitor, pool, provider):
    pool.add_liquidity(provider, 1000, 2000)
    with pytest.raises(InvalidToken):
        pool.swap(provider, 'C', 100, 0)

    assert sample(monitor, 'pool_operations_total', operation='add_liquidity', status='ok') == 1
    assert sample(monitor, 'pool_operations_total', operation='swap', status='failed') == 1
    assert sample(monitor, 'pool_operation_latency_seconds_count', operation='swap') == 1


def test_gauges_follow_reserves(monitor, pool, provider):
    pool.add_liquidity(provider, 1000, 2000)
    pool.swap(provider, 'A', 100, 0)

    assert sample(monitor, 'pool_events_total', event='liquidity_added') == 1
    assert sample(monitor, 'pool_events_total', event='swap') == 1
    assert sample(monitor, 'pool_reserve', asset='A') == 1100
    assert sample(monitor, 'pool_reserve', asset='B') == 1820
    assert sample(monitor, 'pool_total_shares') == 3000
    assert sample(monitor, 'amm_invariant_k') == 1100 * 1820


def test_registries_are_isolated():
    first, second = Monitor(), Monitor()
    first.record_operation('swap', 'ok', 0.01)

    assert first.registry.get_sample_value(
        'pool_operations_total', {'operation': 'swap', 'status': 'ok'}) == 1
    assert second.registry.get_sample_value(
        'pool_operations_total', {'operation': 'swap', 'status': 'ok'}) is None


def test_stop_without_start_is_noop(monitor):
    monitor.stop_server()
    assert monitor.server is None
