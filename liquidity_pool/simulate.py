"""
Scenario replay tool.

Builds a pool over in-memory ledgers from a JSON scenario, replays its steps
against a simulated clock and prints every outcome plus the final pool stats.

Scenario format:
    {
      "accounts": {"alice": {"A": 10000, "B": 20000}},
      "transfer_fee_bps": {"A": 0, "B": 0},
      "steps": [
        {"op": "add_liquidity", "account": "alice", "amount_a": 1000, "amount_b": 2000},
        {"op": "advance", "seconds": 600},
        {"op": "swap", "account": "alice", "asset_in": "A", "amount_in": 100, "min_amount_out": 0},
        {"op": "remove_liquidity", "account": "alice", "shares": 1500}
      ]
    }
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from liquidity_pool.config import Config
from liquidity_pool.crypto import name_to_address
from liquidity_pool.errors import PoolError
from liquidity_pool.events import event_to_dict
from liquidity_pool.ledger import InMemoryAssetLedger
from liquidity_pool.monitoring import Monitor
from liquidity_pool.oracle import TWAPOracle
from liquidity_pool.pool import LiquidityPool

logger = logging.getLogger(__name__)


class SimulatedClock:
    """Manually advanced clock for the TWAP oracle."""

    def __init__(self, start: float = 0):
        self.now = start

    def advance(self, seconds: float):
        if seconds < 0:
            raise ValueError("Clock cannot run backwards")
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def build_pool(config: Config, scenario: dict, clock: SimulatedClock, monitor: Monitor = None):
    """Create ledgers, fund accounts and wire the oracle to a new pool."""
    fees = scenario.get('transfer_fee_bps', {})
    asset_a = InMemoryAssetLedger(config.pool.asset_a, fees.get(config.pool.asset_a, 0))
    asset_b = InMemoryAssetLedger(config.pool.asset_b, fees.get(config.pool.asset_b, 0))

    ledgers = {asset_a.asset_id: asset_a, asset_b.asset_id: asset_b}
    for name, holdings in scenario.get('accounts', {}).items():
        address = name_to_address(name)
        for asset_id, amount in holdings.items():
            if asset_id not in ledgers:
                raise ValueError(f"Account {name} funds unknown asset {asset_id}")
            ledgers[asset_id].credit(address, int(amount))

    oracle = TWAPOracle(window=config.oracle.window, clock=clock)
    pool = LiquidityPool(asset_a, asset_b, oracle, config=config.pool)
    oracle.attach(pool)
    if monitor is not None:
        monitor.attach(pool)
    return pool


def apply_step(pool: LiquidityPool, clock: SimulatedClock, step: dict) -> dict:
    op = step['op']

    if op == 'advance':
        clock.advance(step['seconds'])
        return {'now': clock()}

    account = name_to_address(step['account'])

    if op == 'add_liquidity':
        shares = pool.add_liquidity(account, step['amount_a'], step['amount_b'])
        return {'shares': shares}

    if op == 'remove_liquidity':
        amount_a, amount_b = pool.remove_liquidity(account, step['shares'])
        return {'amount_a': amount_a, 'amount_b': amount_b}

    if op == 'swap':
        received = pool.swap(
            account, step['asset_in'], step['amount_in'], step.get('min_amount_out', 0)
        )
        return {'received': received}

    raise ValueError(f"Unknown scenario op: {op}")


def run_scenario(config: Config, scenario: dict, monitor: Monitor = None) -> dict:
    """Replay every step; failed steps are reported and the replay continues."""
    clock = SimulatedClock(scenario.get('clock_start', 0))
    pool = build_pool(config, scenario, clock, monitor)

    results = []
    for index, step in enumerate(scenario.get('steps', [])):
        outcome = {'step': index, 'op': step['op']}
        try:
            outcome.update(apply_step(pool, clock, step))
            outcome['status'] = 'ok'
        except PoolError as e:
            outcome['status'] = 'failed'
            outcome['error'] = type(e).__name__
            outcome['message'] = str(e)
        results.append(outcome)

    return {
        'results': results,
        'events': [event_to_dict(event) for event in pool.events.log],
        'stats': pool.get_stats(),
    }


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Replay a liquidity pool scenario')
    parser.add_argument('--config', type=str, help='Path to config file')
    parser.add_argument('--scenario', type=str, required=True,
                        help='Path to scenario JSON file')
    parser.add_argument('--metrics', action='store_true',
                        help='Expose Prometheus metrics while replaying')

    args = parser.parse_args(argv)

    if args.config and Path(args.config).exists():
        config = Config.from_file(args.config)
    else:
        config = Config.default()

    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format=config.logging.format
    )

    with open(args.scenario, 'r') as f:
        scenario = json.load(f)

    monitor = None
    if args.metrics or config.monitoring.enabled:
        monitor = Monitor(host=config.monitoring.host, port=config.monitoring.port)
        monitor.start_server()

    try:
        report = run_scenario(config, scenario, monitor)
    finally:
        if monitor is not None:
            monitor.stop_server()

    json.dump(report, sys.stdout, indent=2)
    sys.stdout.write('\n')

    failed = sum(1 for r in report['results'] if r['status'] == 'failed')
    logger.info(f"Replayed {len(report['results'])} steps, {failed} failed")
    return 0


if __name__ == '__main__':
    sys.exit(main())
