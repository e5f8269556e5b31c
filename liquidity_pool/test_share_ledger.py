"""
Test share ledger bookkeeping.
Mint/burn, per-holder balances and supply consistency checks.
"""
import unittest

from liquidity_pool.errors import InsufficientShares, InvalidAmount
from liquidity_pool.share_ledger import ShareLedger

ALICE = b'\xaa' * 20
BOB = b'\xbb' * 20


class TestShareLedger(unittest.TestCase):
    def setUp(self):
        """Set up an empty ledger."""
        self.ledger = ShareLedger()

    def test_initialization(self):
        """Test that a new ledger is empty."""
        self.assertEqual(self.ledger.total_supply(), 0)
        self.assertEqual(self.ledger.balance_of(ALICE), 0)
        self.assertEqual(self.ledger.holders(), [])

    def test_mint_accumulates(self):
        """Test multiple mints accumulate per holder and in supply."""
        self.ledger.mint(ALICE, 100)
        self.ledger.mint(ALICE, 50)
        self.ledger.mint(BOB, 25)

        self.assertEqual(self.ledger.balance_of(ALICE), 150)
        self.assertEqual(self.ledger.balance_of(BOB), 25)
        self.assertEqual(self.ledger.total_supply(), 175)
        self.assertEqual(self.ledger.total_minted, 175)

    def test_burn_reduces_supply(self):
        """Test burning shares from a holder."""
        self.ledger.mint(ALICE, 100)
        self.ledger.burn(ALICE, 30)

        self.assertEqual(self.ledger.balance_of(ALICE), 70)
        self.assertEqual(self.ledger.total_supply(), 70)
        self.assertEqual(self.ledger.total_burned, 30)

    def test_full_burn_removes_holder(self):
        """Test that burning to zero drops the holder entry."""
        self.ledger.mint(ALICE, 100)
        self.ledger.mint(BOB, 10)
        self.ledger.burn(ALICE, 100)

        self.assertEqual(self.ledger.holders(), [BOB])
        self.assertNotIn(ALICE, self.ledger.balances)

    def test_burn_more_than_balance(self):
        """Test that over-burning fails and leaves balances alone."""
        self.ledger.mint(ALICE, 10)

        with self.assertRaises(InsufficientShares):
            self.ledger.burn(ALICE, 11)

        self.assertEqual(self.ledger.balance_of(ALICE), 10)
        self.assertEqual(self.ledger.total_supply(), 10)

    def test_negative_amounts(self):
        """Test that negative mint/burn amounts are rejected."""
        with self.assertRaises(InvalidAmount):
            self.ledger.mint(ALICE, -1)
        with self.assertRaises(InvalidAmount):
            self.ledger.burn(ALICE, -1)

    def test_zero_mint_is_noop(self):
        """Test that minting zero does not create a holder."""
        self.ledger.mint(ALICE, 0)
        self.assertEqual(self.ledger.holders(), [])

    def test_persistence(self):
        """Test that a ledger survives to_dict/reload."""
        self.ledger.mint(ALICE, 500)
        self.ledger.burn(ALICE, 200)

        restored = ShareLedger(self.ledger.to_dict())

        self.assertEqual(restored.balance_of(ALICE), 300)
        self.assertEqual(restored.total_minted, 500)
        self.assertEqual(restored.total_burned, 200)

    def test_inconsistent_data_rejected(self):
        """Test that balances must add up to minted - burned."""
        with self.assertRaises(ValueError):
            ShareLedger({'balances': {ALICE: 10}, 'total_minted': 20, 'total_burned': 0})
        with self.assertRaises(ValueError):
            ShareLedger({'balances': {}, 'total_minted': 5, 'total_burned': 10})


if __name__ == '__main__':
    unittest.main()
