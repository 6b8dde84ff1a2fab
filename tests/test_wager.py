import os
import tempfile
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tetlixi.config import DEFAULT_GAME_SETTINGS
from tetlixi.db.engine import get_sessionmaker, make_engine
from tetlixi.errors import (
    ClaimAlreadyPaidError,
    ClaimNotFoundError,
    WagerAlreadyPlayedError,
    WagerDisabledError,
)
from tetlixi.game import WagerEngine, resolve_wager_amount
from tetlixi.models import Base, Claim, ClaimStatus, Prize, PrizeStatus, WagerOutcome
from tetlixi.randomness import SequenceRandomSource

ALWAYS_WIN = SequenceRandomSource(floats=(0.0,))
ALWAYS_LOSE = SequenceRandomSource(floats=(0.999,))


class ResolveWagerAmountTestCase(unittest.TestCase):
    def setUp(self):
        self.settings = DEFAULT_GAME_SETTINGS.with_changes(
            double_multiplier=2, cap_on_win_vnd=100000, floor_on_lose_vnd=5000
        )

    def test_win_multiplies(self):
        self.assertEqual(resolve_wager_amount(30000, True, self.settings), 60000)

    def test_win_is_capped(self):
        self.assertEqual(resolve_wager_amount(80000, True, self.settings), 100000)

    def test_lose_drops_to_floor(self):
        self.assertEqual(resolve_wager_amount(80000, False, self.settings), 5000)


class WagerEngineTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.settings = DEFAULT_GAME_SETTINGS.with_changes(
            enable_double_or_nothing=True,
            double_or_nothing_probability=0.5,
            double_multiplier=2,
            cap_on_win_vnd=200000,
            floor_on_lose_vnd=10000,
            allow_double_or_nothing_once_per_claim=True,
        )
        with self.Session.begin() as session:
            prize = Prize(amount_vnd=50000, code="WAGERPRIZE01", status=PrizeStatus.CLAIMED)
            claim = Claim(prize=prize, status=ClaimStatus.CLAIMED)
            session.add_all([prize, claim])
            session.flush()
            self.claim_id = claim.id

    def tearDown(self):
        self.engine.dispose()

    def _load_claim(self):
        with self.Session() as session:
            return session.get(Claim, self.claim_id)

    def test_certain_win(self):
        settings = self.settings.with_changes(double_or_nothing_probability=1.0)
        with self.Session.begin() as session:
            result = WagerEngine(session, random_source=ALWAYS_LOSE).play(
                self.claim_id, settings
            )

        self.assertEqual(result.outcome, WagerOutcome.WIN)
        self.assertEqual(result.previous_amount_vnd, 50000)
        self.assertEqual(result.final_amount_vnd, 100000)
        claim = self._load_claim()
        self.assertEqual(claim.final_amount_vnd, 100000)
        self.assertTrue(claim.double_or_nothing_played)
        self.assertEqual(claim.double_or_nothing_outcome, WagerOutcome.WIN)

    def test_certain_loss(self):
        settings = self.settings.with_changes(double_or_nothing_probability=0.0)
        with self.Session.begin() as session:
            result = WagerEngine(session, random_source=ALWAYS_WIN).play(
                self.claim_id, settings
            )

        self.assertEqual(result.outcome, WagerOutcome.LOSE)
        self.assertEqual(result.final_amount_vnd, 10000)
        self.assertEqual(self._load_claim().final_amount_vnd, 10000)

    def test_win_is_capped(self):
        settings = self.settings.with_changes(cap_on_win_vnd=80000)
        with self.Session.begin() as session:
            result = WagerEngine(session, random_source=ALWAYS_WIN).play(
                self.claim_id, settings
            )
        self.assertEqual(result.final_amount_vnd, 80000)

    def test_second_play_rejected_and_state_unchanged(self):
        with self.Session.begin() as session:
            WagerEngine(session, random_source=ALWAYS_WIN).play(
                self.claim_id, self.settings
            )

        with self.assertRaises(WagerAlreadyPlayedError):
            with self.Session.begin() as session:
                WagerEngine(session, random_source=ALWAYS_LOSE).play(
                    self.claim_id, self.settings
                )

        claim = self._load_claim()
        self.assertEqual(claim.final_amount_vnd, 100000)
        self.assertEqual(claim.double_or_nothing_outcome, WagerOutcome.WIN)

    def test_replay_allowed_when_once_policy_off(self):
        settings = self.settings.with_changes(allow_double_or_nothing_once_per_claim=False)
        with self.Session.begin() as session:
            WagerEngine(session, random_source=ALWAYS_WIN).play(self.claim_id, settings)
        with self.Session.begin() as session:
            result = WagerEngine(session, random_source=ALWAYS_WIN).play(
                self.claim_id, settings
            )

        self.assertEqual(result.previous_amount_vnd, 100000)
        self.assertEqual(result.final_amount_vnd, 200000)

    def test_disabled(self):
        settings = self.settings.with_changes(enable_double_or_nothing=False)
        with self.assertRaises(WagerDisabledError):
            with self.Session.begin() as session:
                WagerEngine(session).play(self.claim_id, settings)
        self.assertFalse(self._load_claim().double_or_nothing_played)

    def test_unknown_claim(self):
        with self.assertRaises(ClaimNotFoundError):
            with self.Session.begin() as session:
                WagerEngine(session).play("missing", self.settings)

    def test_paid_claim_rejected(self):
        with self.Session.begin() as session:
            session.get(Claim, self.claim_id).mark_paid(session, paid_ref="FT123")

        with self.assertRaises(ClaimAlreadyPaidError):
            with self.Session.begin() as session:
                WagerEngine(session, random_source=ALWAYS_WIN).play(
                    self.claim_id, self.settings
                )

        claim = self._load_claim()
        self.assertIsNone(claim.final_amount_vnd)
        self.assertFalse(claim.double_or_nothing_played)



class OverlappingWagerTestCase(unittest.TestCase):
    """Two sessions that both read the claim before either one plays."""

    def setUp(self):
        handle, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        self.engine = make_engine(f"sqlite:///{self.db_path}")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        self.settings = DEFAULT_GAME_SETTINGS.with_changes(
            enable_double_or_nothing=True,
            double_or_nothing_probability=0.5,
            allow_double_or_nothing_once_per_claim=True,
        )
        with self.Session.begin() as session:
            prize = Prize(amount_vnd=50000, code="WAGERPRIZE01", status=PrizeStatus.CLAIMED)
            claim = Claim(prize=prize, status=ClaimStatus.CLAIMED)
            session.add_all([prize, claim])
            session.flush()
            self.claim_id = claim.id

    def tearDown(self):
        self.engine.dispose()
        os.remove(self.db_path)

    def test_only_first_overlapping_play_commits(self):
        first = self.Session()
        second = self.Session()
        try:
            # Both sessions see an unplayed claim.
            self.assertFalse(first.get(Claim, self.claim_id).double_or_nothing_played)
            self.assertFalse(second.get(Claim, self.claim_id).double_or_nothing_played)

            result = WagerEngine(first, random_source=ALWAYS_WIN).play(
                self.claim_id, self.settings
            )
            first.commit()

            with self.assertRaises(WagerAlreadyPlayedError):
                WagerEngine(second, random_source=ALWAYS_LOSE).play(
                    self.claim_id, self.settings
                )
            second.rollback()
        finally:
            first.close()
            second.close()

        self.assertEqual(result.outcome, WagerOutcome.WIN)
        with self.Session() as session:
            claim = session.get(Claim, self.claim_id)
            self.assertEqual(claim.final_amount_vnd, 100000)
            self.assertEqual(claim.double_or_nothing_outcome, WagerOutcome.WIN)

    def test_play_after_overlapping_payout_is_rejected(self):
        first = self.Session()
        try:
            first.get(Claim, self.claim_id)

            with self.Session.begin() as session:
                session.get(Claim, self.claim_id).mark_paid(session, paid_ref="FT123")

            with self.assertRaises(ClaimAlreadyPaidError):
                WagerEngine(first, random_source=ALWAYS_WIN).play(
                    self.claim_id, self.settings
                )
            first.rollback()
        finally:
            first.close()

        with self.Session() as session:
            claim = session.get(Claim, self.claim_id)
            self.assertEqual(claim.status, ClaimStatus.PAID)
            self.assertIsNone(claim.final_amount_vnd)
            self.assertFalse(claim.double_or_nothing_played)


if __name__ == "__main__":
    unittest.main()
