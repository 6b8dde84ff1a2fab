import unittest

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from tetlixi.config import DEFAULT_GAME_SETTINGS
from tetlixi.errors import ClaimAlreadyPaidError
from tetlixi.models import (
    Base,
    Claim,
    ClaimStatus,
    GameConfig,
    Prize,
    PrizeStatus,
)
from tetlixi.models.utils import PRIZE_CODE_ALPHABET, generate_unique_prize_code


class PrizeModelTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_amount_must_be_positive_integer(self):
        for amount in (0, -10000, 1.5, True, "10000"):
            with self.subTest(amount=amount):
                with self.assertRaises(ValueError):
                    Prize(amount_vnd=amount, code="CODE00000001")

    def test_status_only_moves_forward(self):
        prize = Prize(amount_vnd=10000, code="CODE00000001")
        prize.status = PrizeStatus.CLAIMED
        prize.status = PrizeStatus.PAID
        with self.assertRaises(ValueError):
            prize.status = PrizeStatus.NEW

    def test_one_claim_per_prize(self):
        with self.Session.begin() as session:
            prize = Prize(amount_vnd=10000, code="CODE00000001")
            session.add(prize)
            session.flush()
            prize_id = prize.id

        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                session.add_all([Claim(prize_id=prize_id), Claim(prize_id=prize_id)])

    def test_paid_claim_is_frozen(self):
        with self.Session.begin() as session:
            prize = Prize(amount_vnd=10000, code="CODE00000001", status=PrizeStatus.CLAIMED)
            claim = Claim(prize=prize)
            session.add(claim)
            session.flush()
            claim.mark_paid(session, paid_ref="FT001")

            self.assertEqual(claim.status, ClaimStatus.PAID)
            self.assertEqual(prize.status, PrizeStatus.PAID)
            with self.assertRaises(ClaimAlreadyPaidError):
                claim.final_amount_vnd = 1
            with self.assertRaises(ClaimAlreadyPaidError):
                claim.mark_paid(session)

    def test_payable_amount_prefers_wager_result(self):
        prize = Prize(amount_vnd=50000, code="CODE00000001")
        claim = Claim(prize=prize)
        self.assertEqual(claim.payable_amount_vnd, 50000)
        claim.final_amount_vnd = 10000
        self.assertEqual(claim.payable_amount_vnd, 10000)

    def test_generate_unique_prize_code(self):
        with self.Session.begin() as session:
            code = generate_unique_prize_code(session)
            self.assertEqual(len(code), 12)
            self.assertTrue(set(code) <= set(PRIZE_CODE_ALPHABET))
            session.add(Prize(amount_vnd=10000, code=code))
            self.assertNotEqual(generate_unique_prize_code(session), code)


class GameConfigModelTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_get_or_create_is_singleton(self):
        with self.Session.begin() as session:
            first = GameConfig.get_or_create(session)
            second = GameConfig.get_or_create(session)
            self.assertIs(first, second)
            self.assertEqual(first.to_settings(), DEFAULT_GAME_SETTINGS)

    def test_apply_settings_round_trips(self):
        settings = DEFAULT_GAME_SETTINGS.with_changes(
            prize_count=3, double_or_nothing_probability=0.25
        )
        with self.Session.begin() as session:
            GameConfig.get_or_create(session).apply_settings(settings)
        with self.Session() as session:
            self.assertEqual(GameConfig.get_or_create(session).to_settings(), settings)


if __name__ == "__main__":
    unittest.main()
