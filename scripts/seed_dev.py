import logging

from tetlixi.db.engine import get_sessionmaker, make_engine
from tetlixi.models import Base
from tetlixi.workflows import (
    claim_prize,
    reset_game_state,
    update_claim_bank_info,
    update_game_config,
)


def main() -> None:
    """Seed the development database with a fresh prize pool and one claim."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    engine = make_engine()

    # Drop and recreate all tables. Foreign keys are switched off so that
    # claims and prizes drop cleanly regardless of order.
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()

    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        settings = update_game_config(
            session,
            {
                "envelopeCount": 12,
                "prizeCount": 12,
                "minAmountVnd": 10000,
                "maxAmountVnd": 100000,
                "stepVnd": 10000,
                "enableDoubleOrNothing": True,
                "doubleOrNothingProbability": 0.5,
            },
        )
        summary = reset_game_state(session)

    allocation = claim_prize(Session)
    with Session.begin() as session:
        update_claim_bank_info(
            session,
            allocation.claim_id,
            bank_bin="970436",
            bank_account_no="0123456789",
            winner_name="Nguyen Van A",
            winner_phone="0901234567",
        )

    print(
        f"Seeded {summary.prize_count} prizes "
        f"({settings.min_amount_vnd}-{settings.max_amount_vnd} VND) "
        f"and claim {allocation.claim_id} worth {allocation.amount_vnd} VND."
    )


if __name__ == "__main__":
    main()
