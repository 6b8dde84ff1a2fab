"""Migrate the configured database and make it ready to host a game.

After the migrations run, the game configuration row is created with its
defaults if it is missing. An empty prize table is seeded from that
configuration. An existing pool is left alone, so the script is safe to
re-run against a live game.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from tetlixi.db.engine import get_sessionmaker, make_engine
from tetlixi.models import Claim, GameConfig, Prize
from tetlixi.workflows import reset_game_state

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def bootstrap_game(Session) -> str:
    """Create the config row and seed an empty pool; return a one-line status."""

    with Session.begin() as session:
        settings = GameConfig.get_or_create(session).to_settings()
        if session.scalar(select(Prize.id).limit(1)) is not None:
            available = Prize.count_available(session)
            claimed = session.scalar(select(func.count()).select_from(Claim))
            return f"Existing pool kept: {available} prizes available, {claimed} claimed."
        summary = reset_game_state(session)
    return (
        f"Seeded {summary.prize_count} prizes "
        f"({settings.min_amount_vnd}-{settings.max_amount_vnd} VND, "
        f"{summary.envelope_count} envelopes)."
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    upgrade_db()
    engine = make_engine()
    try:
        print(bootstrap_game(get_sessionmaker(engine)))
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
