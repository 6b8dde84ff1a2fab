"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-15 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "game_config",
        sa.Column("key", sa.String(length=32), nullable=False),
        sa.Column("is_game_enabled", sa.Boolean(), nullable=False),
        sa.Column("envelope_count", sa.Integer(), nullable=False),
        sa.Column("prize_count", sa.Integer(), nullable=False),
        sa.Column("min_amount_vnd", sa.Integer(), nullable=False),
        sa.Column("max_amount_vnd", sa.Integer(), nullable=False),
        sa.Column("step_vnd", sa.Integer(), nullable=False),
        sa.Column("enable_double_or_nothing", sa.Boolean(), nullable=False),
        sa.Column("double_or_nothing_probability", sa.Float(), nullable=False),
        sa.Column("double_multiplier", sa.Integer(), nullable=False),
        sa.Column("floor_on_lose_vnd", sa.Integer(), nullable=False),
        sa.Column("cap_on_win_vnd", sa.Integer(), nullable=False),
        sa.Column("allow_double_or_nothing_once_per_claim", sa.Boolean(), nullable=False),
        sa.Column("bank_last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("key", name=op.f("pk_game_config")),
    )

    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("amount_vnd", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("NEW", "CLAIMED", "PAID", name="prize_status", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_vnd > 0", name=op.f("ck_prizes_amount_positive")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_prizes")),
        sa.UniqueConstraint("code", name=op.f("uq_prizes_code")),
    )
    op.create_index("ix_prizes_status_id", "prizes", ["status", "id"], unique=False)

    op.create_table(
        "claims",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column(
            "status",
            sa.Enum("CLAIMED", "PAID", name="claim_status", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("final_amount_vnd", sa.Integer(), nullable=True),
        sa.Column("double_or_nothing_played", sa.Boolean(), nullable=False),
        sa.Column(
            "double_or_nothing_outcome",
            sa.Enum("WIN", "LOSE", name="wager_outcome", native_enum=False, length=16),
            nullable=True,
        ),
        sa.Column("winner_name", sa.String(length=255), nullable=True),
        sa.Column("winner_phone", sa.String(length=32), nullable=True),
        sa.Column("bank_bin", sa.String(length=16), nullable=True),
        sa.Column("bank_account_no", sa.String(length=64), nullable=True),
        sa.Column("transfer_note", sa.String(length=64), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_ref", sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_claims_prize_id_prizes"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_claims")),
        sa.UniqueConstraint("prize_id", name=op.f("uq_claims_prize_id")),
    )
    op.create_index(
        "ix_claims_status_claimed_at", "claims", ["status", "claimed_at"], unique=False
    )

    op.create_table(
        "banks",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("bin", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("short_name", sa.String(length=100), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=True),
        sa.Column("swift_code", sa.String(length=32), nullable=True),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        sa.Column("local_logo_path", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_banks")),
        sa.UniqueConstraint("bin", name=op.f("uq_banks_bin")),
    )

    op.create_table(
        "device_play_allowances",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("device_id", sa.String(length=128), nullable=False),
        sa.Column("extra_plays_remaining", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "extra_plays_remaining >= 0",
            name=op.f("ck_device_play_allowances_extra_plays_non_negative"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_device_play_allowances")),
        sa.UniqueConstraint("device_id", name=op.f("uq_device_play_allowances_device_id")),
    )


def downgrade() -> None:
    op.drop_table("device_play_allowances")
    op.drop_table("banks")
    op.drop_index("ix_claims_status_claimed_at", table_name="claims")
    op.drop_table("claims")
    op.drop_index("ix_prizes_status_id", table_name="prizes")
    op.drop_table("prizes")
    op.drop_table("game_config")
