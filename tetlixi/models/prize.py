"""Database models for the prize pool and the claims made against it."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    select,
    update,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from ..errors import ClaimAlreadyPaidError
from .base import ID_TYPE, Base


class PrizeStatus(str, enum.Enum):
    NEW = "NEW"
    CLAIMED = "CLAIMED"
    PAID = "PAID"


class ClaimStatus(str, enum.Enum):
    CLAIMED = "CLAIMED"
    PAID = "PAID"


class WagerOutcome(str, enum.Enum):
    WIN = "WIN"
    LOSE = "LOSE"


# Prize status only ever moves forward.
_PRIZE_STATUS_ORDER = {
    PrizeStatus.NEW: 0,
    PrizeStatus.CLAIMED: 1,
    PrizeStatus.PAID: 2,
}


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(enum_cls, name=name, native_enum=False, length=16)


class Prize(Base):
    """A single redeemable envelope amount in the pool."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key; also the stable ordering used when drawing a prize."""

    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    """Random public code; seeds the claim's default transfer note."""

    amount_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    """Prize amount in dong. Always a positive integer."""

    status: Mapped[PrizeStatus] = mapped_column(
        _enum_column(PrizeStatus, "prize_status"),
        nullable=False,
        default=PrizeStatus.NEW,
    )
    """Lifecycle status (NEW -> CLAIMED -> PAID)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    claim: Mapped[Optional["Claim"]] = relationship(back_populates="prize")
    """The claim that owns this prize, once allocated."""

    __table_args__ = (
        CheckConstraint("amount_vnd > 0", name="amount_positive"),
        Index("ix_prizes_status_id", "status", "id"),
    )

    def __init__(
        self,
        *,
        amount_vnd: int,
        code: str,
        status: PrizeStatus = PrizeStatus.NEW,
        created_at: Optional[datetime] = None,
    ) -> None:
        if isinstance(amount_vnd, bool) or not isinstance(amount_vnd, int) or amount_vnd <= 0:
            raise ValueError("amount_vnd must be a positive integer")
        self.amount_vnd = amount_vnd
        self.code = code
        self.status = status
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Prize(id={self.id}, code='{self.code}', amount_vnd={self.amount_vnd}, status={self.status})>"

    @validates("status")
    def _forbid_backward_transition(
        self, _key: str, value: PrizeStatus
    ) -> PrizeStatus:
        value = PrizeStatus(value)
        previous = self.__dict__.get("status")
        if previous is not None and _PRIZE_STATUS_ORDER[value] < _PRIZE_STATUS_ORDER[PrizeStatus(previous)]:
            raise ValueError(f"Prize status cannot move from {previous} back to {value}")
        return value

    @classmethod
    def count_available(cls, session: Session) -> int:
        """Return the number of prizes still waiting to be claimed."""

        stmt = select(func.count()).select_from(cls).where(cls.status == PrizeStatus.NEW)
        return session.scalar(stmt) or 0


class Claim(Base):
    """Record produced when a participant is granted one prize."""

    __tablename__ = "claims"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    prize_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("prizes.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    status: Mapped[ClaimStatus] = mapped_column(
        _enum_column(ClaimStatus, "claim_status"),
        nullable=False,
        default=ClaimStatus.CLAIMED,
    )
    final_amount_vnd: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Amount override written by double-or-nothing; ``None`` keeps the prize amount."""

    double_or_nothing_played: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    double_or_nothing_outcome: Mapped[Optional[WagerOutcome]] = mapped_column(
        _enum_column(WagerOutcome, "wager_outcome"), nullable=True
    )
    winner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    winner_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    bank_bin: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    bank_account_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    transfer_note: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    prize: Mapped["Prize"] = relationship(back_populates="claim")

    __table_args__ = (
        Index("ix_claims_status_claimed_at", "status", "claimed_at"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            "<Claim("
            f"id='{self.id}', prize_id={self.prize_id}, status={self.status}, "
            f"final_amount_vnd={self.final_amount_vnd}, "
            f"double_or_nothing_outcome={self.double_or_nothing_outcome}"
            ")>"
        )

    @validates(
        "final_amount_vnd",
        "double_or_nothing_played",
        "double_or_nothing_outcome",
        "winner_name",
        "winner_phone",
        "bank_bin",
        "bank_account_no",
        "transfer_note",
    )
    def _reject_changes_once_paid(self, _key: str, value):
        if self.status == ClaimStatus.PAID:
            raise ClaimAlreadyPaidError()
        return value

    @property
    def is_paid(self) -> bool:
        return self.status == ClaimStatus.PAID

    @property
    def payable_amount_vnd(self) -> int:
        """Amount to transfer: the wager result when set, else the prize amount."""

        if self.final_amount_vnd is not None:
            return self.final_amount_vnd
        return self.prize.amount_vnd

    @property
    def has_bank_info(self) -> bool:
        return bool(self.bank_bin) and bool(self.bank_account_no)

    @classmethod
    def get(cls, session: Session, claim_id: str) -> Optional["Claim"]:
        """Fetch a claim by id."""

        return session.get(cls, claim_id)

    @classmethod
    def get_pending(cls, session: Session) -> list["Claim"]:
        """Return unpaid claims, oldest first."""

        stmt = (
            select(cls)
            .where(cls.status == ClaimStatus.CLAIMED)
            .order_by(cls.claimed_at.asc(), cls.id.asc())
        )
        return list(session.scalars(stmt))

    def mark_paid(
        self,
        session: Session,
        *,
        paid_ref: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Move the claim and its prize to PAID.

        The transition is a conditional update on ``status == CLAIMED`` so a
        payout recorded concurrently by another session is never overwritten.

        Raises
        ------
        ClaimAlreadyPaidError
            If the claim was already paid.
        """

        if self.is_paid:
            raise ClaimAlreadyPaidError()

        result = session.execute(
            update(Claim)
            .where(Claim.id == self.id, Claim.status == ClaimStatus.CLAIMED)
            .values(
                status=ClaimStatus.PAID,
                paid_at=timestamp or datetime.now(timezone.utc),
                paid_ref=paid_ref,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.refresh(self)
            raise ClaimAlreadyPaidError()

        session.execute(
            update(Prize)
            .where(Prize.id == self.prize_id)
            .values(status=PrizeStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        session.refresh(self)
        session.refresh(self.prize)


__all__ = [
    "Claim",
    "ClaimStatus",
    "Prize",
    "PrizeStatus",
    "WagerOutcome",
]
