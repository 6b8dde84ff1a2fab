from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base


class DevicePlayAllowance(Base):
    """Extra envelope openings granted by an admin to one device."""

    __tablename__ = "device_play_allowances"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    extra_plays_remaining: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("extra_plays_remaining >= 0", name="extra_plays_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<DevicePlayAllowance(device_id='{self.device_id}', "
            f"extra_plays_remaining={self.extra_plays_remaining})>"
        )

    @classmethod
    def get_by_device_id(
        cls, session: Session, device_id: str
    ) -> Optional["DevicePlayAllowance"]:
        return session.scalar(select(cls).where(cls.device_id == device_id))
