from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import ID_TYPE, Base


class Bank(Base):
    """Display metadata for a bank, keyed by its BIN."""

    __tablename__ = "banks"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bin: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    swift_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    local_logo_path: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # Public path of the mirrored logo, e.g. /banks/970436.png
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Bank(id={self.id}, bin='{self.bin}', short_name='{self.short_name}')>"

    @classmethod
    def get_by_bin(cls, session: Session, bin: str) -> Optional["Bank"]:
        """Fetch a bank by its BIN."""

        return session.scalar(select(cls).where(cls.bin == bin))

    @classmethod
    def list_ordered(cls, session: Session) -> list["Bank"]:
        """Return all banks ordered by short name, then BIN."""

        stmt = select(cls).order_by(cls.short_name.asc(), cls.bin.asc())
        return list(session.scalars(stmt))
