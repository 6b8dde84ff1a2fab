"""Persisted singleton holding the active game configuration."""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..config.settings import DEFAULT_GAME_SETTINGS, GameSettings
from .base import Base

GAME_CONFIG_KEY = "default"


class GameConfig(Base):
    """Single configuration row, keyed by :data:`GAME_CONFIG_KEY`.

    Values written here must come out of
    :func:`tetlixi.config.settings.normalize_game_settings`; use
    :meth:`apply_settings` rather than assigning columns directly.
    """

    __tablename__ = "game_config"

    key: Mapped[str] = mapped_column(String(32), primary_key=True)
    is_game_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    envelope_count: Mapped[int] = mapped_column(Integer, nullable=False)
    prize_count: Mapped[int] = mapped_column(Integer, nullable=False)
    min_amount_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    max_amount_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    step_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    enable_double_or_nothing: Mapped[bool] = mapped_column(Boolean, nullable=False)
    double_or_nothing_probability: Mapped[float] = mapped_column(Float, nullable=False)
    double_multiplier: Mapped[int] = mapped_column(Integer, nullable=False)
    floor_on_lose_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    cap_on_win_vnd: Mapped[int] = mapped_column(Integer, nullable=False)
    allow_double_or_nothing_once_per_claim: Mapped[bool] = mapped_column(
        Boolean, nullable=False
    )
    bank_last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    """When the bank directory was last synchronized, if ever."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<GameConfig(key='{self.key}', enabled={self.is_game_enabled}, "
            f"prize_count={self.prize_count}, "
            f"range={self.min_amount_vnd}-{self.max_amount_vnd}/{self.step_vnd})>"
        )

    @classmethod
    def from_settings(
        cls, settings: GameSettings, key: str = GAME_CONFIG_KEY
    ) -> "GameConfig":
        config = cls(key=key)
        config.apply_settings(settings)
        return config

    @classmethod
    def get_or_create(cls, session: Session) -> "GameConfig":
        """Return the configuration row, creating it with defaults on first access."""

        config = session.get(cls, GAME_CONFIG_KEY)
        if config is None:
            config = cls.from_settings(DEFAULT_GAME_SETTINGS)
            session.add(config)
            session.flush()
        return config

    def to_settings(self) -> GameSettings:
        """Snapshot the row as an immutable :class:`GameSettings`."""

        return GameSettings(
            **{field.name: getattr(self, field.name) for field in fields(GameSettings)}
        )

    def apply_settings(self, settings: GameSettings) -> None:
        for field in fields(GameSettings):
            setattr(self, field.name, getattr(settings, field.name))
