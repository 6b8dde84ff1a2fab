from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .game_config import GameConfig, GAME_CONFIG_KEY  # noqa: F401
from .prize import (  # noqa: F401
    Claim,
    ClaimStatus,
    Prize,
    PrizeStatus,
    WagerOutcome,
)
from .bank import Bank  # noqa: F401
from .device import DevicePlayAllowance  # noqa: F401

__all__ = [
    "Base",
    "Bank",
    "Claim",
    "ClaimStatus",
    "DevicePlayAllowance",
    "GAME_CONFIG_KEY",
    "GameConfig",
    "Prize",
    "PrizeStatus",
    "WagerOutcome",
]
