"""Game configuration values and their normalization."""

from .parsing import parse_bool, parse_float, parse_int
from .settings import (
    AmountRange,
    DEFAULT_GAME_SETTINGS,
    GameSettings,
    align_range,
    generate_prize_amounts,
    normalize_game_settings,
)

__all__ = [
    "AmountRange",
    "DEFAULT_GAME_SETTINGS",
    "GameSettings",
    "align_range",
    "generate_prize_amounts",
    "normalize_game_settings",
    "parse_bool",
    "parse_float",
    "parse_int",
]
