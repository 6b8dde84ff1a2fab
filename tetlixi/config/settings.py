"""Game configuration values and the normalization contract that guards them."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping, Optional

from ..randomness import DEFAULT_RANDOM_SOURCE, RandomSource
from .parsing import clamp, parse_bool, parse_float, parse_int

MIN_STEP_VND = 1000
MIN_AMOUNT_VND = 1000
MIN_FLOOR_ON_LOSE_VND = 1000


@dataclass(frozen=True)
class GameSettings:
    """Immutable snapshot of the game configuration.

    Engines receive a snapshot instead of reading the persisted row so that
    a single operation always sees one consistent configuration.
    """

    is_game_enabled: bool
    envelope_count: int
    prize_count: int
    min_amount_vnd: int
    max_amount_vnd: int
    step_vnd: int
    enable_double_or_nothing: bool
    double_or_nothing_probability: float
    double_multiplier: int
    floor_on_lose_vnd: int
    cap_on_win_vnd: int
    allow_double_or_nothing_once_per_claim: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_changes(self, **changes: Any) -> "GameSettings":
        """Return a copy with ``changes`` applied, bypassing normalization.

        Intended for tests and fixtures; admin input must go through
        :func:`normalize_game_settings`.
        """
        return replace(self, **changes)


DEFAULT_GAME_SETTINGS = GameSettings(
    is_game_enabled=True,
    envelope_count=10,
    prize_count=10,
    min_amount_vnd=10000,
    max_amount_vnd=200000,
    step_vnd=10000,
    enable_double_or_nothing=False,
    double_or_nothing_probability=0.5,
    double_multiplier=2,
    floor_on_lose_vnd=10000,
    cap_on_win_vnd=200000,
    allow_double_or_nothing_once_per_claim=True,
)

# camelCase spellings accepted from JSON clients.
FIELD_ALIASES = {
    "is_game_enabled": "isGameEnabled",
    "envelope_count": "envelopeCount",
    "prize_count": "prizeCount",
    "min_amount_vnd": "minAmountVnd",
    "max_amount_vnd": "maxAmountVnd",
    "step_vnd": "stepVnd",
    "enable_double_or_nothing": "enableDoubleOrNothing",
    "double_or_nothing_probability": "doubleOrNothingProbability",
    "double_multiplier": "doubleMultiplier",
    "floor_on_lose_vnd": "floorOnLoseVnd",
    "cap_on_win_vnd": "capOnWinVnd",
    "allow_double_or_nothing_once_per_claim": "allowDoubleOrNothingOncePerClaim",
}


@dataclass(frozen=True)
class AmountRange:
    """Step-aligned amount range; every member is a multiple of ``step``."""

    min: int
    max: int
    step: int

    def values(self) -> list[int]:
        return list(range(self.min, self.max + 1, self.step))


def align_range(min_amount_vnd: int, max_amount_vnd: int, step_vnd: int) -> AmountRange:
    """Clamp and align a requested amount range to its step.

    ``min`` is rounded up and ``max`` down to a multiple of ``step``. When the
    rounding inverts the range, both collapse to the multiple of ``step``
    nearest the requested minimum.

    >>> align_range(15000, 15500, 10000)
    AmountRange(min=20000, max=20000, step=10000)
    """

    step = max(MIN_STEP_VND, step_vnd)
    raw_min = max(MIN_AMOUNT_VND, min_amount_vnd)
    raw_max = max(raw_min, max_amount_vnd)

    aligned_min = -(-raw_min // step) * step
    aligned_max = raw_max // step * step

    if aligned_min > aligned_max:
        # Round half up, matching the conventional rounding of amounts.
        nearest = (2 * raw_min + step) // (2 * step) * step
        aligned_min = aligned_max = max(step, nearest)

    return AmountRange(min=aligned_min, max=aligned_max, step=step)


def _lookup(proposed: Mapping[str, Any], field: str) -> Any:
    if field in proposed:
        return proposed[field]
    return proposed.get(FIELD_ALIASES[field])


def normalize_game_settings(
    proposed: Any,
    current: Optional[GameSettings] = None,
) -> GameSettings:
    """Merge ``proposed`` into ``current`` and return an internally consistent config.

    Parameters
    ----------
    proposed : Any
        Loosely typed update, usually decoded JSON. Keys may be snake_case or
        camelCase; unknown keys are ignored and a non-mapping is treated as
        an empty update.
    current : Optional[GameSettings], default: None
        Configuration the update applies to. Every field that fails to parse
        keeps its current value. Defaults to :data:`DEFAULT_GAME_SETTINGS`.

    Returns
    -------
    GameSettings
        Normalized configuration: pool sizes are at least one, the amount
        range is step aligned, the probability lies in ``[0, 1]`` and the win
        cap never drops below the minimum prize amount.
    """

    base = current or DEFAULT_GAME_SETTINGS
    update: Mapping[str, Any] = proposed if isinstance(proposed, Mapping) else {}

    def field(name: str) -> Any:
        return _lookup(update, name)

    envelope_count = max(1, parse_int(field("envelope_count"), base.envelope_count))
    requested_prize_count = parse_int(field("prize_count"), base.prize_count)
    prize_count = requested_prize_count if requested_prize_count > 0 else envelope_count

    amounts = align_range(
        parse_int(field("min_amount_vnd"), base.min_amount_vnd),
        parse_int(field("max_amount_vnd"), base.max_amount_vnd),
        parse_int(field("step_vnd"), base.step_vnd),
    )

    probability = clamp(
        parse_float(
            field("double_or_nothing_probability"), base.double_or_nothing_probability
        ),
        0.0,
        1.0,
    )

    return GameSettings(
        is_game_enabled=parse_bool(field("is_game_enabled"), base.is_game_enabled),
        envelope_count=envelope_count,
        prize_count=prize_count,
        min_amount_vnd=amounts.min,
        max_amount_vnd=amounts.max,
        step_vnd=amounts.step,
        enable_double_or_nothing=parse_bool(
            field("enable_double_or_nothing"), base.enable_double_or_nothing
        ),
        double_or_nothing_probability=probability,
        double_multiplier=max(
            1, parse_int(field("double_multiplier"), base.double_multiplier)
        ),
        floor_on_lose_vnd=max(
            MIN_FLOOR_ON_LOSE_VND,
            parse_int(field("floor_on_lose_vnd"), base.floor_on_lose_vnd),
        ),
        cap_on_win_vnd=max(
            amounts.min, parse_int(field("cap_on_win_vnd"), base.cap_on_win_vnd)
        ),
        allow_double_or_nothing_once_per_claim=parse_bool(
            field("allow_double_or_nothing_once_per_claim"),
            base.allow_double_or_nothing_once_per_claim,
        ),
    )


def generate_prize_amounts(
    settings: GameSettings,
    random_source: Optional[RandomSource] = None,
) -> list[int]:
    """Sample ``prize_count`` amounts uniformly, with replacement, from the range."""

    rng = random_source or DEFAULT_RANDOM_SOURCE
    candidates = align_range(
        settings.min_amount_vnd, settings.max_amount_vnd, settings.step_vnd
    ).values()
    count = max(1, settings.prize_count)
    return [candidates[rng.randbelow(len(candidates))] for _ in range(count)]


__all__ = [
    "AmountRange",
    "DEFAULT_GAME_SETTINGS",
    "GameSettings",
    "align_range",
    "generate_prize_amounts",
    "normalize_game_settings",
]
