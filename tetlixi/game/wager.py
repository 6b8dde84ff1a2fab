"""Double-or-nothing: a one-shot probabilistic rewrite of a claim's amount."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config.settings import GameSettings
from ..errors import (
    ClaimAlreadyPaidError,
    ClaimNotFoundError,
    WagerAlreadyPlayedError,
    WagerDisabledError,
)
from ..models import Claim, ClaimStatus, WagerOutcome
from ..randomness import DEFAULT_RANDOM_SOURCE, RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WagerResult:
    """Value object describing a completed double-or-nothing play.

    Attributes
    ----------
    claim_id : str
        Claim the wager was played on.
    outcome : WagerOutcome
        ``WIN`` or ``LOSE``.
    previous_amount_vnd : int
        Payable amount before the play.
    final_amount_vnd : int
        Payable amount after the play.
    """

    claim_id: str
    outcome: WagerOutcome
    previous_amount_vnd: int
    final_amount_vnd: int


def resolve_wager_amount(current_amount_vnd: int, won: bool, settings: GameSettings) -> int:
    """Return the amount after a wager: multiplied and capped on a win, the floor on a loss."""

    if won:
        return min(current_amount_vnd * settings.double_multiplier, settings.cap_on_win_vnd)
    return settings.floor_on_lose_vnd


class WagerEngine:
    """Applies the double-or-nothing transformation inside the caller's transaction."""

    def __init__(
        self,
        session: Session,
        *,
        random_source: Optional[RandomSource] = None,
    ) -> None:
        self._session = session
        self._random = random_source or DEFAULT_RANDOM_SOURCE

    def play(self, claim_id: str, settings: GameSettings) -> WagerResult:
        """Play double-or-nothing once on ``claim_id``.

        Every precondition is checked against ``settings`` and the claim's
        current row before anything is drawn. The result is then written with
        an update conditioned on the claim still being unpaid (and unplayed
        under the once-per-claim policy), so of two overlapping plays only
        one commits. A rejected call never mutates state.

        Raises
        ------
        WagerDisabledError
            If double-or-nothing is switched off.
        ClaimNotFoundError
            If the claim does not exist.
        ClaimAlreadyPaidError
            If the claim has been paid out.
        WagerAlreadyPlayedError
            If the claim already played and the once-per-claim policy is on.
        """

        if not settings.enable_double_or_nothing:
            raise WagerDisabledError()

        claim = self._session.get(Claim, claim_id)
        if claim is None:
            raise ClaimNotFoundError()
        if claim.status != ClaimStatus.CLAIMED:
            raise ClaimAlreadyPaidError()
        if settings.allow_double_or_nothing_once_per_claim and claim.double_or_nothing_played:
            raise WagerAlreadyPlayedError()

        current = claim.payable_amount_vnd
        won = self._random.random() < settings.double_or_nothing_probability
        final = resolve_wager_amount(current, won, settings)
        outcome = WagerOutcome.WIN if won else WagerOutcome.LOSE

        conditions = [Claim.id == claim.id, Claim.status == ClaimStatus.CLAIMED]
        if settings.allow_double_or_nothing_once_per_claim:
            conditions.append(Claim.double_or_nothing_played.is_(False))
        result = self._session.execute(
            update(Claim)
            .where(*conditions)
            .values(
                final_amount_vnd=final,
                double_or_nothing_played=True,
                double_or_nothing_outcome=outcome,
            )
            .execution_options(synchronize_session=False)
        )
        self._session.refresh(claim)
        if result.rowcount != 1:
            # A concurrent play or payout committed after the checks above.
            if claim.status != ClaimStatus.CLAIMED:
                raise ClaimAlreadyPaidError()
            raise WagerAlreadyPlayedError()

        logger.info(f"Claim {claim.id} played double-or-nothing: {outcome.value} {current} -> {final}")
        return WagerResult(
            claim_id=claim.id,
            outcome=outcome,
            previous_amount_vnd=current,
            final_amount_vnd=final,
        )


__all__ = ["WagerEngine", "WagerResult", "resolve_wager_amount"]
