"""Race-safe allocation of prizes from the pool."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ..config.settings import GameSettings
from ..db.utils import is_retryable_db_error
from ..errors import AllocationFailedError, GameDisabledError, NoPrizeAvailableError
from ..models import Claim, ClaimStatus, Prize, PrizeStatus
from ..payout.text import build_default_transfer_note
from ..randomness import DEFAULT_RANDOM_SOURCE, RandomSource

logger = logging.getLogger(__name__)

CLAIM_RETRIES = 8


@dataclass(frozen=True)
class PrizeAllocation:
    """A prize successfully converted into a claim."""

    claim_id: str
    prize_id: int
    amount_vnd: int
    transfer_note: str


class AttemptStatus(enum.Enum):
    SUCCESS = "success"
    NO_PRIZE_AVAILABLE = "no_prize_available"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class AllocationAttempt:
    """Outcome of one transactional allocation attempt.

    Attributes
    ----------
    status : AttemptStatus
        Tag telling the retry loop what to do next.
    allocation : Optional[PrizeAllocation]
        Populated only for ``SUCCESS``.
    reason : Optional[str]
        Short description of why a ``RETRYABLE`` or ``FATAL`` attempt failed.
    error : Optional[BaseException]
        Store error behind a ``FATAL`` attempt, chained onto the raised error.
    """

    status: AttemptStatus
    allocation: Optional[PrizeAllocation] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, allocation: PrizeAllocation) -> "AllocationAttempt":
        return cls(AttemptStatus.SUCCESS, allocation=allocation)

    @classmethod
    def no_prize_available(cls) -> "AllocationAttempt":
        return cls(AttemptStatus.NO_PRIZE_AVAILABLE)

    @classmethod
    def retryable(cls, reason: str) -> "AllocationAttempt":
        return cls(AttemptStatus.RETRYABLE, reason=reason)

    @classmethod
    def fatal(cls, reason: str, error: BaseException) -> "AllocationAttempt":
        return cls(AttemptStatus.FATAL, reason=reason, error=error)


class AllocationEngine:
    """Hands out one random unclaimed prize per call, exactly once per prize.

    Each attempt runs in its own serializable transaction: count the NEW
    prizes, pick a random offset into them under a stable ordering, flip that
    prize to CLAIMED only if it is still NEW, then create the claim. Losing a
    race on any of those steps aborts the attempt and the whole sequence is
    retried against the live pool, up to ``max_attempts`` times.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        random_source: Optional[RandomSource] = None,
        max_attempts: int = CLAIM_RETRIES,
        on_prize_selected: Optional[Callable[[int], None]] = None,
    ) -> None:
        """Create an allocation engine.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory producing sessions bound to the transactional store. A
            fresh session is opened for every attempt.
        random_source : Optional[RandomSource], default: None
            Source for the offset draw. Defaults to the shared pseudo-random
            source.
        max_attempts : int, default: 8
            Upper bound on transactional attempts per call.
        on_prize_selected : Optional[Callable[[int], None]], default: None
            Called with the selected prize id between selection and the
            conditional status update. Lets tests inject a concurrent
            winner deterministically.
        """

        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self._random = random_source or DEFAULT_RANDOM_SOURCE
        self._max_attempts = max_attempts
        self._on_prize_selected = on_prize_selected

    def claim(self, settings: GameSettings) -> PrizeAllocation:
        """Allocate a random available prize and create its claim.

        Parameters
        ----------
        settings : GameSettings
            Configuration snapshot fetched by the caller.

        Returns
        -------
        PrizeAllocation
            The new claim id together with the prize amount.

        Raises
        ------
        GameDisabledError
            If the game is switched off. Nothing is read or written.
        NoPrizeAvailableError
            If the pool has no NEW prize left. Never retried.
        AllocationFailedError
            If every attempt lost its race, or the store failed in a way that
            retrying cannot fix.
        """

        if not settings.is_game_enabled:
            raise GameDisabledError()

        for attempt_number in range(1, self._max_attempts + 1):
            attempt = self._run_attempt()

            if attempt.status is AttemptStatus.SUCCESS:
                assert attempt.allocation is not None
                logger.info(
                    f"Allocated prize {attempt.allocation.prize_id} to claim "
                    f"{attempt.allocation.claim_id} on attempt {attempt_number}"
                )
                return attempt.allocation
            if attempt.status is AttemptStatus.NO_PRIZE_AVAILABLE:
                raise NoPrizeAvailableError()
            if attempt.status is AttemptStatus.FATAL:
                logger.error(f"Prize allocation failed: {attempt.reason}")
                raise AllocationFailedError(
                    f"Prize allocation failed: {attempt.reason}"
                ) from attempt.error

            logger.debug(
                f"Retrying prize allocation ({attempt_number}/{self._max_attempts}): "
                f"{attempt.reason}"
            )

        logger.warning(
            f"Prize allocation gave up after {self._max_attempts} contended attempts"
        )
        raise AllocationFailedError(
            f"Unable to allocate prize after {self._max_attempts} attempts"
        )

    def _run_attempt(self) -> AllocationAttempt:
        """Run one attempt in a fresh transaction, committing only on success."""

        with self._session_factory() as session:
            try:
                attempt = self._allocate(session)
                if attempt.status is AttemptStatus.SUCCESS:
                    session.commit()
                else:
                    session.rollback()
                return attempt
            except (OperationalError, IntegrityError) as exc:
                session.rollback()
                reason = str(exc.orig)
                if is_retryable_db_error(exc):
                    return AllocationAttempt.retryable(reason)
                return AllocationAttempt.fatal(reason, exc)

    def _allocate(self, session: Session) -> AllocationAttempt:
        available = session.scalar(
            select(func.count()).select_from(Prize).where(Prize.status == PrizeStatus.NEW)
        )
        if not available:
            return AllocationAttempt.no_prize_available()

        offset = self._random.randbelow(available)
        row = session.execute(
            select(Prize.id, Prize.code, Prize.amount_vnd)
            .where(Prize.status == PrizeStatus.NEW)
            .order_by(Prize.id.asc())
            .offset(offset)
            .limit(1)
        ).first()
        if row is None:
            return AllocationAttempt.retryable("prize disappeared before claim creation")

        if self._on_prize_selected is not None:
            self._on_prize_selected(row.id)

        result = session.execute(
            update(Prize)
            .where(Prize.id == row.id, Prize.status == PrizeStatus.NEW)
            .values(status=PrizeStatus.CLAIMED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return AllocationAttempt.retryable("lost race while updating prize status")

        transfer_note = build_default_transfer_note(row.code)
        claim = Claim(
            prize_id=row.id,
            status=ClaimStatus.CLAIMED,
            transfer_note=transfer_note,
            claimed_at=datetime.now(timezone.utc),
        )
        session.add(claim)
        session.flush()

        return AllocationAttempt.success(
            PrizeAllocation(
                claim_id=claim.id,
                prize_id=row.id,
                amount_vnd=row.amount_vnd,
                transfer_note=transfer_note,
            )
        )


__all__ = [
    "AllocationAttempt",
    "AllocationEngine",
    "AttemptStatus",
    "CLAIM_RETRIES",
    "PrizeAllocation",
]
