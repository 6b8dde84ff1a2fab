"""Domain exceptions raised by the game engines and workflows.

Every exception carries a stable ``code`` so that the request layer can tell
"pool exhausted" apart from "feature disabled" or "already played" without
parsing messages, plus the HTTP status the request layer should answer with.
"""

from __future__ import annotations

from typing import Optional


class LixiError(Exception):
    """Base class for all domain errors."""

    code: str = "internal_error"
    http_status: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class GameDisabledError(LixiError):
    code = "game_disabled"
    http_status = 403
    default_message = "Game is currently disabled"


class NoPrizeAvailableError(LixiError):
    code = "no_prize_available"
    http_status = 409
    default_message = "No prizes left"


class AllocationFailedError(LixiError, RuntimeError):
    """Allocation retry budget exhausted, or a non-retryable store failure."""

    code = "allocation_failed"
    http_status = 503
    default_message = "Unable to allocate prize after retries"


class ClaimNotFoundError(LixiError, LookupError):
    code = "claim_not_found"
    http_status = 404
    default_message = "Claim not found"


class ClaimAlreadyPaidError(LixiError, ValueError):
    code = "claim_already_paid"
    http_status = 400
    default_message = "Claim is already paid"


class WagerDisabledError(LixiError, ValueError):
    code = "double_or_nothing_disabled"
    http_status = 400
    default_message = "Double or nothing is disabled"


class WagerAlreadyPlayedError(LixiError, ValueError):
    code = "double_or_nothing_already_played"
    http_status = 400
    default_message = "Double or nothing already played"


class PayoutValidationError(LixiError, ValueError):
    code = "invalid_payout_details"
    http_status = 400
    default_message = "Invalid payout details"


class BankInfoMissingError(PayoutValidationError):
    code = "bank_info_missing"
    default_message = "Claim has no bank information yet"


class PlayLimitReachedError(LixiError):
    code = "already_played_on_device"
    http_status = 429
    default_message = "You already opened an envelope on this device"


class PayoutEncodingError(LixiError, RuntimeError):
    """The encoder produced output that breaks the wire format.

    This is a programming defect, never a user input problem.
    """

    code = "payout_encoding_defect"
    http_status = 500
    default_message = "Payout payload failed its encoding invariants"


__all__ = [
    "AllocationFailedError",
    "BankInfoMissingError",
    "ClaimAlreadyPaidError",
    "ClaimNotFoundError",
    "GameDisabledError",
    "LixiError",
    "NoPrizeAvailableError",
    "PayoutEncodingError",
    "PayoutValidationError",
    "PlayLimitReachedError",
    "WagerAlreadyPlayedError",
    "WagerDisabledError",
]
