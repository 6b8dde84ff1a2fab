import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import requests
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .banks.api import BankDirectoryClient
from .banks.utils import FALLBACK_BANKS, logo_extension_from_url, to_nullable_string
from .config.settings import GameSettings, generate_prize_amounts, normalize_game_settings
from .db.engine import ROOT_DIR
from .errors import (
    BankInfoMissingError,
    ClaimAlreadyPaidError,
    ClaimNotFoundError,
    PlayLimitReachedError,
)
from .game.allocation import AllocationEngine, PrizeAllocation
from .game.wager import WagerEngine, WagerResult
from .models import Bank, Claim, ClaimStatus, GameConfig, Prize, PrizeStatus, WagerOutcome
from .models.utils import generate_unique_prize_code
from .payout.text import build_default_transfer_note
from .payout.vietqr import build_payout_payload, clean_bank_fields
from .play_guard import consume_extra_play, refund_extra_play
from .randomness import RandomSource

logger = logging.getLogger(__name__)

PAID_REF_MAX_LENGTH = 64
LOGO_TTL = timedelta(days=7)
LOGO_PUBLIC_PREFIX = "/banks"


@dataclass(frozen=True)
class PoolResetSummary:
    prize_count: int
    envelope_count: int


@dataclass(frozen=True)
class ClaimView:
    """Read model of a claim as shown to its winner and to admins."""

    claim_id: str
    status: ClaimStatus
    amount_vnd: int
    base_amount_vnd: int
    final_amount_vnd: Optional[int]
    winner_name: Optional[str]
    winner_phone: Optional[str]
    bank_bin: Optional[str]
    bank_account_no: Optional[str]
    transfer_note: Optional[str]
    double_or_nothing_played: bool
    double_or_nothing_outcome: Optional[WagerOutcome]
    double_or_nothing_enabled: bool
    allow_double_or_nothing_once_per_claim: bool
    claimed_at: datetime
    paid_at: Optional[datetime]
    paid_ref: Optional[str]
    prize_status: PrizeStatus


@dataclass(frozen=True)
class PendingClaim:
    claim_id: str
    amount_vnd: int
    winner_name: Optional[str]
    winner_phone: Optional[str]
    bank_bin: Optional[str]
    bank_account_no: Optional[str]
    transfer_note: Optional[str]
    claimed_at: datetime


@dataclass(frozen=True)
class ClaimPayout:
    claim_id: str
    amount_vnd: int
    payload: str


@dataclass(frozen=True)
class BankSyncSummary:
    total: int
    logos_downloaded: int
    last_synced_at: datetime


@dataclass(frozen=True)
class BankListing:
    bin: str
    name: str
    short_name: str
    code: Optional[str]
    logo_path: Optional[str]


# ---------------------------------------------------------------------------
# Configuration and pool
# ---------------------------------------------------------------------------


def load_game_settings(session: Session) -> GameSettings:
    """Return the current configuration snapshot, creating defaults on first use."""

    return GameConfig.get_or_create(session).to_settings()


def update_game_config(session: Session, proposed: Any) -> GameSettings:
    """Apply an admin update to the stored configuration.

    ``proposed`` is loosely typed input (usually decoded JSON). It is always
    merged through :func:`normalize_game_settings`, never written directly.
    """

    config = GameConfig.get_or_create(session)
    settings = normalize_game_settings(proposed, config.to_settings())
    config.apply_settings(settings)
    session.flush()
    logger.info(f"Game configuration updated: {settings}")
    return settings


def reset_game_state(
    session: Session,
    *,
    random_source: Optional[RandomSource] = None,
) -> PoolResetSummary:
    """Discard every claim and prize and reseed the pool from the configuration.

    The deletion and the reseed happen in the caller's transaction, so the
    pool is never observed half-reset.
    """

    settings = load_game_settings(session)
    amounts = generate_prize_amounts(settings, random_source)

    session.execute(delete(Claim))
    session.execute(delete(Prize))
    session.flush()

    for amount_vnd in amounts:
        session.add(
            Prize(amount_vnd=amount_vnd, code=generate_unique_prize_code(session))
        )
    session.flush()

    logger.info(f"Prize pool reset with {len(amounts)} prizes")
    return PoolResetSummary(
        prize_count=len(amounts), envelope_count=settings.envelope_count
    )


# ---------------------------------------------------------------------------
# Playing
# ---------------------------------------------------------------------------


def claim_prize(
    session_factory: sessionmaker,
    *,
    random_source: Optional[RandomSource] = None,
    max_attempts: Optional[int] = None,
) -> PrizeAllocation:
    """Allocate one random prize to the caller.

    The configuration is read in its own short transaction and handed to
    :class:`AllocationEngine`, which opens a fresh serializable transaction
    for every attempt.

    Raises
    ------
    GameDisabledError
        If the game is switched off.
    NoPrizeAvailableError
        If the pool is exhausted.
    AllocationFailedError
        If contention exhausted the retry budget.
    """

    with session_factory.begin() as session:
        settings = load_game_settings(session)

    options: dict[str, Any] = {"random_source": random_source}
    if max_attempts is not None:
        options["max_attempts"] = max_attempts
    engine = AllocationEngine(session_factory, **options)
    return engine.claim(settings)


def open_envelope(
    session_factory: sessionmaker,
    *,
    device_id: str,
    already_played: bool,
    random_source: Optional[RandomSource] = None,
) -> PrizeAllocation:
    """Device-gated wrapper around :func:`claim_prize`.

    A device that already played must spend one of its admin-granted extra
    plays. If the allocation then fails, that play is given back before the
    error propagates.

    Raises
    ------
    PlayLimitReachedError
        If the device already played and has no extra plays left.
    """

    consumed = False
    if already_played:
        with session_factory.begin() as session:
            consumed = consume_extra_play(session, device_id)
        if not consumed:
            raise PlayLimitReachedError()

    try:
        return claim_prize(session_factory, random_source=random_source)
    except Exception:
        if consumed:
            try:
                with session_factory.begin() as session:
                    refund_extra_play(session, device_id)
            except SQLAlchemyError:
                logger.exception(f"Refunding extra play for device {device_id} failed")
        raise


def play_double_or_nothing(
    session: Session,
    claim_id: str,
    *,
    random_source: Optional[RandomSource] = None,
) -> WagerResult:
    """Play double-or-nothing on a claim within the caller's transaction.

    The configuration is read in the same transaction as the claim so the
    policy checks see a consistent state.
    """

    settings = load_game_settings(session)
    engine = WagerEngine(session, random_source=random_source)
    return engine.play(claim_id, settings)


# ---------------------------------------------------------------------------
# Claims and payouts
# ---------------------------------------------------------------------------


def _get_claim(session: Session, claim_id: str) -> Claim:
    claim = Claim.get(session, claim_id)
    if claim is None:
        raise ClaimNotFoundError()
    return claim


def _non_empty(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def describe_claim(session: Session, claim_id: str) -> ClaimView:
    """Return everything a winner or admin needs to see about a claim."""

    claim = _get_claim(session, claim_id)
    settings = load_game_settings(session)
    return ClaimView(
        claim_id=claim.id,
        status=claim.status,
        amount_vnd=claim.payable_amount_vnd,
        base_amount_vnd=claim.prize.amount_vnd,
        final_amount_vnd=claim.final_amount_vnd,
        winner_name=claim.winner_name,
        winner_phone=claim.winner_phone,
        bank_bin=claim.bank_bin,
        bank_account_no=claim.bank_account_no,
        transfer_note=claim.transfer_note,
        double_or_nothing_played=claim.double_or_nothing_played,
        double_or_nothing_outcome=claim.double_or_nothing_outcome,
        double_or_nothing_enabled=settings.enable_double_or_nothing,
        allow_double_or_nothing_once_per_claim=settings.allow_double_or_nothing_once_per_claim,
        claimed_at=claim.claimed_at,
        paid_at=claim.paid_at,
        paid_ref=claim.paid_ref,
        prize_status=claim.prize.status,
    )


def update_claim_bank_info(
    session: Session,
    claim_id: str,
    *,
    bank_bin: Optional[str],
    bank_account_no: Optional[str],
    winner_name: Optional[str] = None,
    winner_phone: Optional[str] = None,
) -> Claim:
    """Record where a claim should be paid.

    The write is conditioned on the claim still being CLAIMED, so details
    can never land on a claim that another session has just paid.

    Raises
    ------
    PayoutValidationError
        If the BIN or account number is missing, or the BIN is not six digits.
    ClaimNotFoundError
        If the claim does not exist.
    ClaimAlreadyPaidError
        If the claim has already been paid.
    """

    clean_bin, clean_account = clean_bank_fields(
        _non_empty(bank_bin) or "", _non_empty(bank_account_no) or ""
    )

    claim = _get_claim(session, claim_id)
    if claim.is_paid:
        raise ClaimAlreadyPaidError()

    values = {
        "winner_name": _non_empty(winner_name),
        "winner_phone": _non_empty(winner_phone),
        "bank_bin": clean_bin,
        "bank_account_no": clean_account,
    }
    if not claim.transfer_note:
        values["transfer_note"] = build_default_transfer_note(claim.prize.code)

    result = session.execute(
        update(Claim)
        .where(Claim.id == claim.id, Claim.status == ClaimStatus.CLAIMED)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    session.refresh(claim)
    if result.rowcount != 1:
        raise ClaimAlreadyPaidError()
    return claim


def list_pending_claims(session: Session) -> list[PendingClaim]:
    """Unpaid claims, oldest first, with the amount each should receive."""

    return [
        PendingClaim(
            claim_id=claim.id,
            amount_vnd=claim.payable_amount_vnd,
            winner_name=claim.winner_name,
            winner_phone=claim.winner_phone,
            bank_bin=claim.bank_bin,
            bank_account_no=claim.bank_account_no,
            transfer_note=claim.transfer_note,
            claimed_at=claim.claimed_at,
        )
        for claim in Claim.get_pending(session)
    ]


def build_claim_payout(session: Session, claim_id: str) -> ClaimPayout:
    """Build the VietQR payload that pays out ``claim_id``.

    A claim created before transfer notes were assigned gets its default
    note persisted here so that the payload and the stored note agree.

    Raises
    ------
    ClaimNotFoundError
        If the claim does not exist.
    ClaimAlreadyPaidError
        If the claim has already been paid.
    BankInfoMissingError
        If the winner has not supplied bank details yet.
    """

    claim = _get_claim(session, claim_id)
    if claim.is_paid:
        raise ClaimAlreadyPaidError()
    if not claim.has_bank_info:
        raise BankInfoMissingError()

    if not claim.transfer_note:
        claim.transfer_note = build_default_transfer_note(claim.prize.code)
        session.flush()

    amount_vnd = claim.payable_amount_vnd
    payload = build_payout_payload(
        bank_bin=claim.bank_bin or "",
        bank_account_no=claim.bank_account_no or "",
        amount_vnd=amount_vnd,
        transfer_note=claim.transfer_note,
    )
    logger.info(f"Built payout payload for claim {claim.id} ({amount_vnd} VND)")
    return ClaimPayout(claim_id=claim.id, amount_vnd=amount_vnd, payload=payload)


def mark_claim_paid(
    session: Session,
    claim_id: str,
    paid_ref: Optional[str] = None,
    *,
    timestamp: Optional[datetime] = None,
) -> Claim:
    """Record that a claim's transfer went out.

    ``paid_ref`` is trimmed and capped at 64 characters; a blank reference is
    stored as ``None``.
    """

    claim = _get_claim(session, claim_id)
    reference = _non_empty(paid_ref)
    if reference is not None:
        reference = reference[:PAID_REF_MAX_LENGTH]
    claim.mark_paid(session, paid_ref=reference, timestamp=timestamp)
    logger.info(f"Claim {claim.id} marked as paid")
    return claim


# ---------------------------------------------------------------------------
# Bank directory
# ---------------------------------------------------------------------------


def _default_logo_dir() -> Path:
    configured = os.getenv("BANK_LOGO_DIR")
    if configured:
        return Path(configured)
    return ROOT_DIR / "public" / "banks"


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _mirror_logo(
    client: BankDirectoryClient,
    logo_dir: Path,
    bank_bin: str,
    logo_url: str,
) -> Optional[str]:
    content = client.download_logo(logo_url)
    if content is None:
        return None
    filename = f"{bank_bin}{logo_extension_from_url(logo_url)}"
    logo_dir.mkdir(parents=True, exist_ok=True)
    (logo_dir / filename).write_bytes(content)
    return f"{LOGO_PUBLIC_PREFIX}/{filename}"


def sync_banks(
    session: Session,
    *,
    client: Optional[BankDirectoryClient] = None,
    logo_dir: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> BankSyncSummary:
    """Mirror the remote bank directory into the ``banks`` table.

    Logos are re-downloaded unless the previous sync is younger than seven
    days and the mirrored file still exists. A failed logo download keeps the
    bank row and its previous logo path.

    Raises
    ------
    requests.HTTPError
        If the directory itself cannot be fetched.
    """

    if client is None:
        client = BankDirectoryClient()
    logo_dir = logo_dir or _default_logo_dir()
    now = now or datetime.now(timezone.utc)

    config = GameConfig.get_or_create(session)
    is_fresh = (
        config.bank_last_synced_at is not None
        and now - _as_utc(config.bank_last_synced_at) < LOGO_TTL
    )

    entries = client.fetch_banks()
    logos_downloaded = 0

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        bank_bin = to_nullable_string(entry.get("bin"))
        short_name = to_nullable_string(entry.get("shortName"))
        name = to_nullable_string(entry.get("name"))
        if not bank_bin or not short_name or not name:
            continue

        logo_url = to_nullable_string(entry.get("logo"))
        bank = Bank.get_by_bin(session, bank_bin)
        local_logo_path = bank.local_logo_path if bank is not None else None

        if logo_url:
            mirrored_file = (
                logo_dir / Path(local_logo_path).name if local_logo_path else None
            )
            skip_download = (
                is_fresh and mirrored_file is not None and mirrored_file.exists()
            )
            if not skip_download:
                try:
                    downloaded = _mirror_logo(client, logo_dir, bank_bin, logo_url)
                except (requests.RequestException, OSError) as exc:
                    logger.warning(f"Logo download for bank {bank_bin} failed: {exc}")
                    downloaded = None
                if downloaded:
                    local_logo_path = downloaded
                    logos_downloaded += 1

        if bank is None:
            bank = Bank(bin=bank_bin, name=name, short_name=short_name)
            session.add(bank)
        bank.name = name
        bank.short_name = short_name
        bank.code = to_nullable_string(entry.get("code"))
        bank.swift_code = to_nullable_string(entry.get("swift_code"))
        bank.logo_url = logo_url
        bank.local_logo_path = local_logo_path
        session.flush()

    config.bank_last_synced_at = now
    session.flush()

    logger.info(
        f"Bank directory synced: {len(entries)} entries, {logos_downloaded} logos downloaded"
    )
    return BankSyncSummary(
        total=len(entries), logos_downloaded=logos_downloaded, last_synced_at=now
    )


def list_banks(session: Session) -> list[BankListing]:
    """Banks for the payout form, falling back to a built-in list before the first sync."""

    banks = Bank.list_ordered(session)
    if banks:
        return [
            BankListing(
                bin=bank.bin,
                name=bank.name,
                short_name=bank.short_name,
                code=bank.code,
                logo_path=bank.local_logo_path,
            )
            for bank in banks
        ]
    return [
        BankListing(
            bin=entry["bin"],
            name=entry["short_name"],
            short_name=entry["short_name"],
            code=None,
            logo_path=None,
        )
        for entry in FALLBACK_BANKS
    ]
