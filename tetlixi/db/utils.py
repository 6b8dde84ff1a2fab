from pathlib import Path
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

# SQLSTATE codes for serialization failure and deadlock detection.
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

# Unique constraint guarding "one claim per prize"; a violation means another
# transaction won the race for the same prize.
CLAIM_PRIZE_UNIQUE_MARKERS = ("uq_claims_prize_id", "claims.prize_id")

SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    This is a small helper intended for serializing timestamps in JSON.
    """
    from datetime import timezone

    if dt is None:
        return None
    if dt.tzinfo is None:
        # SQLite drops tzinfo on round-trip; stored values are always UTC.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_retryable_db_error(exc: DBAPIError) -> bool:
    """Return ``True`` when ``exc`` signals transient write contention.

    Retryable conditions are serialization failures and deadlocks reported
    through SQLSTATE, SQLite lock contention, and violations of the
    one-claim-per-prize unique constraint.
    """

    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True

    message = str(exc.orig).lower()
    if isinstance(exc, OperationalError):
        return any(marker in message for marker in SQLITE_LOCK_MESSAGES)
    if isinstance(exc, IntegrityError):
        return any(marker in message for marker in CLAIM_PRIZE_UNIQUE_MARKERS)
    return False
