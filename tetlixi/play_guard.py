"""Per-device allowances for opening more than one envelope."""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .models import DevicePlayAllowance

MAX_EXTRA_PLAYS_PER_GRANT = 100
DEVICE_ID_MIN_LENGTH = 8
DEVICE_ID_MAX_LENGTH = 128

_DEVICE_ID_PATTERN = re.compile(r"[A-Za-z0-9-]+")


def normalize_device_id(value: Any) -> Optional[str]:
    """Return a trimmed device id, or ``None`` when it is not acceptable."""

    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not DEVICE_ID_MIN_LENGTH <= len(trimmed) <= DEVICE_ID_MAX_LENGTH:
        return None
    if not _DEVICE_ID_PATTERN.fullmatch(trimmed):
        return None
    return trimmed


def normalize_extra_plays(value: Any) -> Optional[int]:
    """Return ``value`` as a grant size in ``[1, 100]``, or ``None``."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    value = int(value)
    if not 1 <= value <= MAX_EXTRA_PLAYS_PER_GRANT:
        return None
    return value


def grant_extra_plays(
    session: Session, device_id: Any, extra_plays: Any
) -> DevicePlayAllowance:
    """Add ``extra_plays`` openings to a device, creating its allowance if needed.

    An existing allowance is incremented in SQL, so concurrent grants add up.

    Raises
    ------
    ValueError
        If the device id or the number of plays is invalid.
    """

    normalized_id = normalize_device_id(device_id)
    if normalized_id is None:
        raise ValueError("Invalid device_id")
    plays = normalize_extra_plays(extra_plays)
    if plays is None:
        raise ValueError(
            f"extra_plays must be an integer from 1 to {MAX_EXTRA_PLAYS_PER_GRANT}"
        )

    allowance = DevicePlayAllowance.get_by_device_id(session, normalized_id)
    if allowance is None:
        allowance = DevicePlayAllowance(
            device_id=normalized_id, extra_plays_remaining=plays
        )
        session.add(allowance)
        session.flush()
        return allowance

    session.execute(
        update(DevicePlayAllowance)
        .where(DevicePlayAllowance.id == allowance.id)
        .values(
            extra_plays_remaining=DevicePlayAllowance.extra_plays_remaining + plays
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(allowance)
    return allowance


def consume_extra_play(session: Session, device_id: str) -> bool:
    """Spend one extra play if the device has any; return whether one was spent."""

    result = session.execute(
        update(DevicePlayAllowance)
        .where(
            DevicePlayAllowance.device_id == device_id,
            DevicePlayAllowance.extra_plays_remaining > 0,
        )
        .values(extra_plays_remaining=DevicePlayAllowance.extra_plays_remaining - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def refund_extra_play(session: Session, device_id: str) -> None:
    """Give back a play consumed by an envelope opening that failed."""

    session.execute(
        update(DevicePlayAllowance)
        .where(DevicePlayAllowance.device_id == device_id)
        .values(extra_plays_remaining=DevicePlayAllowance.extra_plays_remaining + 1)
        .execution_options(synchronize_session=False)
    )


__all__ = [
    "MAX_EXTRA_PLAYS_PER_GRANT",
    "consume_extra_play",
    "grant_extra_plays",
    "normalize_device_id",
    "normalize_extra_plays",
    "refund_extra_play",
]
