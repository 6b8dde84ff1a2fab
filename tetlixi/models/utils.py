"""Utility helpers for the models package."""

from __future__ import annotations

import secrets
import string
from typing import Optional
from sqlalchemy.orm import Session

# Upper-case only: prize codes feed transfer notes, which are upper-cased.
PRIZE_CODE_ALPHABET = string.digits + string.ascii_uppercase


def generate_unique_prize_code(
    session: Optional[Session] = None,
    length: int = 12,
    max_attempts: int = 32,
) -> str:
    """Return a unique prize code made of random base36 characters.

    When a session is provided, the helper retries if the generated value is
    already present (or pending) in ``Prize.code``.
    """

    prize_cls = None
    select_stmt = None
    if session is not None:
        from sqlalchemy import select
        from .prize import Prize

        prize_cls = Prize
        select_stmt = select

    attempts = 0
    while attempts < max_attempts:
        candidate = "".join(secrets.choice(PRIZE_CODE_ALPHABET) for _ in range(length))

        if session is not None and prize_cls is not None and select_stmt is not None:
            collision = False
            for obj in session.new:
                if isinstance(obj, prize_cls) and getattr(obj, "code", None) == candidate:
                    collision = True
                    break
            if collision:
                attempts += 1
                continue

            exists = session.scalar(
                select_stmt(prize_cls.id).where(prize_cls.code == candidate)
            )
            if exists is not None:
                attempts += 1
                continue

        return candidate

    raise RuntimeError(
        "Unable to generate a unique prize code after multiple attempts"
    )
