"""ASCII sanitizers for bank fields and transfer notes."""

from __future__ import annotations

import re
import unicodedata

ACCOUNT_NO_MAX_LENGTH = 25
TRANSFER_NOTE_MAX_LENGTH = 50
TRANSFER_NOTE_FALLBACK = "LIXI"
DEFAULT_TRANSFER_NOTE_PREFIX = "CHUC MUNG NAM MOI - LIXI "
TRANSFER_NOTE_SUFFIX_LENGTH = 10

_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E]")
_NON_DIGIT = re.compile(r"[^0-9]")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_NOTE_DISALLOWED = re.compile(r"[^A-Z0-9 -]")
_WHITESPACE_RUN = re.compile(r"\s+")


def strip_diacritics(value: str) -> str:
    """Fold accented letters to their closest ASCII base letter.

    ``đ``/``Đ`` carry no combining mark in Unicode and are mapped explicitly.
    """

    value = value.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _to_printable_ascii(value: str) -> str:
    return _NON_PRINTABLE_ASCII.sub("", strip_diacritics(value))


def _ascii_alnum(value: str) -> str:
    cleaned = _NON_ALNUM.sub("", _to_printable_ascii(value)).upper()
    return cleaned[:ACCOUNT_NO_MAX_LENGTH]


def _transfer_note(value: str) -> str:
    cleaned = _NOTE_DISALLOWED.sub(" ", _to_printable_ascii(value).upper())
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
    return cleaned[:TRANSFER_NOTE_MAX_LENGTH]


def normalize_bank_bin(value: str) -> str:
    """Keep only the ASCII digits of ``value``."""

    return _NON_DIGIT.sub("", value)


def normalize_ascii_alnum(value: str, fallback: str = "") -> str:
    """Reduce ``value`` to at most 25 uppercase ASCII letters and digits.

    ``fallback`` is normalized the same way and used when ``value`` reduces
    to an empty string.
    """

    cleaned = _ascii_alnum(value)
    if cleaned:
        return cleaned
    return _ascii_alnum(fallback)


def normalize_transfer_note(value: str, fallback: str = TRANSFER_NOTE_FALLBACK) -> str:
    """Reduce ``value`` to a bank-safe transfer note.

    The note keeps uppercase ASCII letters, digits, spaces and hyphens, with
    whitespace runs collapsed and a 50 character cap.
    """

    cleaned = _transfer_note(value)
    if cleaned:
        return cleaned
    return _transfer_note(fallback)


def build_default_transfer_note(seed: str) -> str:
    """Return the greeting note suffixed with the tail of ``seed``."""

    suffix = seed[-TRANSFER_NOTE_SUFFIX_LENGTH:].upper()
    return normalize_transfer_note(f"{DEFAULT_TRANSFER_NOTE_PREFIX}{suffix}")


__all__ = [
    "ACCOUNT_NO_MAX_LENGTH",
    "DEFAULT_TRANSFER_NOTE_PREFIX",
    "TRANSFER_NOTE_MAX_LENGTH",
    "build_default_transfer_note",
    "normalize_ascii_alnum",
    "normalize_bank_bin",
    "normalize_transfer_note",
    "strip_diacritics",
]
