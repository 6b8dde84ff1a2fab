"""Payout helpers: field sanitizers and the VietQR payload encoder."""

from .text import (
    build_default_transfer_note,
    normalize_ascii_alnum,
    normalize_bank_bin,
    normalize_transfer_note,
    strip_diacritics,
)
from .vietqr import (
    BANK_BIN_LENGTH,
    PayoutDetails,
    build_payout_payload,
    clean_bank_fields,
    crc16_ccitt_false,
    encode_tlv,
)

__all__ = [
    "BANK_BIN_LENGTH",
    "PayoutDetails",
    "build_default_transfer_note",
    "build_payout_payload",
    "clean_bank_fields",
    "crc16_ccitt_false",
    "encode_tlv",
    "normalize_ascii_alnum",
    "normalize_bank_bin",
    "normalize_transfer_note",
    "strip_diacritics",
]
