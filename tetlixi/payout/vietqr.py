"""Encoder for VietQR (NAPAS 247) bank-transfer payloads.

The payload is an EMVCo merchant-presented QR string: a flat sequence of
tag-length-value fields, some of which nest further TLV lists, terminated by a
CRC-16/CCITT-FALSE checksum. Banking apps reject any deviation in tag order or
length encoding, so the layout below is fixed.
"""

from __future__ import annotations

import binascii
import logging
import numbers
from dataclasses import dataclass
from typing import Iterable

from ..errors import PayoutEncodingError, PayoutValidationError
from .text import normalize_ascii_alnum, normalize_bank_bin, normalize_transfer_note

logger = logging.getLogger(__name__)

# Root-level tags.
TAG_PAYLOAD_FORMAT = "00"
TAG_POINT_OF_INITIATION = "01"
TAG_MERCHANT_ACCOUNT = "38"
TAG_CURRENCY = "53"
TAG_AMOUNT = "54"
TAG_COUNTRY = "58"
TAG_ADDITIONAL_DATA = "62"
TAG_CRC = "63"

# Merchant account information (tag 38) sub-tags.
TAG_GUID = "00"
TAG_RECEIVER = "01"
TAG_SERVICE_CODE = "02"

# Receiver (tag 38/01) sub-tags.
TAG_RECEIVER_BIN = "00"
TAG_RECEIVER_ACCOUNT = "01"

# Additional data (tag 62) sub-tags.
TAG_PURPOSE = "08"

PAYLOAD_FORMAT_VERSION = "01"
POINT_OF_INITIATION_DYNAMIC = "12"
NAPAS_GUID = "A000000727"
SERVICE_CODE_ACCOUNT_TRANSFER = "QRIBFTTA"
CURRENCY_VND = "704"
COUNTRY_VN = "VN"

CRC_LENGTH = 4
CRC_PREFIX = f"{TAG_CRC}{CRC_LENGTH:02d}"
MAX_TLV_VALUE_BYTES = 99

# NAPAS acquirer BINs are exactly six digits.
BANK_BIN_LENGTH = 6


@dataclass(frozen=True)
class PayoutDetails:
    """Sanitized inputs ready for encoding."""

    bank_bin: str
    bank_account_no: str
    amount_vnd: int
    transfer_note: str


def encode_tlv(tag: str, value: str) -> str:
    """Encode one field as ``tag`` + two-digit UTF-8 byte length + ``value``."""

    length = len(value.encode("utf-8"))
    if length > MAX_TLV_VALUE_BYTES:
        raise PayoutEncodingError(
            f"TLV field {tag} is {length} bytes; the format allows at most {MAX_TLV_VALUE_BYTES}"
        )
    return f"{tag}{length:02d}{value}"


def encode_tlv_list(fields: Iterable[tuple[str, str]]) -> str:
    return "".join(encode_tlv(tag, value) for tag, value in fields)


def crc16_ccitt_false(payload: str) -> str:
    """Return the CRC-16/CCITT-FALSE of ``payload`` as four uppercase hex digits.

    Polynomial 0x1021, initial value 0xFFFF, no reflection, no final XOR;
    ``binascii.crc_hqx`` implements exactly this register when seeded with
    0xFFFF.
    """

    return f"{binascii.crc_hqx(payload.encode('utf-8'), 0xFFFF):04X}"


def clean_bank_fields(bank_bin: str, bank_account_no: str) -> tuple[str, str]:
    """Return the normalized BIN and account number, or raise.

    Raises
    ------
    PayoutValidationError
        If either field reduces to nothing, or the BIN is not six digits.
    """

    clean_bin = normalize_bank_bin(bank_bin or "")
    clean_account = normalize_ascii_alnum(bank_account_no or "")
    if not clean_bin or not clean_account:
        raise PayoutValidationError("bank_bin and bank_account_no are required")
    if len(clean_bin) != BANK_BIN_LENGTH:
        raise PayoutValidationError(f"bank_bin must be {BANK_BIN_LENGTH} digits")
    return clean_bin, clean_account


def sanitize_payout_details(
    bank_bin: str,
    bank_account_no: str,
    amount_vnd: int,
    transfer_note: str,
) -> PayoutDetails:
    """Sanitize raw payout inputs, rejecting anything that cannot be encoded.

    Raises
    ------
    PayoutValidationError
        If a bank field reduces to nothing, the BIN is not six digits, or
        the amount is not a positive integer.
    """

    clean_bin, clean_account = clean_bank_fields(bank_bin, bank_account_no)

    if (
        isinstance(amount_vnd, bool)
        or not isinstance(amount_vnd, numbers.Integral)
        or amount_vnd <= 0
    ):
        raise PayoutValidationError("amount_vnd must be a positive integer")

    return PayoutDetails(
        bank_bin=clean_bin,
        bank_account_no=clean_account,
        amount_vnd=int(amount_vnd),
        transfer_note=normalize_transfer_note(transfer_note or ""),
    )


def encode_payout_details(details: PayoutDetails) -> str:
    """Encode already sanitized details into the final payload string."""

    receiver = encode_tlv_list(
        [
            (TAG_RECEIVER_BIN, details.bank_bin),
            (TAG_RECEIVER_ACCOUNT, details.bank_account_no),
        ]
    )
    merchant_account = encode_tlv_list(
        [
            (TAG_GUID, NAPAS_GUID),
            (TAG_RECEIVER, receiver),
            (TAG_SERVICE_CODE, SERVICE_CODE_ACCOUNT_TRANSFER),
        ]
    )
    additional_data = encode_tlv_list([(TAG_PURPOSE, details.transfer_note)])

    body = encode_tlv_list(
        [
            (TAG_PAYLOAD_FORMAT, PAYLOAD_FORMAT_VERSION),
            (TAG_POINT_OF_INITIATION, POINT_OF_INITIATION_DYNAMIC),
            (TAG_MERCHANT_ACCOUNT, merchant_account),
            (TAG_CURRENCY, CURRENCY_VND),
            (TAG_AMOUNT, str(details.amount_vnd)),
            (TAG_COUNTRY, COUNTRY_VN),
            (TAG_ADDITIONAL_DATA, additional_data),
        ]
    )
    unsigned = body + CRC_PREFIX
    payload = unsigned + crc16_ccitt_false(unsigned)

    if not payload.isascii() or not payload.isprintable():
        raise PayoutEncodingError("VietQR payload must stay printable ASCII")
    return payload


def build_payout_payload(
    *,
    bank_bin: str,
    bank_account_no: str,
    amount_vnd: int,
    transfer_note: str,
) -> str:
    """Build the VietQR transfer payload for a payout.

    Parameters
    ----------
    bank_bin : str
        Receiving bank BIN; reduced to digits, which must leave exactly six.
    bank_account_no : str
        Receiving account number; diacritics folded, reduced to uppercase
        ASCII letters and digits, capped at 25 characters.
    amount_vnd : int
        Transfer amount in dong. Must be a positive integer.
    transfer_note : str
        Free-text note; sanitized to ``[A-Z0-9 -]`` and capped at 50
        characters, falling back to ``"LIXI"`` when nothing survives.

    Returns
    -------
    str
        Printable ASCII payload ending in a four hex digit CRC.

    Raises
    ------
    PayoutValidationError
        For unusable input; no payload is produced.
    PayoutEncodingError
        If the encoder violates the wire format (a programming defect).
    """

    details = sanitize_payout_details(
        bank_bin, bank_account_no, amount_vnd, transfer_note
    )
    payload = encode_payout_details(details)
    logger.debug(
        f"Built payout payload for BIN {details.bank_bin} amount {details.amount_vnd}"
    )
    return payload


__all__ = [
    "PayoutDetails",
    "BANK_BIN_LENGTH",
    "build_payout_payload",
    "clean_bank_fields",
    "crc16_ccitt_false",
    "encode_payout_details",
    "encode_tlv",
    "encode_tlv_list",
    "sanitize_payout_details",
]
