"""Core encoding engine for Pay by Square payment strings.

This module implements the five stages of the encoder, each consuming the
complete output of the previous one:

1. ``build_record`` serializes a ``PaymentRecord`` into the tab-delimited
   record text.
2. ``frame_with_checksum`` prepends the CRC-32 of the record, byte-reversed.
3. The injected ``RawCompressor`` produces a raw LZMA1 stream.
4. ``pack_header`` prepends the document type and the uncompressed length.
5. ``encode_bits`` turns the bytes into text over a 32-symbol alphabet.

``PaymentEncoder`` ties the stages together around a compressor that is
resolved once and reused for every call.
"""

from __future__ import annotations

import logging
import struct
import zlib
from datetime import date
from typing import Any, Dict, List, Optional

from .compression import RawCompressor, resolve_compressor
from .data_models import PaymentRecord
from .exceptions import (
    DependencyUnavailableError,
    EncodingOverflowError,
    ValidationError,
)
from .utils import format_amount, format_symbol

logger = logging.getLogger(__name__)

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUV"
DOCUMENT_TYPE = b"\x00\x00"  # payment order, version 0
MAX_FRAMED_LENGTH = 0xFFFF
DELIMITER = "\t"


def _check_text_fields(record: PaymentRecord) -> None:
    """Reject values that would break the tab-delimited layout."""
    named = [
        ("internal_id", record.internal_id),
        ("currency", record.currency),
        ("comment", record.comment),
        ("payee_name", record.payee_name),
    ]
    for account in record.accounts:
        named.append(("iban", account.iban))
        named.append(("bic", account.bic))
    for name, value in named:
        if DELIMITER in value:
            raise ValidationError(f"Field {name} must not contain a tab character")


def build_record(record: PaymentRecord, today: Optional[date] = None) -> str:
    """Serialize ``record`` into the tab-delimited payment record.

    Parameters
    ----------
    record: PaymentRecord
        The payment to serialize. It must have at least one account.
    today: date, optional
        Used as the due date when the record has none. Defaults to the
        current date.

    Raises
    ------
    ValidationError
        If the record has no accounts or a text field contains a tab.
    """
    if not record.accounts:
        raise ValidationError("Cannot generate a payment string with no accounts")
    _check_text_fields(record)

    block: List[str] = [
        "1",  # regular payment
        format_amount(record.amount),
        record.currency,
        record.resolved_due_date(today).strftime("%Y%m%d"),
        format_symbol(record.variable_symbol),
        format_symbol(record.constant_symbol),
        format_symbol(record.specific_symbol),
        "",  # symbols in SEPA form, unused when the three above are set
        record.comment,
        str(len(record.accounts)),
    ]
    for account in record.accounts:
        block.append(account.iban)
        block.append(account.bic)
    block.extend(
        [
            "0",  # standing order
            "0",  # direct debit
            record.payee_name,
            "",  # payee address line 1
            "",  # payee address line 2
        ]
    )
    # internal id, number of payments, the payment itself
    return DELIMITER.join([record.internal_id, "1", DELIMITER.join(block)])


def frame_with_checksum(data: bytes) -> bytes:
    """Prepend the CRC-32 of ``data`` in reversed (little-endian) byte order."""
    return struct.pack("<I", zlib.crc32(data) & 0xFFFFFFFF) + data


def pack_header(original_length: int, payload: bytes) -> bytes:
    """Prepend the document type and the uncompressed length to ``payload``.

    Raises
    ------
    EncodingOverflowError
        If ``original_length`` does not fit an unsigned 16-bit integer.
    """
    if original_length > MAX_FRAMED_LENGTH:
        raise EncodingOverflowError(
            f"Payment record is {original_length} bytes long; "
            f"the format allows at most {MAX_FRAMED_LENGTH}"
        )
    return DOCUMENT_TYPE + struct.pack("<H", original_length) + payload


def encode_bits(data: bytes) -> str:
    """Map ``data`` onto the 32-symbol alphabet, five bits per character.

    Bits are taken most significant first. A trailing group shorter than
    five bits is padded with zeros on the right.
    """
    out: List[str] = []
    acc = 0
    width = 0
    for byte in data:
        acc = (acc << 8) | byte
        width += 8
        while width >= 5:
            width -= 5
            out.append(ALPHABET[(acc >> width) & 0x1F])
        acc &= (1 << width) - 1
    if width:
        out.append(ALPHABET[(acc << (5 - width)) & 0x1F])
    return "".join(out)


class PaymentEncoder:
    """Encodes payment records, reusing one compressor for every call.

    The encoder keeps no per-call state, so one instance can serve many
    threads as long as the compressor is thread-safe (both shipped backends
    are).
    """

    def __init__(self, compressor: Optional[RawCompressor] = None) -> None:
        self._compressor = compressor

    @property
    def compressor(self) -> RawCompressor:
        # Without an injected backend, fall back to the shared default.
        if self._compressor is None:
            self._compressor = default_compressor()
        return self._compressor

    def pack(self, record: PaymentRecord, today: Optional[date] = None) -> bytes:
        """Run stages 1-4 and return the header-packed binary payload."""
        text = build_record(record, today)
        framed = frame_with_checksum(text.encode("utf-8"))
        compressed = self.compressor.compress(framed)
        packed = pack_header(len(framed), compressed)
        logger.debug(
            "Encoded payment %r: record %d bytes, compressed %d bytes",
            record.internal_id,
            len(framed),
            len(compressed),
        )
        return packed

    def encode(self, record: PaymentRecord, today: Optional[date] = None) -> str:
        """Return the Pay by Square string for ``record``."""
        return encode_bits(self.pack(record, today))


# outcome of the one-time default resolution: a compressor or the failure
_default_resolution: Dict[str, Any] = {}


def default_compressor() -> RawCompressor:
    """The process-wide in-process compressor, resolved on first use.

    A failed resolution is remembered and re-raised on later calls instead
    of being attempted again.
    """
    failure = _default_resolution.get("error")
    if failure is not None:
        raise DependencyUnavailableError(str(failure)) from failure
    if "compressor" not in _default_resolution:
        try:
            _default_resolution["compressor"] = resolve_compressor()
        except DependencyUnavailableError as exc:
            _default_resolution["error"] = exc
            raise
    return _default_resolution["compressor"]


def encode_payment(
    record: PaymentRecord,
    compressor: Optional[RawCompressor] = None,
    today: Optional[date] = None,
) -> str:
    """Encode ``record`` into a Pay by Square string.

    Convenience wrapper around ``PaymentEncoder`` for one-off calls.
    """
    return PaymentEncoder(compressor).encode(record, today)
