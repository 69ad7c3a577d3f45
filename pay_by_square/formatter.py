"""Output helpers for the Pay by Square encoder.

This module renders encoded payment strings as QR code images and prints
payment records in a readable form for the command line. QR rendering relies
on the ``qrcode`` library (with Pillow for PNG output); it is only imported
when an image is actually requested.
"""

from __future__ import annotations

import io
from datetime import date
from typing import Optional

import click

from .data_models import PaymentRecord
from .engine import DELIMITER, build_record
from .exceptions import DependencyUnavailableError

RECORD_FIELD_NAMES = [
    "Internal id",
    "Payments",
    "Regular payment",
    "Amount",
    "Currency",
    "Due date",
    "Variable symbol",
    "Constant symbol",
    "Specific symbol",
    "SEPA reference",
    "Comment",
    "Accounts",
]

TRAILER_FIELD_NAMES = [
    "Standing order",
    "Direct debit",
    "Payee name",
    "Address line 1",
    "Address line 2",
]


def render_qr_png(payload: str, box_size: int = 6, border: int = 2) -> bytes:
    """Render ``payload`` as a PNG QR code and return the image bytes.

    Raises
    ------
    DependencyUnavailableError
        If the ``qrcode`` library (or Pillow) is not installed.
    """
    try:
        import qrcode
        from qrcode.constants import ERROR_CORRECT_M
    except ImportError as exc:
        raise DependencyUnavailableError(
            "QR rendering requires the 'qrcode[pil]' package"
        ) from exc
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    try:
        img = qr.make_image(fill_color="black", back_color="white")
    except ImportError as exc:
        raise DependencyUnavailableError("PNG output requires Pillow") from exc
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def record_rows(record: PaymentRecord, today: Optional[date] = None):
    """Pair every field of the serialized record with a readable label."""
    values = build_record(record, today).split(DELIMITER)
    names = list(RECORD_FIELD_NAMES)
    for index in range(1, len(record.accounts) + 1):
        names.append(f"IBAN {index}")
        names.append(f"BIC {index}")
    names.extend(TRAILER_FIELD_NAMES)
    return list(zip(names, values))


def print_record(record: PaymentRecord, today: Optional[date] = None) -> None:
    """Print the serialized record, one field per line."""
    click.echo("Payment record")
    click.echo("-" * 48)
    for name, value in record_rows(record, today):
        click.echo(f"{name:18s}: {value}")
    click.echo("-" * 48)
