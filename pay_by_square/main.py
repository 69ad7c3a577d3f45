"""Command‑line interface for the Pay by Square encoder.

This module uses the ``click`` library to expose the encoder as a small
command-line tool. Users describe a payment through options, and the tool
prints the encoded string or writes it as a QR code image.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .compression import BACKENDS, ENV_BACKEND, ENV_XZ_BINARY, resolve_compressor
from .data_models import AccountRef, PaymentOptions, PaymentRecord
from .engine import PaymentEncoder
from .exceptions import PayBySquareError
from .formatter import print_record, render_qr_png
from .utils import decimal_from_str, int_or_none, parse_date


def parse_account_strings(values: Tuple[str, ...]) -> List[AccountRef]:
    """Parse ``IBAN`` or ``IBAN:BIC`` strings into accounts."""
    accounts: List[AccountRef] = []
    for item in values:
        parts = item.split(":")
        if len(parts) > 2 or not parts[0].strip():
            raise click.BadParameter(f"Account must be in IBAN[:BIC] format; got {item}")
        iban = parts[0]
        bic = parts[1] if len(parts) == 2 else None
        accounts.append(AccountRef.from_iban(iban, bic))
    return accounts


def build_record_from_options(
    accounts: Tuple[str, ...],
    amount: Optional[str],
    currency: Optional[str],
    due_date: Optional[str],
    variable_symbol: Optional[str],
    specific_symbol: Optional[str],
    constant_symbol: Optional[str],
    comment: Optional[str],
    payee: Optional[str],
    internal_id: Optional[str],
) -> PaymentRecord:
    try:
        options = PaymentOptions(
            internal_id=internal_id,
            amount=decimal_from_str(amount) if amount is not None else None,
            currency=currency.upper() if currency else None,
            due_date=parse_date(due_date) if due_date else None,
            variable_symbol=int_or_none(variable_symbol),
            specific_symbol=int_or_none(specific_symbol),
            constant_symbol=int_or_none(constant_symbol),
            comment=comment,
            payee_name=payee,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return PaymentRecord.from_options(options, parse_account_strings(accounts))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline details to stderr")
def cli(verbose: bool) -> None:
    """Encode payment orders into Pay by Square strings."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--account", "-a", "accounts", multiple=True, required=True, help="Target account in IBAN[:BIC] format")
@click.option("--amount", "amount", help="Amount to pay")
@click.option("--currency", "currency", default="EUR", show_default=True, help="Currency code")
@click.option("--due-date", "due_date", help="Due date (YYYY-MM-DD); defaults to today")
@click.option("--vs", "variable_symbol", help="Variable symbol")
@click.option("--ss", "specific_symbol", help="Specific symbol")
@click.option("--cs", "constant_symbol", help="Constant symbol")
@click.option("--comment", "comment", help="Note for the payee")
@click.option("--payee", "payee", help="Payee name")
@click.option("--internal-id", "internal_id", help="Payment identifier")
@click.option(
    "--compressor",
    "compressor",
    type=click.Choice(BACKENDS),
    envvar=ENV_BACKEND,
    help="Raw LZMA1 backend",
)
@click.option("--xz-binary", "xz_binary", envvar=ENV_XZ_BINARY, help="Path to the xz binary (xz backend)")
@click.option("--qr", "qr_path", type=click.Path(dir_okay=False, writable=True), help="Write a PNG QR code to this path")
@click.option("--show-record", is_flag=True, help="Print the serialized record before encoding")
def encode(
    accounts: Tuple[str, ...],
    amount: Optional[str],
    currency: Optional[str],
    due_date: Optional[str],
    variable_symbol: Optional[str],
    specific_symbol: Optional[str],
    constant_symbol: Optional[str],
    comment: Optional[str],
    payee: Optional[str],
    internal_id: Optional[str],
    compressor: Optional[str],
    xz_binary: Optional[str],
    qr_path: Optional[str],
    show_record: bool,
) -> None:
    """Encode a payment and print the resulting string."""
    record = build_record_from_options(
        accounts,
        amount,
        currency,
        due_date,
        variable_symbol,
        specific_symbol,
        constant_symbol,
        comment,
        payee,
        internal_id,
    )
    try:
        encoder = PaymentEncoder(resolve_compressor(compressor, xz_binary))
        if show_record:
            print_record(record)
        payload = encoder.encode(record)
        if qr_path:
            path = Path(qr_path)
            path.write_bytes(render_qr_png(payload))
            click.echo(f"QR code written to {path}", err=True)
    except PayBySquareError as exc:
        raise click.ClickException(str(exc))
    click.echo(payload)


if __name__ == "__main__":
    cli()
