"""
Tests for the command-line interface.
"""

from datetime import date
from decimal import Decimal

import pytest
from click.testing import CliRunner

from pay_by_square.compression import LzmaRawCompressor
from pay_by_square.data_models import AccountRef
from pay_by_square.engine import encode_payment
from pay_by_square.main import build_record_from_options, cli, parse_account_strings

SAMPLE_ARGS = [
    "encode",
    "--account", "SK8209000000000011424060:GIBASKBX",
    "--amount", "25.30",
    "--due-date", "2020-01-02",
    "--vs", "123",
    "--comment", "Test payment",
    "--payee", "John Doe",
    "--internal-id", "PAY1",
    "--compressor", "lzma",
]


@pytest.fixture
def runner():
    return CliRunner()


class TestOptionParsing:
    def test_accounts(self):
        accounts = parse_account_strings(("SK8209000000000011424060:GIBASKBX", "CZ6508000000192000145399"))
        assert accounts == [
            AccountRef("SK8209000000000011424060", "GIBASKBX"),
            AccountRef("CZ6508000000192000145399", ""),
        ]

    def test_build_record(self, sample_record):
        record = build_record_from_options(
            ("SK8209000000000011424060:GIBASKBX",),
            "25.30", "eur", "2020-01-02", "123", None, None,
            "Test payment", "John Doe", "PAY1",
        )
        assert record == sample_record
        assert record.amount == Decimal("25.30")
        assert record.due_date == date(2020, 1, 2)


class TestEncodeCommand:
    def test_prints_encoded_string(self, runner, sample_record):
        result = runner.invoke(cli, SAMPLE_ARGS)
        assert result.exit_code == 0, result.output
        assert result.output.strip() == encode_payment(sample_record, LzmaRawCompressor())

    def test_show_record(self, runner):
        result = runner.invoke(cli, SAMPLE_ARGS + ["--show-record"])
        assert result.exit_code == 0, result.output
        assert "Payment record" in result.output
        assert "GIBASKBX" in result.output

    def test_writes_qr_png(self, runner, tmp_path):
        pytest.importorskip("qrcode")
        pytest.importorskip("PIL")
        target = tmp_path / "payment.png"
        result = runner.invoke(cli, SAMPLE_ARGS + ["--qr", str(target)])
        assert result.exit_code == 0, result.output
        assert target.read_bytes().startswith(b"\x89PNG")

    def test_bad_account(self, runner):
        result = runner.invoke(cli, ["encode", "--account", "A:B:C"])
        assert result.exit_code == 2
        assert "IBAN[:BIC]" in result.output

    def test_bad_amount(self, runner):
        result = runner.invoke(cli, ["encode", "--account", "SK8209000000000011424060", "--amount", "lots"])
        assert result.exit_code == 2
        assert "Invalid numeric value" in result.output

    def test_tab_in_comment_fails(self, runner):
        result = runner.invoke(
            cli,
            ["encode", "--account", "SK8209000000000011424060", "--comment", "a\tb", "--compressor", "lzma"],
        )
        assert result.exit_code == 1
        assert "tab character" in result.output

    def test_unusable_xz_binary(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            SAMPLE_ARGS[:-2] + ["--compressor", "xz", "--xz-binary", str(tmp_path / "missing")],
        )
        assert result.exit_code == 1
        assert "is invalid" in result.output
