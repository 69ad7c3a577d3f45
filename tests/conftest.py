from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from pay_by_square.data_models import AccountRef, PaymentRecord

SAMPLE_IBAN = "SK8209000000000011424060"
SAMPLE_BIC = "GIBASKBX"
SAMPLE_RECORD_TEXT = (
    "PAY1\t1\t1\t25.3\tEUR\t20200102\t123\t\t\t\tTest payment\t1\t"
    "SK8209000000000011424060\tGIBASKBX\t0\t0\tJohn Doe\t\t"
)


@pytest.fixture
def sample_record():
    return PaymentRecord(
        accounts=(AccountRef(SAMPLE_IBAN, SAMPLE_BIC),),
        internal_id="PAY1",
        amount=Decimal("25.30"),
        currency="EUR",
        due_date=date(2020, 1, 2),
        variable_symbol=123,
        comment="Test payment",
        payee_name="John Doe",
    )


@pytest.fixture
def identity_compressor():
    """A compressor stand-in that returns its input untouched."""
    compressor = Mock()
    compressor.compress.side_effect = lambda data: data
    return compressor
