"""
Tests for the Flask web API.
"""

from unittest.mock import Mock

import pytest

from pay_by_square.compression import LzmaRawCompressor
from pay_by_square.engine import encode_payment
from pay_by_square.exceptions import DependencyUnavailableError
from pay_by_square_web.app import create_app

SAMPLE_BODY = {
    "accounts": [{"iban": "SK8209000000000011424060", "bic": "GIBASKBX"}],
    "internalId": "PAY1",
    "amount": "25.30",
    "dueDate": "2020-01-02",
    "variableSymbol": 123,
    "comment": "Test payment",
    "payeeName": "John Doe",
}


@pytest.fixture
def client():
    app = create_app(LzmaRawCompressor())
    app.config["TESTING"] = True
    return app.test_client()


class TestEncodeEndpoint:
    def test_encodes_payment(self, client, sample_record):
        response = client.post("/encode", json=SAMPLE_BODY)
        assert response.status_code == 200
        assert response.get_json() == {
            "payload": encode_payment(sample_record, LzmaRawCompressor())
        }

    def test_plain_string_accounts_and_float_amount(self, client):
        body = dict(SAMPLE_BODY, accounts=["SK8209000000000011424060"], amount=25.3)
        response = client.post("/encode", json=body)
        assert response.status_code == 200
        assert response.get_json()["payload"]

    def test_no_accounts(self, client):
        response = client.post("/encode", json=dict(SAMPLE_BODY, accounts=[]))
        assert response.status_code == 400
        assert "no accounts" in response.get_json()["error"]

    def test_unknown_option(self, client):
        response = client.post("/encode", json=dict(SAMPLE_BODY, country="SK"))
        assert response.status_code == 400
        assert "country" in response.get_json()["error"]

    def test_invalid_value(self, client):
        response = client.post("/encode", json=dict(SAMPLE_BODY, amount="plenty"))
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["1e26", "12345678901234567890123456789"])
    def test_amount_too_large(self, client, amount):
        response = client.post("/encode", json=dict(SAMPLE_BODY, amount=amount))
        assert response.status_code == 400
        assert "too large" in response.get_json()["error"]

    def test_invalid_account_entry(self, client):
        response = client.post("/encode", json=dict(SAMPLE_BODY, accounts=[{"bic": "GIBASKBX"}]))
        assert response.status_code == 400

    def test_body_must_be_json_object(self, client):
        response = client.post("/encode", data="not json", content_type="text/plain")
        assert response.status_code == 400

    def test_record_too_large(self, client):
        response = client.post("/encode", json=dict(SAMPLE_BODY, comment="x" * 70000))
        assert response.status_code == 413

    def test_compressor_failure(self):
        compressor = Mock()
        compressor.compress.side_effect = DependencyUnavailableError("xz vanished")
        client = create_app(compressor).test_client()
        response = client.post("/encode", json=SAMPLE_BODY)
        assert response.status_code == 503
        assert response.get_json() == {"error": "xz vanished"}


class TestQrEndpoint:
    def test_returns_png(self, client):
        pytest.importorskip("qrcode")
        pytest.importorskip("PIL")
        response = client.post("/qr.png", json=SAMPLE_BODY)
        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert response.data.startswith(b"\x89PNG")

    def test_validation_error(self, client):
        response = client.post("/qr.png", json=dict(SAMPLE_BODY, accounts=[]))
        assert response.status_code == 400
