import os
from typing import Any, Dict, List, Optional

from flask import Flask, Response, jsonify, request

from pay_by_square.compression import RawCompressor, create_compressor_from_env
from pay_by_square.data_models import AccountRef, PaymentOptions, PaymentRecord
from pay_by_square.engine import PaymentEncoder
from pay_by_square.exceptions import (
    DependencyUnavailableError,
    EncodingOverflowError,
    ValidationError,
)
from pay_by_square.formatter import render_qr_png


def _parse_accounts(raw: Any) -> List[AccountRef]:
    """Convert the ``accounts`` JSON list into ``AccountRef`` objects.

    Each entry is either an ``"IBAN"`` string or an object with ``iban`` and
    an optional ``bic``.
    """
    if not isinstance(raw, list):
        raise ValidationError("'accounts' must be a list")
    accounts = []
    for item in raw:
        if isinstance(item, str):
            accounts.append(AccountRef.from_iban(item))
        elif isinstance(item, dict) and item.get("iban"):
            accounts.append(AccountRef.from_iban(item["iban"], item.get("bic")))
        else:
            raise ValidationError(f"Invalid account entry: {item!r}")
    return accounts


def _body_to_record(body: Optional[Dict[str, Any]]) -> PaymentRecord:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    fields = dict(body)
    accounts = _parse_accounts(fields.pop("accounts", []))
    try:
        options = PaymentOptions.from_mapping(fields)
        return PaymentRecord.from_options(options, accounts)
    except ValidationError:
        raise
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc)) from exc


def create_app(compressor: Optional[RawCompressor] = None) -> Flask:
    """Build the web app around a compressor resolved once at start-up."""
    app = Flask(__name__)
    encoder = PaymentEncoder(compressor or create_compressor_from_env())

    def _encode_request() -> str:
        record = _body_to_record(request.get_json(silent=True))
        return encoder.encode(record)

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(EncodingOverflowError)
    def handle_overflow_error(exc):
        return jsonify({"error": str(exc)}), 413

    @app.errorhandler(DependencyUnavailableError)
    def handle_dependency_error(exc):
        app.logger.error("Encoder dependency unavailable: %s", exc)
        return jsonify({"error": str(exc)}), 503

    @app.post("/encode")
    def encode():
        return jsonify({"payload": _encode_request()})

    @app.post("/qr.png")
    def qr_png():
        png = render_qr_png(_encode_request())
        return Response(png, mimetype="image/png")

    return app


if __name__ == "__main__":
    print("Starting Pay by Square web app...")
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 8710)), debug=True)
