"""Tests for gateway signature verification."""

from __future__ import annotations

import hashlib
from decimal import Decimal

from jose import jwt

from workshop_billing.schemas.notifications import (
    ClassicNotification,
    TokenNotification,
)
from workshop_billing.security.signatures import (
    extract_custom_params,
    sign_fields,
    verify_classic,
    verify_token,
)

PASSWORD = "pass-two"
TOKEN_KEY = "notify-secret"


def _signed(fields: dict[str, str], password: str = PASSWORD) -> dict[str, str]:
    signature = sign_fields(
        [fields["OutSum"], fields["InvId"]],
        password,
        extract_custom_params(fields),
    )
    return {**fields, "SignatureValue": signature}


def test_sign_fields_sorts_custom_params_after_password() -> None:
    signature = sign_fields(
        ["3600.00", "17"], PASSWORD, {"Shp_b": "2", "Shp_a": "1"}
    )
    expected = hashlib.md5(b"3600.00:17:pass-two:Shp_a=1:Shp_b=2").hexdigest()
    assert signature == expected.upper()


def test_sign_fields_supports_other_hash_algorithms() -> None:
    signature = sign_fields(["1.00", "5"], PASSWORD, algorithm="sha256")
    expected = hashlib.sha256(b"1.00:5:pass-two").hexdigest()
    assert signature == expected.upper()


def test_extract_custom_params_is_case_insensitive() -> None:
    params = extract_custom_params(
        {"OutSum": "1", "shp_lower": "a", "Shp_invoice_id": "b", "SHP_UP": "c"}
    )
    assert params == {"shp_lower": "a", "Shp_invoice_id": "b", "SHP_UP": "c"}


def test_verify_classic_accepts_valid_signature() -> None:
    fields = _signed(
        {
            "OutSum": "3600.00",
            "InvId": "1760000000000",
            "Shp_invoice_id": "abc",
            "PaymentMethod": "BankCard",
        }
    )
    notification = verify_classic(fields, PASSWORD)

    assert isinstance(notification, ClassicNotification)
    assert notification.channel == "classic"
    assert notification.amount == Decimal("3600.00")
    assert notification.external_id == "1760000000000"
    assert notification.payment_method == "BankCard"
    assert notification.custom_params == {"Shp_invoice_id": "abc"}


def test_verify_classic_accepts_lowercase_signature() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7"})
    fields["SignatureValue"] = fields["SignatureValue"].lower()
    assert verify_classic(fields, PASSWORD) is not None


def test_verify_classic_rejects_tampered_amount() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7"})
    fields["OutSum"] = "1.00"
    assert verify_classic(fields, PASSWORD) is None


def test_verify_classic_rejects_tampered_custom_param() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7", "Shp_invoice_id": "a"})
    fields["Shp_invoice_id"] = "b"
    assert verify_classic(fields, PASSWORD) is None


def test_verify_classic_rejects_wrong_password() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7"}, password="pass-one")
    assert verify_classic(fields, PASSWORD) is None


def test_verify_classic_rejects_missing_fields() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7"})
    for missing in ("OutSum", "InvId", "SignatureValue"):
        partial = {key: value for key, value in fields.items() if key != missing}
        assert verify_classic(partial, PASSWORD) is None


def test_verify_classic_rejects_unknown_algorithm() -> None:
    fields = _signed({"OutSum": "10.00", "InvId": "7"})
    assert verify_classic(fields, PASSWORD, algorithm="not-a-hash") is None


def test_verify_token_returns_data_section() -> None:
    token = jwt.encode(
        {
            "header": {"type": "PaymentStateChanged"},
            "data": {
                "shop": "craft-shop",
                "invId": 1760000000000,
                "state": "OK",
                "opKey": "op-1",
                "incSum": "3600.00",
                "paymentMethod": "BankCard",
            },
        },
        TOKEN_KEY,
        algorithm="HS256",
    )
    notification = verify_token(token, TOKEN_KEY, ["HS256"])

    assert isinstance(notification, TokenNotification)
    assert notification.channel == "token"
    assert notification.external_id == "1760000000000"
    assert notification.operation_key == "op-1"
    assert notification.amount_received == Decimal("3600.00")
    assert notification.succeeded


def test_verify_token_reports_unsuccessful_state() -> None:
    token = jwt.encode(
        {"data": {"invId": "5", "state": "CANCELED"}}, TOKEN_KEY, algorithm="HS256"
    )
    notification = verify_token(token, TOKEN_KEY, ["HS256"])
    assert notification is not None
    assert not notification.succeeded


def test_verify_token_rejects_wrong_key() -> None:
    token = jwt.encode(
        {"data": {"invId": "5", "state": "OK"}}, "other-key", algorithm="HS256"
    )
    assert verify_token(token, TOKEN_KEY, ["HS256"]) is None


def test_verify_token_rejects_algorithm_outside_allow_list() -> None:
    token = jwt.encode(
        {"data": {"invId": "5", "state": "OK"}}, TOKEN_KEY, algorithm="HS512"
    )
    assert verify_token(token, TOKEN_KEY, ["HS256"]) is None


def test_verify_token_rejects_malformed_input() -> None:
    assert verify_token(None, TOKEN_KEY, ["HS256"]) is None
    assert verify_token("not-a-token", TOKEN_KEY, ["HS256"]) is None
    missing_data = jwt.encode({"invId": "5"}, TOKEN_KEY, algorithm="HS256")
    assert verify_token(missing_data, TOKEN_KEY, ["HS256"]) is None
