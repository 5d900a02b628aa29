"""Verification of payment-gateway signatures.

Two schemes are supported. The classic scheme hashes a colon-joined list of
fields with a shared password and appends ``Shp_`` custom parameters sorted by
name. The token scheme is a JWS whose ``data`` section carries the payment
outcome. Both verifiers return ``None`` for anything they cannot vouch for;
they never raise on malformed input.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping, Sequence
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError
from pydantic import ValidationError

from workshop_billing.schemas.notifications import (
    ClassicNotification,
    TokenNotification,
)

CUSTOM_PARAM_PREFIX = "shp_"


def extract_custom_params(fields: Mapping[str, str]) -> dict[str, str]:
    """Return the ``Shp_`` pass-through parameters of a gateway request."""

    return {
        key: value
        for key, value in fields.items()
        if key.lower().startswith(CUSTOM_PARAM_PREFIX)
    }


def sign_fields(
    parts: Sequence[str],
    password: str,
    custom_params: Mapping[str, str] | None = None,
    *,
    algorithm: str = "md5",
) -> str:
    """Compute the upper-case classic signature over ``parts``."""

    segments = [*parts, password]
    if custom_params:
        segments.extend(f"{key}={custom_params[key]}" for key in sorted(custom_params))
    digest = hashlib.new(algorithm, ":".join(segments).encode("utf-8"))
    return digest.hexdigest().upper()


def verify_classic(
    fields: Mapping[str, str],
    password: str,
    *,
    algorithm: str = "md5",
) -> ClassicNotification | None:
    """Verify a classic-scheme request and return its parsed payload."""

    out_sum = (fields.get("OutSum") or "").strip()
    inv_id = (fields.get("InvId") or "").strip()
    supplied = (fields.get("SignatureValue") or "").strip()
    if not out_sum or not inv_id or not supplied or not password:
        return None

    custom_params = extract_custom_params(fields)
    try:
        expected = sign_fields(
            [out_sum, inv_id], password, custom_params, algorithm=algorithm
        )
    except ValueError:  # unsupported hash algorithm
        return None
    if not hmac.compare_digest(
        expected.encode("utf-8"), supplied.upper().encode("utf-8")
    ):
        return None

    try:
        return ClassicNotification.model_validate(
            {
                "OutSum": out_sum,
                "InvId": inv_id,
                "PaymentMethod": fields.get("PaymentMethod") or None,
                "IncCurrLabel": fields.get("IncCurrLabel") or None,
                "custom_params": custom_params,
            }
        )
    except ValidationError:
        return None


def verify_token(
    token: str | None, key: str, algorithms: Sequence[str]
) -> TokenNotification | None:
    """Verify a JWS notification token and return its data section."""

    if not token or not key or not algorithms:
        return None
    try:
        claims: dict[str, Any] = jwt.decode(
            token, key, algorithms=list(algorithms), options={"verify_aud": False}
        )
    except (JOSEError, ValueError):
        return None

    data = claims.get("data")
    if not isinstance(data, dict):
        return None
    try:
        return TokenNotification.model_validate(data)
    except ValidationError:
        return None


__all__ = ["extract_custom_params", "sign_fields", "verify_classic", "verify_token"]
