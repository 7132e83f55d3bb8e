"""Signed bearer tokens forwarded to the privileged functions.

A token is ``base64(json_payload).base64(hmac_sha256)`` with an ``exp``
claim. The functions endpoint verifies it with the shared secret key and then
re-checks the admin flag for ``sub`` itself.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time

ACCESS_TOKEN_TTL = 60 * 60


def create_signed_token(payload: dict, secret: str, expires_in: int) -> str:
    payload = {**payload, "exp": int(time.time()) + expires_in}
    payload_b64 = base64.urlsafe_b64encode(
        json.dumps(payload, separators=(",", ":")).encode()
    ).decode()

    sig = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    return f"{payload_b64}.{base64.urlsafe_b64encode(sig).decode()}"


def verify_signed_token(token: str, secret: str) -> dict | None:
    """Decode ``token``; ``None`` if malformed, tampered with or expired."""
    parts = token.split(".")
    if len(parts) != 2:
        return None
    payload_b64, sig_b64 = parts

    expected = hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).digest()
    try:
        actual = base64.urlsafe_b64decode(sig_b64)
    except (binascii.Error, ValueError):
        return None
    if not hmac.compare_digest(expected, actual):
        return None

    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or time.time() > exp:
        return None
    return payload


def create_access_token(user_id: str, secret: str, expires_in: int = ACCESS_TOKEN_TTL) -> str:
    return create_signed_token({"sub": user_id, "type": "access"}, secret, expires_in)


def verify_access_token(token: str, secret: str) -> str | None:
    """Return the user id carried by a valid access token."""
    payload = verify_signed_token(token, secret)
    if payload is None or payload.get("type") != "access":
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) else None
