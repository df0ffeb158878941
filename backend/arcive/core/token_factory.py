"""Session tokens: compact HS256 JWTs naming the signed-in user.

Plain functions only. ``create_session_token`` is called at login and
registration; ``decode_session_token`` by the auth dependency on every request.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_ISSUER = "sedia-arcive"
_HEADER = {"alg": "HS256", "typ": "JWT"}


@dataclass(frozen=True)
class SessionPayload:
    sub: str
    issued_at: datetime
    expires_at: datetime


def _b64(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _unb64(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def create_session_token(
    user_id: str,
    secret: str,
    expires_hours: int = 24,
    now: Optional[float] = None,
) -> str:
    """Sign a session token for *user_id*.

    A negative *expires_hours* yields an already expired token.
    """
    issued = int(time.time() if now is None else now)
    claims = {
        "iss": _ISSUER,
        "sub": user_id,
        "iat": issued,
        "exp": issued + expires_hours * 3600,
    }
    signing_input = b".".join([
        _b64(json.dumps(_HEADER, separators=(",", ":")).encode()),
        _b64(json.dumps(claims, separators=(",", ":")).encode()),
    ])
    return (signing_input + b"." + _b64(_sign(signing_input, secret))).decode()


def decode_session_token(
    token: str,
    secret: str,
    now: Optional[float] = None,
) -> Optional[SessionPayload]:
    """Return the payload of a valid token, else None.

    Invalid means any of: not three segments, bad signature, another
    issuer, no subject, expired.
    """
    try:
        header_b64, claims_b64, sig_b64 = token.encode().split(b".")
    except ValueError:
        return None

    try:
        expected = _sign(header_b64 + b"." + claims_b64, secret)
        if not hmac.compare_digest(expected, _unb64(sig_b64)):
            return None
        claims = json.loads(_unb64(claims_b64))
    except (ValueError, TypeError):
        # binascii.Error and JSONDecodeError are both ValueErrors.
        return None

    if not isinstance(claims, dict) or claims.get("iss") != _ISSUER or not claims.get("sub"):
        return None

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    if (time.time() if now is None else now) > exp:
        return None

    return SessionPayload(
        sub=str(claims["sub"]),
        issued_at=datetime.fromtimestamp(claims.get("iat", exp), tz=timezone.utc),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
