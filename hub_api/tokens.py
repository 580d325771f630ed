import datetime as dt
import secrets
from typing import Any, Dict, Tuple

import jwt

ALGORITHM = "HS256"


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, matching how the tables store datetimes."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def issue_session_token(secret: str, login: str, ttl_hours: int) -> Tuple[str, dt.datetime]:
    issued_at = utcnow()
    expires_at = issued_at + dt.timedelta(hours=ttl_hours)
    payload = {
        "jti": secrets.token_urlsafe(24),
        "sub": login,
        "iat": int(issued_at.replace(tzinfo=dt.timezone.utc).timestamp()),
        "exp": int(expires_at.replace(tzinfo=dt.timezone.utc).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM), expires_at


def decode_session_token(secret: str, token: str) -> Dict[str, Any]:
    return jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["exp", "jti", "sub"]})


def verification_token() -> str:
    return secrets.token_urlsafe(32)
