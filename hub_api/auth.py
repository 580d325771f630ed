import base64
import binascii
import hmac
import logging
from typing import Optional, Tuple

import jwt
from fastapi import Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.accounts import find_account_by_credentials
from hub_api.config import Settings
from hub_api.errors import (
    AccountNotFound,
    EmailNotVerified,
    InternalError,
    InvalidEmailAndPassword,
    InvalidToken,
    Unauthorized,
)
from hub_api.models import Account
from hub_api.passwords import MIN_PASSWORD_LENGTH
from hub_api.tokens import decode_session_token, utcnow

logger = logging.getLogger(__name__)

LOOPBACK_HOSTS = {"127.0.0.1", "::1"}


def read_token(authorization: Optional[str]) -> str:
    parts = (authorization or "").split(" ")
    if len(parts) == 2 and parts[0] == "Bearer" and parts[1]:
        return parts[1]
    raise InvalidToken()


def read_email_and_password(authorization: Optional[str]) -> Tuple[str, str]:
    parts = (authorization or "").split(" ")
    if len(parts) != 2 or parts[0] != "Basic":
        raise InvalidEmailAndPassword()
    try:
        decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidEmailAndPassword() from exc
    email, sep, password = decoded.partition(":")
    if not sep:
        raise InvalidEmailAndPassword()
    return email, password


def login_by_token(db: Session, settings: Settings, token: str) -> str:
    try:
        decode_session_token(settings.jwt_secret, token)
    except jwt.ExpiredSignatureError as exc:
        raise AccountNotFound() from exc
    except jwt.PyJWTError as exc:
        raise InvalidToken() from exc
    try:
        account = db.execute(
            select(Account).where(Account.token == token).where(Account.token_expired_at > utcnow())
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("can not look up session token, reason: %s", exc)
        raise InternalError() from exc
    if account is None:
        raise AccountNotFound()
    if not account.email_verified:
        raise EmailNotVerified()
    return account.login


def login_by_email_and_password(db: Session, settings: Settings, email: str, password: str) -> str:
    if not email or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidEmailAndPassword()
    try:
        account = find_account_by_credentials(db, settings, email, password)
    except SQLAlchemyError as exc:
        logger.error("can not look up user for basic auth, email: %s, reason: %s", email, exc)
        raise InternalError() from exc
    if account is None:
        raise AccountNotFound()
    if not account.email_verified:
        raise EmailNotVerified()
    return account.login


def require_login(request: Request) -> str:
    """FastAPI dependency resolving the bearer session to a verified login.

    The database session is closed before the handler runs, so no connection is
    held while the handler shells out or calls CI.
    """
    token = read_token(request.headers.get("Authorization"))
    with request.app.state.database.session() as db:
        return login_by_token(db, request.app.state.settings, token)


def require_internal_caller(request: Request) -> None:
    settings: Settings = request.app.state.settings
    expected = settings.internal_token
    if not expected:
        host = request.client.host if request.client else ""
        if host not in LOOPBACK_HOSTS:
            logger.warning("rejected internal call from non-loopback client %s", host)
            raise Unauthorized("internal endpoint is only reachable from loopback")
        return
    provided = request.headers.get("X-Internal-Token", "").strip()
    if not provided:
        auth_header = request.headers.get("Authorization", "").strip()
        if auth_header.lower().startswith("bearer "):
            provided = auth_header.split(" ", 1)[1].strip()
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("rejected internal call with missing or wrong internal token")
        raise Unauthorized()
