"""Account lifecycle: signup, email verification, login and credential lookup.

Accounts move from unverified to verified exactly once; nothing here ever clears
``email_verified``. Logging in replaces the account's single bearer session.
"""

import datetime as dt
import logging
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.config import Settings
from hub_api.errors import AccountNotFound, EmailAlreadyExists, InternalError
from hub_api.models import Account
from hub_api.naming import generate_login
from hub_api.passwords import hash_password, needs_rehash, validate_credentials, verify_password
from hub_api.tokens import issue_session_token, utcnow, verification_token

logger = logging.getLogger(__name__)

SIGNUP_LOGIN_ATTEMPTS = 3

VERIFIED_MESSAGE = "Your email verified."
INVALID_VERIFICATION_MESSAGE = "Invalid request"
VERIFICATION_FAILED_MESSAGE = "Internal error. Please try later."


def find_account_by_credentials(db: Session, settings: Settings, email: str, password: str) -> Optional[Account]:
    account = db.execute(select(Account).where(Account.email == email)).scalar_one_or_none()
    if account is None:
        return None
    if not verify_password(password, account.password, salt=settings.password_salt):
        return None
    return account


def signup(db: Session, settings: Settings, email: str, password: str) -> Account:
    validate_credentials(email, password)
    hashed = hash_password(password, salt=settings.password_salt, scheme=settings.password_scheme)
    for _ in range(SIGNUP_LOGIN_ATTEMPTS):
        now = utcnow()
        account = Account(
            email=email,
            login=generate_login(),
            password=hashed,
            email_verified=False,
            email_verification_token=verification_token(),
            email_verification_expires_at=now + dt.timedelta(hours=settings.verification_ttl_hours),
            created_at=now,
            updated_at=now,
        )
        db.add(account)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if _email_taken(db, email):
                logger.warning("can not create new user, reason: email %s already exists", email)
                raise EmailAlreadyExists()
            logger.warning("login collision on signup for email %s, retrying", email)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("can not create user, email: %s, reason: %s", email, exc)
            raise InternalError() from exc
        logger.info("created new user, email: %s", email)
        return account
    logger.error("can not create user, email: %s, reason: no free login after %s attempts", email, SIGNUP_LOGIN_ATTEMPTS)
    raise InternalError()


def _email_taken(db: Session, email: str) -> bool:
    try:
        return db.execute(select(Account.id).where(Account.email == email)).first() is not None
    except SQLAlchemyError as exc:
        raise InternalError() from exc


def login(db: Session, settings: Settings, email: str, password: str) -> str:
    """Check credentials and start a new session, returning its bearer token."""
    validate_credentials(email, password)
    try:
        account = find_account_by_credentials(db, settings, email, password)
    except SQLAlchemyError as exc:
        logger.warning("can not get user, email: %s, reason: %s", email, exc)
        raise InternalError() from exc
    if account is None:
        logger.warning("user not found, email: %s", email)
        raise AccountNotFound()

    token, expires_at = issue_session_token(settings.jwt_secret, account.login, settings.token_ttl_hours)
    values = {"token": token, "token_expired_at": expires_at, "updated_at": utcnow()}
    if needs_rehash(account.password, settings.password_scheme, password):
        values["password"] = hash_password(password, salt=settings.password_salt, scheme=settings.password_scheme)
        logger.info("upgraded password hash, login: %s", account.login)
    try:
        db.execute(update(Account).where(Account.id == account.id).values(**values))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("can not update token, email: %s, reason: %s", email, exc)
        raise InternalError() from exc
    return token


def verify_email(db: Session, token: str) -> str:
    now = utcnow()
    statement = (
        update(Account)
        .where(Account.email_verification_token == token)
        .where(or_(Account.email_verification_expires_at.is_(None), Account.email_verification_expires_at > now))
        .values(email_verified=True, email_verification_token=None, email_verification_expires_at=None, updated_at=now)
    )
    try:
        result = db.execute(statement)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("email verification is failed, reason: %s", exc)
        return VERIFICATION_FAILED_MESSAGE
    if result.rowcount == 0:
        logger.info("email not verified, because token not found or expired")
        return INVALID_VERIFICATION_MESSAGE
    logger.info("email verified")
    return VERIFIED_MESSAGE


def purge_expired_verification_tokens(db: Session, now: Optional[dt.datetime] = None) -> int:
    now = now or utcnow()
    result = db.execute(
        update(Account)
        .where(Account.email_verified.is_(False))
        .where(Account.email_verification_token.is_not(None))
        .where(Account.email_verification_expires_at <= now)
        .values(email_verification_token=None, email_verification_expires_at=None, updated_at=now)
    )
    db.commit()
    logger.info("purged %s expired verification tokens", result.rowcount)
    return result.rowcount
