"""
Single-use verification and password-reset tokens.

Tokens are random 64-char hex strings stored in ``verification_token``.
Issuing a token of a type retires every unused token of that type for the
account, so only the newest link works.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlmodel import Session, select, func, delete, col

from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.security import get_password_hash
from app.models import Account, LoginSession, TokenType, VerificationToken

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _issue_token(
    session: Session,
    account_id: int,
    token_type: TokenType,
    lifetime: timedelta,
    resent: bool = False,
) -> str:
    previous = session.exec(
        select(VerificationToken).where(
            VerificationToken.account_id == account_id,
            VerificationToken.type == token_type,
            VerificationToken.used == False,  # noqa: E712
        )
    ).all()
    for old in previous:
        old.used = True
        session.add(old)

    token = secrets.token_hex(32)
    now = _utc_now()
    session.add(
        VerificationToken(
            token=token,
            account_id=account_id,
            type=token_type,
            resent=resent,
            created_at=now,
            expires_at=now + lifetime,
        )
    )
    session.commit()
    logger.info("Verification token issued", account_id=account_id, token_type=token_type.value)
    return token


def create_email_verification_token(session: Session, account_id: int, resent: bool = False) -> str:
    return _issue_token(
        session,
        account_id,
        TokenType.EMAIL_VERIFICATION,
        timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
        resent=resent,
    )


def create_password_reset_token(session: Session, account_id: int) -> str:
    return _issue_token(
        session,
        account_id,
        TokenType.PASSWORD_RESET,
        timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
    )


def count_recent_verification_tokens(session: Session, account_id: int, window: timedelta = timedelta(hours=1)) -> int:
    """Resend-issued verification tokens created for the account inside ``window``."""
    since = _utc_now() - window
    return session.exec(
        select(func.count()).select_from(VerificationToken).where(
            VerificationToken.account_id == account_id,
            VerificationToken.type == TokenType.EMAIL_VERIFICATION,
            VerificationToken.resent == True,  # noqa: E712
            VerificationToken.created_at >= since,
        )
    ).one()


def _find_valid_token(session: Session, token: str, token_type: TokenType) -> Optional[VerificationToken]:
    if not token:
        return None
    return session.exec(
        select(VerificationToken).where(
            VerificationToken.token == token,
            VerificationToken.type == token_type,
            VerificationToken.used == False,  # noqa: E712
            VerificationToken.expires_at > _utc_now(),
        )
    ).first()


def verify_email_verification_token(session: Session, token: str) -> Optional[Account]:
    """
    Consume an email-verification token.

    Marks the token used and the account verified in one commit. Returns the
    account, or None when the token is unknown, used or expired.
    """
    record = _find_valid_token(session, token, TokenType.EMAIL_VERIFICATION)
    if record is None:
        return None

    account = session.get(Account, record.account_id)
    if account is None:
        return None

    record.used = True
    account.email_verified = True
    account.updated_at = _utc_now()
    session.add(record)
    session.add(account)
    session.commit()
    session.refresh(account)
    logger.info("Email verified", account_id=account.id)
    return account


def verify_password_reset_token(session: Session, token: str) -> Optional[Account]:
    """Look up the account a reset token belongs to without consuming it."""
    record = _find_valid_token(session, token, TokenType.PASSWORD_RESET)
    if record is None:
        return None
    return session.get(Account, record.account_id)


def update_account_password(session: Session, account: Account, new_password: str, reset_token: str) -> None:
    """
    Set a new password, consume the reset token and revoke every login session.

    All three changes land in a single commit.
    """
    account.hashed_password = get_password_hash(new_password)
    account.updated_at = _utc_now()
    session.add(account)

    record = session.exec(
        select(VerificationToken).where(VerificationToken.token == reset_token)
    ).first()
    if record is not None:
        record.used = True
        session.add(record)

    session.execute(delete(LoginSession).where(col(LoginSession.account_id) == account.id))
    session.commit()
    logger.info("Password updated, sessions revoked", account_id=account.id)
