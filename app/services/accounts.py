"""
Account creation and serialization shared by registration, the admin user
screens and the seed scripts.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, func, col

from app.core.errors import ConflictError, ErrorCode
from app.core.security import get_password_hash, normalize_email
from app.models import Account, AccountMetadata, AccountPreferences, Role
from app.schemas import AccountDetailOut, AccountOut, MetadataOut, PreferencesOut, dump

SEED_SOURCE = "seed"


def get_account_by_email(session: Session, email: str) -> Optional[Account]:
    return session.exec(select(Account).where(Account.email == normalize_email(email))).first()


def count_non_seed_accounts(session: Session) -> int:
    """
    Accounts that did not come from seeding.

    An account without a metadata row counts as non-seed.
    """
    seeded = select(AccountMetadata.account_id).where(AccountMetadata.registration_source == SEED_SOURCE)
    return session.exec(
        select(func.count()).select_from(Account).where(col(Account.id).not_in(seeded))
    ).one()


def create_account(
    session: Session,
    *,
    email: str,
    password: str,
    name: str,
    role: Role = Role.SUBSCRIBER,
    email_verified: bool = False,
    registration_source: str = "web",
) -> Account:
    """
    Insert the account with default preferences and metadata.

    The three rows are flushed and committed together: either all exist
    afterwards or none do.
    """
    account = Account(
        email=normalize_email(email),
        name=name.strip(),
        hashed_password=get_password_hash(password),
        role=role,
        email_verified=email_verified,
    )
    try:
        session.add(account)
        session.flush()
        session.add(AccountPreferences(account_id=account.id))
        session.add(AccountMetadata(account_id=account.id, registration_source=registration_source))
        session.commit()
    except IntegrityError:
        # A concurrent registration won the unique email constraint
        session.rollback()
        raise ConflictError("Email is already in use", code=ErrorCode.EMAIL_ALREADY_EXISTS, field="email")
    except Exception:
        session.rollback()
        raise
    session.refresh(account)
    return account


def serialize_account(account: Account) -> dict:
    return dump(AccountOut.model_validate(account))


def serialize_account_detail(session: Session, account: Account) -> dict:
    preferences = session.exec(
        select(AccountPreferences).where(AccountPreferences.account_id == account.id)
    ).first()
    metadata = session.exec(
        select(AccountMetadata).where(AccountMetadata.account_id == account.id)
    ).first()
    base = AccountOut.model_validate(account)
    detail = AccountDetailOut(
        **base.model_dump(),
        preferences=PreferencesOut.model_validate(preferences) if preferences else None,
        metadata=MetadataOut.model_validate(metadata) if metadata else None,
    )
    return dump(detail)
