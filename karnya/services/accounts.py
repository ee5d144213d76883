#karnya/services/accounts.py

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from karnya.core.db import utcnow
from karnya.core.errors import (
    AlreadyVerified,
    DuplicateEmail,
    Forbidden,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidToken,
    NotFound,
    UnverifiedAccount,
)
from karnya.core.permissions import UserRole, can_assign_role
from karnya.core.security import Identity, TokenService, hash_password, verify_password
from karnya.models.user import Account
from karnya.services.mailer import Mailer

logger = logging.getLogger(__name__)

# email, password and verification state have their own flows
PROFILE_FIELDS = {"first_name", "last_name", "phone"}


def identity_of(account: Account) -> Identity:
    return Identity(id=account.id, email=account.email, role=account.role)


class AccountStore:
    """Credential store: every read and write of ``accounts`` goes through here."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: int) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.email == email).first()

    def get_by_reset_token(self, token: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.reset_token == token).first()

    def add(self, account: Account) -> Account:
        self.db.add(account)
        try:
            self.db.flush()  # surface the unique constraint before commit
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateEmail() from exc
        self.db.commit()
        self.db.refresh(account)
        return account

    def consume_verification_token(self, token: str) -> Optional[Account]:
        account = self.db.query(Account).filter(Account.verification_token == token).first()
        if account is None:
            return None
        # conditional write: two concurrent submissions cannot both succeed
        result = self.db.execute(
            update(Account)
            .where(Account.id == account.id, Account.verification_token == token)
            .values(is_verified=True, verification_token=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return None
        self.db.commit()
        self.db.refresh(account)
        return account

    def set_verification_token(self, account: Account, token: str) -> Account:
        account.verification_token = token
        account.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def set_reset_token(self, account: Account, token: str, expires) -> Account:
        account.reset_token = token
        account.reset_token_expires = expires
        account.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def consume_reset_token(self, token: str, password_hash: str) -> bool:
        now = utcnow()
        result = self.db.execute(
            update(Account)
            .where(Account.reset_token == token, Account.reset_token_expires > now)
            .values(password_hash=password_hash, reset_token=None, reset_token_expires=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def update_fields(self, account: Account, values: Dict[str, Any]) -> Account:
        for key, value in values.items():
            setattr(account, key, value)
        account.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def set_role(self, account: Account, role: str) -> Account:
        account.role = role
        account.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def page(self, page: int, size: int) -> Tuple[List[Account], int]:
        total = self.db.scalar(select(func.count(Account.id)))
        rows = (
            self.db.execute(select(Account).order_by(Account.id).offset((page - 1) * size).limit(size))
            .scalars()
            .all()
        )
        return list(rows), total


class AccountLifecycle:
    """Registration, login, email verification and password reset."""

    def __init__(self, store: AccountStore, tokens: TokenService, mailer: Mailer):
        self.store = store
        self.tokens = tokens
        self.mailer = mailer

    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        user_type: str,
        phone: Optional[str] = None,
    ) -> Tuple[Account, str]:
        """Create an unverified account and hand back a session token for it.

        The token is issued before verification; login, by contrast, refuses
        unverified accounts.
        """
        if self.store.get_by_email(email):
            raise DuplicateEmail()

        account = Account(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            user_type=user_type,
            role=UserRole.USER.value,
            is_verified=False,
            verification_token=self.tokens.issue_verification_token(),
        )
        account = self.store.add(account)
        logger.info("Registered account id=%s type=%s", account.id, account.user_type)

        self.mailer.send_verification(account.email, account.verification_token)
        return account, self.tokens.issue_session_token(identity_of(account))

    def login(self, email: str, password: str) -> Tuple[Account, str]:
        account = self.store.get_by_email(email)
        if not account or not verify_password(password, account.password_hash):
            raise InvalidCredentials()
        if not account.is_verified:
            # reveals that the account exists so the client can offer a resend
            raise UnverifiedAccount(account.id)
        return account, self.tokens.issue_session_token(identity_of(account))

    def me(self, identity: Identity) -> Account:
        account = self.store.get(identity.id)
        if not account:
            raise NotFound("User not found")
        return account

    def verify_email(self, token: str) -> Account:
        account = self.store.consume_verification_token(token)
        if account is None:
            raise InvalidToken("Invalid verification token")
        logger.info("Verified email for account id=%s", account.id)
        return account

    def resend_verification(self, email: str) -> None:
        account = self.store.get_by_email(email)
        if not account:
            raise NotFound("User not found")
        if account.is_verified:
            raise AlreadyVerified()
        account = self.store.set_verification_token(account, self.tokens.issue_verification_token())
        self.mailer.send_verification(account.email, account.verification_token)

    def request_password_reset(self, email: str) -> None:
        account = self.store.get_by_email(email)
        if not account:
            raise NotFound("User not found")
        token, expires = self.tokens.issue_reset_token()
        # overwrites any earlier token, so only the newest link works
        self.store.set_reset_token(account, token, expires)
        self.mailer.send_password_reset(account.email, token)

    def reset_password(self, token: str, new_password: str) -> None:
        account = self.store.get_by_reset_token(token)
        if account is None or account.reset_token_expires is None or account.reset_token_expires <= utcnow():
            raise InvalidOrExpiredToken()
        if not self.store.consume_reset_token(token, hash_password(new_password)):
            raise InvalidOrExpiredToken()
        logger.info("Password reset for account id=%s", account.id)

    def update_profile(self, identity: Identity, patch: Dict[str, Any]) -> Account:
        """Apply a partial profile change; only names and phone are writable."""
        account = self.me(identity)
        changes = {k: v for k, v in patch.items() if k in PROFILE_FIELDS}
        return self.store.update_fields(account, changes)

    def change_role(self, actor: Identity, account_id: int, role: str) -> Account:
        # live session tokens keep the old role until they expire
        account = self.store.get(account_id)
        if not account:
            raise NotFound("User not found")
        if not can_assign_role(actor.role, account.role, role):
            raise Forbidden(f"User role {actor.role} cannot assign role {role}")
        logger.info("Account id=%s changed role of id=%s to %s", actor.id, account_id, role)
        return self.store.set_role(account, role)
