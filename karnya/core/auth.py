import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from karnya.core.db import get_db
from karnya.core.errors import Forbidden, InvalidToken, Unauthenticated
from karnya.core.permissions import authorize, can_access, permissions_for
from karnya.core.security import Identity, TokenService, get_token_service
from karnya.models.user import Account

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_current_identity(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Identity carried by the bearer token.

    The role comes from the token claims, not from the database: a role
    change only shows up once the user logs in again. The database is only
    asked whether the account still exists.
    """
    if creds is None or (creds.scheme or "").lower() != "bearer" or not creds.credentials:
        raise Unauthenticated("No token, authorization denied")

    try:
        identity = tokens.validate(creds.credentials)
    except InvalidToken:
        raise Unauthenticated("Token is not valid")

    if db.get(Account, identity.id) is None:
        logger.info("Token for missing account id=%s rejected", identity.id)
        raise Unauthenticated("Token is not valid")

    return identity


def require_roles(*roles: str):
    """Dependency factory: only the listed roles get through."""

    def _check(identity: Identity = Depends(get_current_identity)) -> Identity:
        authorize(identity, roles)
        return identity

    return _check


def require_permission(permission: str):
    def _check(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not can_access(permissions_for(identity.role), permission):
            raise Forbidden(f"Missing permission {permission}")
        return identity

    return _check
