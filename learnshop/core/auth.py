# learnshop/core/auth.py
import uuid
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from learnshop.core.config import get_settings
from learnshop.core.errors import AuthorizationError, ForbiddenError
from learnshop.database import get_session
from learnshop.models.user import User
from learnshop.repositories.user_repo import UserRepository

settings = get_settings()
user_repo = UserRepository()

# auto_error=False: a missing header means guest, not 401.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT) issued by the identity provider.

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp), when present
      - audience is NOT verified

    Raises:
        AuthorizationError(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise AuthorizationError("Invalid or expired token")


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email when the token carries none.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    The caller behind the bearer token, or None for a guest.

    The local `users` row mirrors the identity provider and is created on
    the first authenticated request (role "user"). Bad or incomplete tokens
    are a 401, never a silent downgrade to guest.
    """
    if credentials is None:
        return None

    claims = decode_access_token(credentials.credentials)
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise AuthorizationError("Token missing sub/email")

    try:
        user_id = uuid.UUID(sub)
    except (TypeError, ValueError):
        raise AuthorizationError("Invalid sub in token")

    user = user_repo.get_by_id(session, user_id)
    if user is not None:
        return user

    # Admins are promoted manually, never through the token.
    try:
        return user_repo.create(
            session,
            User(
                id=user_id,
                email=email,
                name=claims.get("name") or _default_name_from_email(email),
                role="user",
            ),
        )
    except IntegrityError:
        # first requests of a new user racing each other
        session.rollback()
        user = user_repo.get_by_id(session, user_id)
        if user is None:
            raise AuthorizationError("Identity conflicts with an existing account")
        return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Authenticated caller; guests get 401."""
    if user is None:
        raise AuthorizationError()
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Authenticated caller with the admin role; anyone else gets 403."""
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user
