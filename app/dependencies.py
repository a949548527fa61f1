from typing import Optional, Tuple

from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import AuthError
from app.models.user import User
from app.services import tokens


def _extract_token(authorization: Optional[str], token_query: Optional[str]) -> Optional[str]:
    """Return token from Authorization header (Bearer ...) or token query param (compat).
    Header has precedence.
    """
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
    return token_query


def get_auth(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Tuple[User, str]:
    """Resolve the caller to ``(user, token)`` or fail with 401."""
    tok = _extract_token(authorization, token)
    if not tok:
        raise AuthError("Please authenticate.")
    return tokens.validate(db, tok)


def get_current_user(auth: Tuple[User, str] = Depends(get_auth)) -> User:
    return auth[0]
