import logging
from typing import Tuple

from sqlalchemy.orm import Session
from app.errors import AuthError
from app.models.user import User, UserToken
from app.utils.auth import create_token, decode_token

logger = logging.getLogger(__name__)


def issue(db: Session, user: User) -> str:
    """Sign a new token for ``user`` and record it as a live session."""
    token = create_token(user.id)
    db.add(UserToken(user_id=user.id, token=token))
    db.commit()
    return token


def validate(db: Session, token: str) -> Tuple[User, str]:
    """Resolve a bearer token to its owner.

    A token only counts while it is still in the owner's collection, so a
    logout is just the removal of the row.
    """
    user_id = decode_token(token)
    if not user_id:
        raise AuthError("Please authenticate.")
    user = (
        db.query(User)
        .join(UserToken, UserToken.user_id == User.id)
        .filter(User.id == user_id, UserToken.token == token)
        .first()
    )
    if not user:
        raise AuthError("Please authenticate.")
    return user, token


def revoke_one(db: Session, user: User, token: str) -> None:
    # a per-row delete: concurrent logouts from two devices cannot undo each other
    db.query(UserToken).filter(UserToken.user_id == user.id, UserToken.token == token).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("user %s logged out one session", user.id)


def revoke_all(db: Session, user: User) -> None:
    count = db.query(UserToken).filter(UserToken.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    logger.info("user %s logged out %d sessions", user.id, count)
