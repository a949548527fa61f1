import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from app.errors import AuthError, ValidationError
from app.models.task import Task
from app.models.upload import Upload
from app.models.user import User
from app.schemas.user import UserCreate
from app.services.uploads import discard_file
from app.utils.auth import verify_password

logger = logging.getLogger(__name__)


def _email_taken(db: Session, email: str, exclude_id: str = None) -> bool:
    query = db.query(User.id).filter(User.email == email.strip().lower())
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _commit(db: Session):
    """Commit, turning constraint and version conflicts into ValidationError."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already exists")
    except StaleDataError:
        db.rollback()
        raise ValidationError("User was modified concurrently, retry the update")


def create_user(db: Session, data: UserCreate) -> User:
    if _email_taken(db, data.email):
        raise ValidationError("Email already exists")

    try:
        user = User(name=data.name, email=data.email, password=data.password, age=data.age)
    except ValueError as e:
        raise ValidationError(str(e))
    db.add(user)
    _commit(db)
    db.refresh(user)
    logger.info("registered user %s", user.id)
    return user


def find_by_credentials(db: Session, email: str, password: str) -> User:
    """Return the user owning ``email`` if ``password`` matches.

    Unknown email and wrong password fail the same way so a caller cannot
    tell which addresses are registered.
    """
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user or not verify_password(password, user.password):
        raise AuthError("Unable to login")
    return user


def update_user(db: Session, user: User, fields: Dict[str, Any]) -> User:
    for field, value in fields.items():
        if value is None:
            raise ValidationError(f"{field} cannot be null")
    if "email" in fields and _email_taken(db, fields["email"], exclude_id=user.id):
        raise ValidationError("Email already exists")

    try:
        for field, value in fields.items():
            setattr(user, field, value)
    except ValueError as e:
        db.rollback()
        raise ValidationError(str(e))
    _commit(db)
    db.refresh(user)
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at, User.id).all()


def remove_user(db: Session, user: User) -> None:
    """Delete the user with its sessions, tasks and uploaded files."""
    user_id = user.id
    paths = [path for (path,) in db.query(Upload.path).filter(Upload.owner_id == user_id)]
    db.query(Task).filter(Task.owner_id == user_id).delete(synchronize_session=False)
    db.query(Upload).filter(Upload.owner_id == user_id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()

    for path in paths:
        discard_file(path)
    logger.info("removed user %s (%d uploads)", user_id, len(paths))
