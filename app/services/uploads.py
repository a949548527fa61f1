import io
import logging
import mimetypes
import os
import re
import time
import uuid
from typing import Tuple

from fastapi import UploadFile
from PIL import Image
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app import config
from app.errors import NotFound, ValidationError
from app.models.upload import Upload
from app.models.user import User

logger = logging.getLogger(__name__)

AVATAR_NAME = re.compile(r"\.(png|gif|jpeg|jpg)$", re.IGNORECASE)
AVATAR_COLLECTION = "users"


def validate_file(file: UploadFile) -> int:
    """Check an avatar's name and size before anything touches the disk.

    Returns the size in bytes.
    """
    if not file.filename or not AVATAR_NAME.search(file.filename):
        raise ValidationError("Please upload a valid image. Only JPG, PNG and GIF files are allowed.")

    file.file.seek(0, 2)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size > config.AVATAR_MAX_BYTES:
        raise ValidationError(f"File too large. Maximum {config.AVATAR_MAX_BYTES} bytes.")
    return file_size


def discard_file(path: str) -> None:
    """Best-effort removal of a stored file; failures are logged, not raised."""
    try:
        os.remove(path)
    except OSError as e:
        logger.warning("could not remove stored file %s: %s", path, e)


def remove_upload(db: Session, path: str) -> None:
    """Best-effort removal of a stored file and its Upload record."""
    discard_file(path)
    try:
        db.query(Upload).filter(Upload.path == path).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("could not remove upload record for %s: %s", path, e)


def _fit_image(data: bytes, path: str) -> None:
    """Shrink to fit within the avatar bounding box, keeping aspect and format."""
    bound = config.AVATAR_MAX_DIMENSION
    with Image.open(io.BytesIO(data)) as image:
        fmt = image.format
        image.thumbnail((bound, bound))
        image.save(path, format=fmt)


def store_avatar(db: Session, user: User, file: UploadFile) -> Upload:
    size = validate_file(file)

    ext = os.path.splitext(file.filename)[1].lower()
    filename = f"avatar-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
    os.makedirs(config.AVATAR_DIR, exist_ok=True)
    path = os.path.join(config.AVATAR_DIR, filename)

    data = file.file.read()
    with open(path, "wb") as f:
        f.write(data)

    try:
        _fit_image(data, path)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        discard_file(path)
        raise ValidationError(f"Unable to process image: {e}")

    # no rollback past this point: a failed save leaves the written file behind
    upload = Upload(
        path=path,
        filename=filename,
        originalname=file.filename,
        size=size,
        mimetype=mimetypes.guess_type(filename)[0] or file.content_type or "application/octet-stream",
        collection_name=AVATAR_COLLECTION,
        owner_id=user.id,
    )
    db.add(upload)
    db.commit()

    previous = user.avatar
    if previous and previous != path:
        remove_upload(db, previous)

    user.avatar = path
    db.commit()
    db.refresh(upload)
    logger.info("stored avatar %s for user %s", path, user.id)
    return upload


def clear_avatar(db: Session, user: User) -> None:
    if not user.avatar:
        return
    remove_upload(db, user.avatar)
    user.avatar = None
    db.commit()
    logger.info("removed avatar of user %s", user.id)


def avatar_file(db: Session, user_id: str) -> Tuple[str, str]:
    """Path and media type of a user's avatar."""
    user = db.get(User, user_id)
    if not user or not user.avatar or not os.path.isfile(user.avatar):
        raise NotFound("Avatar not found")
    media_type = mimetypes.guess_type(user.avatar)[0] or "application/octet-stream"
    return user.avatar, media_type
