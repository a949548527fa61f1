import logging
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_auth, get_current_user
from app.emails.account import send_cancel_email, send_welcome_email
from app.errors import AuthError, NotFound, ValidationError, describe_errors
from app.models.user import User
from app.schemas.user import UPDATABLE_FIELDS, UserCreate, UserLogin, UserOut, UserUpdate, UserWithToken
from app.services import tokens, uploads, users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserWithToken, status_code=201)
def register(data: UserCreate, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    user = users.create_user(db, data)
    token = tokens.issue(db, user)
    db.refresh(user)
    background_tasks.add_task(send_welcome_email, user.email, user.name)
    return {"user": user, "token": token}


@router.post("/login", response_model=UserWithToken)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    try:
        user = users.find_by_credentials(db, credentials.email, credentials.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)

    token = tokens.issue(db, user)
    db.refresh(user)
    logger.info("user %s logged in", user.id)
    return {"user": user, "token": token}


@router.post("/logout")
def logout(auth: Tuple[User, str] = Depends(get_auth), db: Session = Depends(get_db)):
    user, token = auth
    tokens.revoke_one(db, user, token)
    return {"detail": "logged out"}


@router.post("/logoutAll")
def logout_all(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tokens.revoke_all(db, user)
    return {"detail": "logged out everywhere"}


@router.get("", response_model=List[UserOut])
def list_users(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return users.list_users(db)


@router.get("/me", response_model=UserOut)
def read_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserOut)
def update_me(
    body: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # the whole request fails on one unknown field, nothing is applied
    if not set(body) <= UPDATABLE_FIELDS:
        raise ValidationError("Invalid update")
    try:
        update = UserUpdate.model_validate(body)
    except SchemaError as e:
        raise ValidationError(describe_errors(e.errors()))

    return users.update_user(db, user, update.model_dump(exclude_unset=True))


@router.delete("/me", response_model=UserOut)
def delete_me(
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    removed = UserOut.model_validate(user)
    users.remove_user(db, user)
    background_tasks.add_task(send_cancel_email, removed.email, removed.name)
    return removed


@router.post("/me/avatar")
def upload_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    uploads.store_avatar(db, user, avatar)
    return {"detail": "avatar uploaded"}


@router.delete("/me/avatar")
def delete_avatar(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    uploads.clear_avatar(db, user)
    return {"detail": "avatar removed"}


@router.get("/{user_id}/avatar")
def read_avatar(user_id: str, db: Session = Depends(get_db)):
    try:
        path, media_type = uploads.avatar_file(db, user_id)
    except NotFound as e:
        raise HTTPException(status_code=400, detail=e.message)
    return FileResponse(path, media_type=media_type)
