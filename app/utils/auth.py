import uuid
from datetime import datetime, timedelta, UTC
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from app.config import SECRET_KEY, ALGORITHM

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MAX_PASSWORD_BYTES = 72


def hash_password(password: str):
    """Hash a password after validating bcrypt's 72-byte limit.

    Raises ValueError if the UTF-8 encoding of the password exceeds 72 bytes.
    """
    if isinstance(password, str):
        b = password.encode("utf-8")
        if len(b) > MAX_PASSWORD_BYTES:
            raise ValueError("password too long: must be at most 72 bytes when UTF-8 encoded")
    return pwd_context.hash(password)


def verify_password(plain, hashed):
    """Verify a plaintext password against a hash.

    Any ValueError (oversized input, malformed hash) counts as a mismatch so the
    caller can answer with a plain authentication failure.
    """
    if not plain or not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def create_token(user_id: str) -> str:
    """Sign a bearer token for ``user_id``.

    ``jti`` keeps two logins of the same user from producing the same string,
    otherwise logging out one device would log out the other.
    """
    data = {
        "sub": user_id,
        "jti": uuid.uuid4().hex,
        "iat": int(datetime.now(UTC).timestamp()),
    }
    # read expiry at call-time so tests (and runtime overrides) that modify
    # app.config.ACCESS_TOKEN_EXPIRE_MINUTES take effect immediately
    import app.config as _cfg
    if _cfg.ACCESS_TOKEN_EXPIRE_MINUTES:
        expire = datetime.now(UTC) + timedelta(minutes=_cfg.ACCESS_TOKEN_EXPIRE_MINUTES)
        data["exp"] = int(expire.timestamp())
    return jwt.encode(data, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Return the user id a token was issued for, or None if it does not verify."""
    try:
        # jwt.decode validates exp automatically when present
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")
