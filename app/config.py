import os

SECRET_KEY = os.environ.get("SECRET_KEY", "TU_SECRET_KEY_TEMPORAL")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")

# Tokens never expire unless an expiry is configured; logout is what ends a session
_expire = os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES")
ACCESS_TOKEN_EXPIRE_MINUTES = float(_expire) if _expire else None

# Default to local SQLite for dev/tests; override via env in Docker/Prod
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskmanager.db")

AVATAR_DIR = os.environ.get("AVATAR_DIR", "store/avatars")
AVATAR_MAX_BYTES = int(os.environ.get("AVATAR_MAX_BYTES", 1000000))
AVATAR_MAX_DIMENSION = int(os.environ.get("AVATAR_MAX_DIMENSION", 720))

SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY", "")
SENDGRID_URL = os.environ.get("SENDGRID_URL", "https://api.sendgrid.com/v3/mail/send")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
