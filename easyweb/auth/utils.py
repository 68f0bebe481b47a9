from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from easyweb.config import SecurityOptions, settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Not a bcrypt hash, e.g. a user imported without a password
        return False


def create_token(user_id: int, security: SecurityOptions | None = None) -> str:
    security = security or settings.security
    expire = datetime.now(timezone.utc) + timedelta(minutes=security.jwt_expire_minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, security.secret_key, algorithm=security.jwt_algorithm)


def decode_token(token: str, security: SecurityOptions | None = None) -> int | None:
    security = security or settings.security
    try:
        payload = jwt.decode(token, security.secret_key, algorithms=[security.jwt_algorithm])
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None
