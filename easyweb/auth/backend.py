"""Cookie token authentication for the site and for admin inline editing."""

from dataclasses import dataclass

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    BaseUser,
)
from starlette.requests import HTTPConnection

from easyweb.auth.utils import decode_token
from easyweb.config import SecurityOptions
from easyweb.db import get_user

TOKEN_COOKIE = "ew_token"


@dataclass
class SiteUser(BaseUser):
    id: int
    username: str
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.username

    @property
    def identity(self) -> str:
        return str(self.id)


class TokenCookieBackend(AuthenticationBackend):
    def __init__(self, security: SecurityOptions):
        self.security = security

    async def authenticate(self, conn: HTTPConnection):
        token = conn.cookies.get(TOKEN_COOKIE)
        if not token:
            return None

        user_id = decode_token(token, self.security)
        if not user_id:
            return None

        user = get_user(user_id)
        if not user:
            return None

        scopes = ["authenticated"]
        if user["is_admin"]:
            scopes.append("admin")
        return AuthCredentials(scopes), SiteUser(
            id=user["id"], username=user["username"], is_admin=bool(user["is_admin"])
        )


def current_user(conn: HTTPConnection) -> SiteUser | None:
    if "user" not in conn.scope:
        return None
    user = conn.user
    return user if user.is_authenticated else None
