import logging
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from easyweb.auth.backend import TOKEN_COOKIE
from easyweb.auth.utils import create_token, hash_password, verify_password
from easyweb.config import SecurityOptions
from easyweb.db import create_user, get_user_by_username
from easyweb.filters import validate_antiforgery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/easyweb", tags=["auth"])


def safe_return_url(url: str | None) -> str:
    """Only allow local return urls."""
    if not url:
        return "/"
    parts = urlsplit(url)
    if parts.scheme or parts.netloc or not url.startswith("/") or url.startswith("//"):
        return "/"
    return url


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, returnUrl: str = "/"):
    return request.app.state.services.views.render(
        request, "login", {"return_url": safe_return_url(returnUrl)}
    )


@router.post("/login", dependencies=[Depends(validate_antiforgery)])
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    return_url: str = Form("/"),
):
    user = get_user_by_username(username)

    if not user or not verify_password(password, user["password_hash"]):
        logger.info(f"Failed login for {username}")
        return request.app.state.services.views.render(
            request,
            "login",
            {"return_url": safe_return_url(return_url), "error": "invalid_credentials"},
            status_code=401,
        )

    security = request.app.state.settings.security
    token = create_token(user["id"], security)
    resp = RedirectResponse(safe_return_url(return_url), status_code=303)
    resp.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
        max_age=security.jwt_expire_minutes * 60,
    )
    return resp


@router.post("/logout")
async def logout():
    resp = RedirectResponse("/", status_code=303)
    resp.delete_cookie(TOKEN_COOKIE)
    return resp


def ensure_admin_user(security: SecurityOptions) -> None:
    """Create the configured admin user on first start."""
    if not security.admin_username or not security.admin_password:
        return
    if get_user_by_username(security.admin_username):
        return
    create_user(security.admin_username, hash_password(security.admin_password), is_admin=True)
    logger.info(f"Created admin user {security.admin_username}")
