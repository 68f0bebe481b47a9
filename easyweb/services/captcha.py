"""Form captcha checks run before a posted form reaches the form service."""

import logging
import time
from datetime import datetime, timedelta, timezone

import httpx
from jose import JWTError, jwt
from starlette.datastructures import FormData

from easyweb.config import CaptchaOptions, SecurityOptions
from easyweb.exceptions import CaptchaError

logger = logging.getLogger(__name__)

TOKEN_FIELD = "ew_captcha"
HONEYPOT_FIELD = "ew_hp"
RECAPTCHA_FIELD = "g-recaptcha-response"
TOKEN_PURPOSE = "form-captcha"


class CaptchaValidator:
    def __init__(
        self,
        options: CaptchaOptions,
        security: SecurityOptions,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.options = options
        self.security = security
        self._transport = transport

    def issue_token(self) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "purpose": TOKEN_PURPOSE,
            "iat": int(now.timestamp()),
            "exp": now + timedelta(minutes=self.options.max_age_minutes),
        }
        return jwt.encode(payload, self.security.secret_key, algorithm=self.security.jwt_algorithm)

    def _check_token(self, form: FormData) -> None:
        if form.get(HONEYPOT_FIELD):
            raise CaptchaError("Captcha failed")

        token = form.get(TOKEN_FIELD)
        if not token:
            raise CaptchaError("Captcha missing")

        try:
            payload = jwt.decode(
                token, self.security.secret_key, algorithms=[self.security.jwt_algorithm]
            )
        except JWTError as e:
            raise CaptchaError("Captcha invalid or expired") from e

        if payload.get("purpose") != TOKEN_PURPOSE:
            raise CaptchaError("Captcha invalid")
        if time.time() - payload.get("iat", 0) < self.options.min_seconds:
            raise CaptchaError("Form posted too fast")

    async def _check_recaptcha(self, form: FormData, remote_ip: str | None) -> None:
        response_token = form.get(RECAPTCHA_FIELD)
        if not response_token:
            raise CaptchaError("Captcha missing")

        data = {"secret": self.options.recaptcha_secret, "response": response_token}
        if remote_ip:
            data["remoteip"] = remote_ip

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            try:
                resp = await client.post(self.options.recaptcha_verify_url, data=data)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"reCAPTCHA verification failed: {e}")
                raise CaptchaError("Captcha could not be verified") from e

        if not resp.json().get("success"):
            raise CaptchaError("Captcha failed")

    async def validate(self, form: FormData, remote_ip: str | None = None) -> None:
        if self.options.provider == "recaptcha":
            await self._check_recaptcha(form, remote_ip)
        else:
            self._check_token(form)
