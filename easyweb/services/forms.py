"""Default form handling: validation, encrypted storage and mail dispatch."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from starlette.datastructures import FormData

from easyweb.config import MailOptions, SecurityOptions
from easyweb.content.models import FormDefinition, Page
from easyweb.crypto import encrypt_payload
from easyweb.db import save_form_submission

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
INTERNAL_FIELDS = {"__RequestVerificationToken", "g-recaptcha-response"}


@dataclass
class FormPostResult:
    successful: bool
    errors: dict[str, str] = field(default_factory=dict)
    submission_id: int | None = None


def is_internal_field(name: str) -> bool:
    return name in INTERNAL_FIELDS or name.startswith("ew_")


def collection_to_dict(collection: FormData) -> dict[str, str | list[str]]:
    """Posted fields as a plain dict, keeping repeated keys as lists."""
    data: dict[str, str | list[str]] = {}
    for key in collection.keys():
        if is_internal_field(key):
            continue
        values = [v for v in collection.getlist(key) if isinstance(v, str)]
        data[key] = values[0] if len(values) == 1 else values
    return data


def validate_form(data: dict, definition: FormDefinition | None) -> dict[str, str]:
    if definition is None:
        return {}

    errors = {}
    for form_field in definition.fields:
        value = data.get(form_field.name)
        if isinstance(value, list):
            value = ",".join(value)
        value = (value or "").strip()

        if form_field.required and not value:
            errors[form_field.name] = "required"
        elif value and form_field.type == "email" and not EMAIL_RE.match(value):
            errors[form_field.name] = "invalid_email"
    return errors


class FormService:
    def __init__(
        self,
        security: SecurityOptions,
        mail: MailOptions,
        dispatch_mail: Callable[[int], None] | None = None,
    ):
        self.security = security
        self.mail = mail
        self._dispatch_mail = dispatch_mail

    def handle_form(
        self,
        collection: FormData,
        page: Page | None = None,
        culture: str | None = None,
    ) -> FormPostResult:
        data = collection_to_dict(collection)
        definition = page.form if page else None

        errors = validate_form(data, definition)
        if errors:
            logger.info(f"Form post on {page.path if page else '?'} rejected: {sorted(errors)}")
            return FormPostResult(successful=False, errors=errors)

        if not data:
            return FormPostResult(successful=False, errors={"": "empty"})

        recipients = list(definition.recipients) if definition else []
        recipients = recipients or list(self.mail.recipients)

        submission_id = save_form_submission(
            page_id=page.id if page else None,
            page_path=page.path if page else "",
            form_name=definition.name if definition else None,
            payload_encrypted=encrypt_payload(data, self.security.secret_key),
            recipients=recipients,
            culture=culture,
        )
        logger.info(f"Stored form submission {submission_id} for {page.path if page else '?'}")

        if self.mail.enabled and recipients and self._dispatch_mail:
            self._dispatch_mail(submission_id)

        return FormPostResult(successful=True, submission_id=submission_id)
