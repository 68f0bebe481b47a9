"""Celery task delivering stored form submissions by mail."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from easyweb.celery_app import celery_app
from easyweb.config import MailOptions, settings
from easyweb.crypto import decrypt_payload, mask_email
from easyweb.db import get_form_submission, mark_submission_mailed

logger = logging.getLogger(__name__)


def build_message(submission: dict, payload: dict, mail: MailOptions) -> EmailMessage:
    msg = EmailMessage()
    subject = submission.get("form_name") or "Form"
    msg["Subject"] = f"{subject}: {submission['page_path']}"
    msg["From"] = mail.sender
    msg["To"] = ", ".join(submission["recipients"])

    lines = [f"Page: {submission['page_path']}", ""]
    for key, value in payload.items():
        if isinstance(value, list):
            value = ", ".join(value)
        lines.append(f"{key}: {value}")
    msg.set_content("\n".join(lines))
    return msg


def send_submission(submission_id: int, mail: MailOptions | None = None, secret_key: str | None = None) -> bool:
    """Send one submission. Returns False when there is nothing to send."""
    mail = mail or settings.mail
    submission = get_form_submission(submission_id)
    if not submission:
        logger.warning(f"Form submission {submission_id} not found")
        return False
    if submission.get("mailed_at"):
        logger.info(f"Form submission {submission_id} already mailed")
        return False
    if not submission["recipients"]:
        logger.info(f"Form submission {submission_id} has no recipients")
        return False

    payload = decrypt_payload(submission["payload_encrypted"], secret_key)
    msg = build_message(submission, payload, mail)

    with smtplib.SMTP(mail.smtp_host, mail.smtp_port, timeout=30) as smtp:
        if mail.use_tls:
            smtp.starttls()
        if mail.smtp_username:
            smtp.login(mail.smtp_username, mail.smtp_password)
        smtp.send_message(msg)

    mark_submission_mailed(submission_id)
    logger.info(
        f"Mailed form submission {submission_id} to "
        f"{', '.join(mask_email(r) for r in submission['recipients'])}"
    )
    return True


@celery_app.task(name="easyweb.deliver_form_mail")
def deliver_form_mail(submission_id: int) -> bool:
    return send_submission(submission_id)


def queue_form_mail(submission_id: int) -> None:
    deliver_form_mail.delay(submission_id)
