from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Optional

from fxdojo.celery_app import celery_app
from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger

logger = get_logger(__name__)

# every mail task retries its own delivery on SMTP failures
RETRY_POLICY = {
    "autoretry_for": (smtplib.SMTPException, OSError),
    "retry_backoff": True,
    "retry_kwargs": {"max_retries": 3},
}


def deliver(to: str, subject: str, body: str) -> dict:
    """Send a plain-text email over SMTP (logged only when EMAIL_ENABLED is off)."""
    if not settings.EMAIL_ENABLED:
        logger.info("email sending disabled, skipping", to=to, subject=subject)
        return {"status": "skipped", "to": to}

    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)

    logger.info("email sent", to=to, subject=subject)
    return {"status": "sent", "to": to}


@celery_app.task(name="notification.send_email", **RETRY_POLICY)
def send_email(to: str, subject: str, body: str) -> dict:
    return deliver(to, subject, body)


@celery_app.task(name="notification.send_approval_request", **RETRY_POLICY)
def send_approval_request_email(
    email: str, full_name: str, discord_name: Optional[str], approval_token: str
) -> dict:
    """Ask the administrator to approve a new registration."""
    approve_url = f"{settings.FRONTEND_URL}/admin/approve/{approval_token}"
    body = (
        "A new account registration is waiting for approval.\n\n"
        f"Name: {full_name}\n"
        f"Email: {email}\n"
        f"Discord: {discord_name or '-'}\n\n"
        f"Review the request: {approve_url}\n"
    )
    return deliver(
        to=settings.ADMIN_EMAIL,
        subject=f"[FX Dojo] Registration request from {full_name}",
        body=body,
    )


@celery_app.task(name="notification.send_approval_result", **RETRY_POLICY)
def send_approval_result_email(
    email: str, full_name: str, approved: bool, reason: Optional[str] = None
) -> dict:
    """Tell the applicant whether their registration was accepted."""
    if approved:
        subject = "[FX Dojo] Your account has been approved"
        body = (
            f"Hello {full_name},\n\n"
            "Your registration has been approved. You can now sign in:\n"
            f"{settings.FRONTEND_URL}/auth/login\n"
        )
    else:
        subject = "[FX Dojo] Your registration was not approved"
        body = (
            f"Hello {full_name},\n\n"
            "Unfortunately your registration was not approved.\n"
            f"Reason: {reason or '-'}\n"
        )
    return deliver(to=email, subject=subject, body=body)
