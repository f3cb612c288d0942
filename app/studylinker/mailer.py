"""
Transactional email.

Provider is selected by EMAIL_PROVIDER: ``resend`` and ``sendgrid`` use their
HTTP APIs, ``smtp`` uses SMTP_*; any other value only logs the message.
"""
from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr

import requests
from flask import render_template

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
DEFAULT_FROM = "StudyLinker <noreply@studylinker.academy>"
TIMEOUT_SECONDS = 15


class MailerError(RuntimeError):
    pass


def _send_via_resend(config: dict, to: str, subject: str, html: str, sender: str) -> None:
    api_key = config.get("RESEND_API_KEY")
    if not api_key:
        raise MailerError("RESEND_API_KEY is not configured")
    resp = requests.post(
        RESEND_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json={"from": sender, "to": to, "subject": subject, "html": html},
        timeout=TIMEOUT_SECONDS,
    )
    if not resp.ok:
        raise MailerError(f"Resend API error: {resp.text[:300]}")


def _send_via_sendgrid(config: dict, to: str, subject: str, html: str, sender: str) -> None:
    api_key = config.get("SENDGRID_API_KEY")
    if not api_key:
        raise MailerError("SENDGRID_API_KEY is not configured")
    name, address = parseaddr(sender)
    resp = requests.post(
        SENDGRID_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json={
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": address or sender, "name": name or "StudyLinker"},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        },
        timeout=TIMEOUT_SECONDS,
    )
    if not resp.ok:
        raise MailerError(f"SendGrid API error: {resp.text[:300]}")


def _send_via_smtp(config: dict, to: str, subject: str, html: str, sender: str) -> None:
    server = (config.get("SMTP_SERVER") or "").strip()
    if not server:
        raise MailerError("SMTP server not configured (SMTP_SERVER environment variable missing)")
    port = int(config.get("SMTP_PORT") or 587)
    username = (config.get("SMTP_USERNAME") or "").strip()
    password = config.get("SMTP_PASSWORD") or ""

    msg = MIMEMultipart("alternative")
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(server, port, timeout=TIMEOUT_SECONDS) as smtp:
            smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.sendmail(sender, [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        raise MailerError(f"SMTP error: {e}") from e


_PROVIDERS = {
    "resend": _send_via_resend,
    "sendgrid": _send_via_sendgrid,
    "smtp": _send_via_smtp,
}


def send_email(config: dict, *, to: str, subject: str, html: str, sender: str | None = None) -> tuple[bool, str | None]:
    """
    Send one HTML email. Returns ``(ok, error_message)``.
    """
    provider = (config.get("EMAIL_PROVIDER") or "resend").strip().lower()
    sender = sender or config.get("EMAIL_FROM") or DEFAULT_FROM
    send = _PROVIDERS.get(provider)
    if send is None:
        logger.info("Email provider %r not configured; would send to=%s subject=%r", provider, to, subject)
        return True, None
    try:
        send(config, to, subject, html, sender)
    except (MailerError, requests.RequestException) as e:
        logger.warning("Email send failed (provider=%s to=%s): %s", provider, to, e)
        return False, str(e)
    logger.info("Email sent (provider=%s to=%s subject=%r)", provider, to, subject)
    return True, None


def render_interview_invitation(
    teacher_name: str,
    interview_at: datetime,
    meeting_link: str | None,
    meeting_description: str | None = None,
) -> str:
    return render_template(
        "emails/interview_invitation.html",
        teacher_name=teacher_name,
        interview_date=interview_at.strftime("%A, %B %d, %Y at %I:%M %p UTC"),
        meeting_link=meeting_link,
        meeting_description=meeting_description,
    )
