"""
Plain-text job report emails over SMTP (aiosmtplib, STARTTLS).

Sync and enrichment runs mail a short summary when they finish. Reports are
best-effort: with EMAIL_HOST unset, or when the SMTP server refuses, the
failure is logged and the job carries on.
"""
import logging
from email.message import EmailMessage
from typing import Sequence

import aiosmtplib

from gardenatlas.core.config import settings

logger = logging.getLogger(__name__)


def format_report(title: str, rows: Sequence[tuple[str, object]], footer: str = "") -> str:
    """Render label/value rows as a right-aligned block under *title*."""
    width = max((len(label) for label, _ in rows), default=0) + 1
    lines = [title, "=" * len(title), ""]
    for label, value in rows:
        shown = f"{value:,}" if isinstance(value, int) and not isinstance(value, bool) else str(value)
        lines.append(f"{label + ':':<{width}} {shown}")
    if footer:
        lines.extend(["", footer])
    return "\n".join(lines) + "\n"


async def send_email(subject: str, body: str) -> bool:
    """Send *body* to EMAIL_TO. Returns False when nothing was sent."""
    if not settings.EMAIL_HOST or not settings.EMAIL_TO:
        logger.warning("email: EMAIL_HOST/EMAIL_TO not configured, skipping '%s'", subject)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.EMAIL_FROM
    message["To"] = settings.EMAIL_TO
    message.set_content(body)

    try:
        await aiosmtplib.send(
            message,
            hostname=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=settings.EMAIL_USERNAME or None,
            password=settings.EMAIL_PASSWORD or None,
            start_tls=True,
        )
    except (aiosmtplib.SMTPException, OSError) as exc:
        logger.error("email: failed to send '%s': %s", subject, exc)
        return False

    logger.info("email: sent '%s' to %s", subject, settings.EMAIL_TO)
    return True
