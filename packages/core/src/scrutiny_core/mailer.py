"""SMTP delivery of digests."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)


class MailError(Exception):
    """The digest could not be delivered."""


@dataclass(frozen=True)
class MailSettings:
    host: str
    port: int
    sender: str
    subject: str
    username: str | None = None
    password: str | None = None
    starttls: bool = False


def build_message(settings: MailSettings, recipient: str, body: str) -> MIMEText:
    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = settings.sender
    msg["To"] = recipient
    msg["Subject"] = settings.subject
    return msg


def send_mail(settings: MailSettings, recipient: str, body: str) -> None:
    """Send one digest to recipient. Raises MailError on any delivery failure."""
    msg = build_message(settings, recipient, body)
    try:
        with smtplib.SMTP(settings.host, settings.port, timeout=30) as server:
            if settings.starttls:
                server.starttls()
            if settings.username and settings.password:
                server.login(settings.username, settings.password)
            server.sendmail(settings.sender, [recipient], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(f"{type(e).__name__}: {e}") from e
    logger.info("Sent digest to %s via %s:%d", recipient, settings.host, settings.port)
