"""
notify/mailer.py -- Outbound e-mail over SMTP.

SmtpMailer.send() raises on any delivery problem. Callers that treat mail
as a side channel (registration, code issuance) go through send_best_effort(),
which logs the failure and reports it as a bool. Nothing here retries.

Port 465 uses implicit TLS (SMTP_SSL); any other port upgrades with STARTTLS.
When SMTP_HOST/SMTP_USER/SMTP_PASSWORD are not all set, SmtpMailer is built
disabled and send() raises MailerNotConfigured.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from core.config import Settings
from notify.templates import EmailContent

logger = logging.getLogger("internhub.notify")

_SMTP_TIMEOUT_SECONDS = 15


class MailerNotConfigured(RuntimeError):
    pass


class Mailer(Protocol):
    def send(self, to: str, content: EmailContent) -> None: ...


class SmtpMailer:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.enabled = settings.mail_enabled
        if not self.enabled:
            logger.warning("SMTP not configured -- outbound e-mail is disabled")

    def _build(self, to: str, content: EmailContent) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f"{self._settings.email_from_name} <{self._settings.sender_address}>"
        msg["To"] = to
        msg["Subject"] = content.subject
        msg.set_content(content.text)
        msg.add_alternative(content.html, subtype="html")
        return msg

    def send(self, to: str, content: EmailContent) -> None:
        if not self.enabled:
            raise MailerNotConfigured("SMTP configuration missing")
        s = self._settings
        msg = self._build(to, content)
        context = ssl.create_default_context()
        if s.smtp_port == 465:
            with smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, context=context, timeout=_SMTP_TIMEOUT_SECONDS) as server:
                server.login(s.smtp_user, s.smtp_password)
                server.send_message(msg, from_addr=s.sender_address, to_addrs=[to])
        else:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=_SMTP_TIMEOUT_SECONDS) as server:
                server.starttls(context=context)
                server.login(s.smtp_user, s.smtp_password)
                server.send_message(msg, from_addr=s.sender_address, to_addrs=[to])
        logger.info("Sent '%s' to %s", content.subject, to)


def send_best_effort(mailer: Mailer, to: str, content: EmailContent) -> bool:
    """Send and swallow delivery failures. Returns True if the mailer accepted it.

    The primary operation (registration, code issuance) has already committed
    by the time this runs; a failed notification must not undo or fail it.
    """
    try:
        mailer.send(to, content)
    except Exception as exc:
        logger.warning("E-mail '%s' to %s not delivered: %s", content.subject, to, exc)
        return False
    return True
