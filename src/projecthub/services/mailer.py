"""Outgoing mail for magic links.

Learn: smtplib is blocking, so the send runs in a worker thread to keep
the event loop free. When SMTP is not configured the mailer logs the
failure and reports False; the caller decides whether that is fatal.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText

import structlog

from projecthub.config import Settings, settings as default_settings

logger = structlog.get_logger()


class Mailer:
    """SMTP mailer configured from Settings."""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def is_configured(self) -> bool:
        return bool(self.settings.smtp_host and self.settings.mail_from)

    async def send(self, to: str, subject: str, body: str) -> bool:
        if not self.is_configured():
            logger.warning("projecthub.mail.not_configured", to=to, subject=subject)
            return False

        msg = MIMEText(body, "plain")
        msg["From"] = self.settings.mail_from
        msg["To"] = to
        msg["Subject"] = subject

        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("projecthub.mail.failed", to=to, error=str(e))
            return False

        logger.info("projecthub.mail.sent", to=to, subject=subject)
        return True

    def _send_sync(self, msg: MIMEText) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port) as server:
            server.starttls()
            if self.settings.smtp_user and self.settings.smtp_password:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(msg)

    async def send_magic_link(self, to: str, link: str) -> bool:
        body = (
            "Use the link below to sign in and set your password.\n\n"
            f"{link}\n\n"
            f"The link expires in {self.settings.magic_link_expire_minutes} minutes "
            "and can only be used once.\n"
        )
        return await self.send(to, "Your sign-in link", body)


def get_mailer() -> Mailer:
    """FastAPI dependency."""
    return Mailer()
