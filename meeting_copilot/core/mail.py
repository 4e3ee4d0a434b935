"""
Transactional email over SMTP
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from meeting_copilot.config import settings
from meeting_copilot.core.exceptions import MailException
from meeting_copilot.core.logging import mail_logger as logger


class MailSender:
    """
    Sends password reset links and admin notifications.

    Delivery is meant to run as a FastAPI background task: failures are
    logged and never reach the client. Without ``smtp_host`` every send is
    skipped with a warning.
    """

    def __init__(self, config=None):
        self.config = config or settings

    @property
    def enabled(self) -> bool:
        return bool(self.config.smtp_host)

    def _build_message(
        self, to_email: str, subject: str, body: str, html_body: Optional[str] = None
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.mail_from
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain", "utf-8"))
        if html_body:
            msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
                if self.config.smtp_use_tls:
                    server.starttls()
                if self.config.smtp_username and self.config.smtp_password:
                    server.login(self.config.smtp_username, self.config.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailException(f"SMTP delivery to {msg['To']} failed: {e}") from e

    async def send(
        self, to_email: str, subject: str, body: str, html_body: Optional[str] = None
    ) -> bool:
        """Send one email; returns False when skipped or failed."""
        if not self.enabled:
            logger.warning(f"SMTP not configured, skipping email '{subject}' to {to_email}")
            return False

        msg = self._build_message(to_email, subject, body, html_body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except MailException as e:
            logger.error(e.message)
            return False

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

    async def send_password_reset_email(self, email: str, token: str) -> bool:
        reset_url = f"{self.config.app_url}/auth/reset-password?token={token}"
        body = (
            "We received a request to reset your Meeting Copilot password.\n\n"
            f"Open this link to choose a new password:\n{reset_url}\n\n"
            "The link expires in one hour. If you did not ask for a reset, ignore this email."
        )
        html_body = f"""
        <html>
        <body>
            <h2>Reset your password</h2>
            <p>We received a request to reset your Meeting Copilot password.</p>
            <p><a href="{reset_url}">Choose a new password</a></p>
            <p>The link expires in one hour. If you did not ask for a reset, ignore this email.</p>
        </body>
        </html>
        """
        return await self.send(email, "Reset your Meeting Copilot password", body, html_body)

    async def send_new_account_notification(self, email: str, name: Optional[str] = None) -> bool:
        """Tell the admin a local account was just registered."""
        if not self.config.admin_email:
            return False
        who = f"{name} <{email}>" if name else email
        body = f"A new account was registered: {who}"
        return await self.send(self.config.admin_email, "New Meeting Copilot account", body)


def get_mail_sender() -> MailSender:
    return MailSender()
