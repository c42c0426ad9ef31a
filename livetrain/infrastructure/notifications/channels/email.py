# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

Sends plain text and HTML email through aiosmtplib. Delivery is best
effort: a missing configuration skips the send and SMTP failures are
reported as FAILED results rather than raised.

Configuration (via environment variables, see SMTPSettings):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from html import escape

import aiosmtplib

from livetrain.core.config.settings import SMTPSettings
from livetrain.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP."""

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP configuration.
        """
        super().__init__()
        self._settings = settings

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    @property
    def is_configured(self) -> bool:
        """Check whether SMTP credentials are present."""
        return self._settings.is_configured

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send email notification via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.is_configured:
            return self.create_skipped_result("Email channel not configured")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        message = self._build_email_message(payload)
        password = self._settings.password.get_secret_value() if self._settings.password else None

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=password,
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.recipient_email,
                str(e),
            )
            return self.create_failure_result(
                f"SMTP error: {str(e)}",
                metadata={"recipient": payload.recipient_email},
            )

        self.logger.info("Email sent to %s: %s", payload.recipient_email, payload.title)
        return self.create_success_result(
            message_id=message["Message-ID"],
            metadata={"recipient": payload.recipient_email},
        )

    def _build_email_message(self, payload: NotificationPayload) -> MIMEMultipart:
        """Build a multipart/alternative message with text and HTML parts."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self._settings.from_name} <{self._settings.from_email}>"
        message["To"] = payload.recipient_email
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid()

        message.attach(MIMEText(self._build_plain_text(payload), "plain", "utf-8"))
        message.attach(MIMEText(self._build_html(payload), "html", "utf-8"))
        return message

    def _build_plain_text(self, payload: NotificationPayload) -> str:
        lines = [
            payload.title,
            "=" * len(payload.title),
            "",
            payload.message,
            "",
        ]

        meeting_link = payload.data.get("meeting_link")
        if meeting_link:
            lines.append(f"Meeting link: {meeting_link}")
            lines.append("")

        lines.extend([
            "---",
            f"This notification was sent by {self._settings.from_name}.",
        ])
        return "\n".join(lines)

    def _build_html(self, payload: NotificationPayload) -> str:
        title = escape(payload.title)
        body = escape(payload.message).replace("\n", "<br>")

        meeting = ""
        meeting_link = payload.data.get("meeting_link")
        if meeting_link:
            href = escape(meeting_link, quote=True)
            meeting = f'<p><a href="{href}">Join the session</a></p>'

        return (
            "<!DOCTYPE html>"
            '<html><head><meta charset="utf-8"></head>'
            '<body style="font-family: Arial, sans-serif; color: #1F2937;">'
            f'<h1 style="font-size: 20px;">{title}</h1>'
            f"<p>{body}</p>"
            f"{meeting}"
            f'<p style="font-size: 12px; color: #9CA3AF;">'
            f"This notification was sent by {escape(self._settings.from_name)}.</p>"
            "</body></html>"
        )
