"""Email service for OTP codes and nomination notices."""

import asyncio
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import get_settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)
settings = get_settings()


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.smtp_tls = settings.SMTP_TLS
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME

    async def send_otp_email(self, to_email: str, code: str, expires_minutes: int) -> bool:
        """
        Send a voter login code.

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        subject = "Your election login code"
        text = f"""
        Your one-time login code is: {code}

        The code expires in {expires_minutes} minutes. Do not share it with anyone.
        If you did not request this code, you can ignore this email.

        {self.from_name}
        """
        html = f"""
        <html>
        <body>
            <h2>Election login code</h2>
            <p>Your one-time login code is:</p>
            <p style="font-size: 28px; letter-spacing: 6px;"><strong>{code}</strong></p>
            <p>The code expires in {expires_minutes} minutes. Do not share it with anyone.</p>
            <p>If you did not request this code, you can ignore this email.</p>
            <br>
            <p>{self.from_name}</p>
        </body>
        </html>
        """
        return await self._send(to_email, subject, text, html, "OTP")

    async def send_nomination_rejected_email(
        self,
        to_email: str,
        candidate_name: str,
        election_name: str,
        reason: str,
    ) -> bool:
        """Tell a candidate why their nomination was rejected."""
        subject = f"{election_name} nomination update"
        text = f"""
        Dear {candidate_name},

        Your nomination for the {election_name} election has been rejected.

        Reason: {reason}

        Please contact the election commission if you have any questions.

        {self.from_name}
        """
        html = f"""
        <html>
        <body>
            <h2>{election_name} nomination update</h2>
            <p>Dear {candidate_name},</p>
            <p>Your nomination for the {election_name} election has been rejected.</p>
            <p><strong>Reason:</strong> {reason}</p>
            <p>Please contact the election commission if you have any questions.</p>
            <br>
            <p>{self.from_name}</p>
        </body>
        </html>
        """
        return await self._send(to_email, subject, text, html, "nomination rejection")

    async def _send(
        self, to_email: str, subject: str, text: str, html: str, kind: str
    ) -> bool:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email
            msg.attach(MIMEText(text, "plain"))
            msg.attach(MIMEText(html, "html"))

            # Send email in thread pool to avoid blocking
            await asyncio.get_running_loop().run_in_executor(
                None, self._send_email_sync, to_email, msg.as_string()
            )

            logger.info(f"{kind} email sent successfully to {to_email}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send {kind} email to {to_email}: {str(e)}")
            return False

    def _send_email_sync(self, to_email: str, email_content: str) -> None:
        """Send email synchronously (called from thread pool)."""
        context = ssl.create_default_context()

        if self.smtp_tls:
            server = smtplib.SMTP(self.smtp_server, self.smtp_port)
            server.starttls(context=context)
        else:
            server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, context=context)

        try:
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.sendmail(self.from_email, [to_email], email_content)
        finally:
            server.quit()


# Global email service instance
email_service = EmailService()
