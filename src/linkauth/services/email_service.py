"""Email service for authentication emails.

Sends magic links and password reset emails through the transport selected
by ``LINKAUTH_EMAIL_TRANSPORT``:

- ``console``: log the message (development)
- ``smtp``: SMTP with STARTTLS
- ``sendgrid``: SendGrid web API
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from linkauth.config import AuthSettings

logger = logging.getLogger(__name__)

TRANSPORTS = ("console", "smtp", "sendgrid")


class EmailService:
    """Service for sending authentication emails.

    ``send`` never raises: every delivery problem is logged and reported
    as ``False`` so callers decide how a failure is surfaced.
    """

    def __init__(self, settings: AuthSettings) -> None:
        self.settings = settings
        self.transport = settings.email_transport.lower()
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown email transport '{settings.email_transport}', "
                f"expected one of {', '.join(TRANSPORTS)}"
            )

    @property
    def is_configured(self) -> bool:
        """Check if the selected transport has the credentials it needs."""
        if self.transport == "smtp":
            return bool(self.settings.smtp_host and self.settings.smtp_user and self.settings.smtp_pass)
        if self.transport == "sendgrid":
            return bool(self.settings.sendgrid_api_key and self.settings.email_from)
        return True

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str,
    ) -> bool:
        """Send an email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            text_body: Plain text body
            html_body: HTML body

        Returns:
            True if email was sent successfully
        """
        if not self.is_configured:
            logger.warning(f"Email transport '{self.transport}' not configured, skipping send")
            return False

        try:
            if self.transport == "smtp":
                self._send_smtp(to_email, subject, text_body, html_body)
            elif self.transport == "sendgrid":
                self._send_sendgrid(to_email, subject, text_body, html_body)
            else:
                logger.info(f"[console email] to={to_email} subject={subject!r}\n{text_body}")
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    def _send_smtp(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.email_from_name} <{self.settings.email_from}>"
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port) as server:
            server.starttls()
            server.login(self.settings.smtp_user, self.settings.smtp_pass)
            server.send_message(msg)

    def _send_sendgrid(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        message = Mail(
            from_email=self.settings.email_from,
            to_emails=to_email,
            subject=subject,
            plain_text_content=text_body,
            html_content=html_body,
        )
        response = SendGridAPIClient(self.settings.sendgrid_api_key).send(message)
        if response.status_code >= 300:
            raise RuntimeError(f"SendGrid returned status {response.status_code}")

    def _origin(self, origin: str) -> str:
        return (self.settings.base_url or origin).rstrip("/")

    def magic_link_url(self, token: str, origin: str) -> str:
        return f"{self._origin(origin)}/auth/verify?{urlencode({'token': token})}"

    def password_reset_url(self, token: str, origin: str) -> str:
        params = urlencode({"token": token, "type": "reset-password"})
        return f"{self._origin(origin)}/verify?{params}"

    def send_magic_link(self, to_email: str, token: str, origin: str) -> bool:
        """Send a magic link email.

        Args:
            to_email: Recipient email
            token: The magic link token
            origin: Scheme and host of the requesting site, used when no
                base URL is configured

        Returns:
            True if email was sent
        """
        magic_link = self.magic_link_url(token, origin)
        minutes = self.settings.magic_link_expire_minutes

        subject = "Your Magic Login Link"

        text_body = f"""
Click this link to login (expires in {minutes} minutes):
{magic_link}

If you didn't request this login link, you can safely ignore this email.
        """

        html_body = f"""
        <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1>Welcome back!</h1>
            <p>Click the button below to login to your account. This link expires in {minutes} minutes.</p>
            <a href="{magic_link}" style="display: inline-block; padding: 12px 24px; background-color: #0070f3; color: white; text-decoration: none; border-radius: 5px;">
                Login to Your Account
            </a>
            <p style="margin-top: 24px; color: #666;">
                If you didn't request this login link, you can safely ignore this email.
            </p>
        </div>
        """

        return self.send(to_email, subject, text_body, html_body)

    def send_password_reset(self, to_email: str, token: str, origin: str) -> bool:
        """Send a password reset email.

        Args:
            to_email: Recipient email
            token: The reset token
            origin: Scheme and host of the requesting site

        Returns:
            True if email was sent
        """
        reset_link = self.password_reset_url(token, origin)
        minutes = self.settings.password_reset_expire_minutes

        subject = "Reset your password"

        text_body = f"""
We received a request to reset your password.

Click this link to choose a new password (expires in {minutes} minutes):
{reset_link}

If you didn't request a password reset, you can safely ignore this email.
        """

        html_body = f"""
        <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Reset your password</h2>
            <p>We received a request to reset your password.</p>
            <a href="{reset_link}" style="display: inline-block; padding: 12px 24px; background-color: #0070f3; color: white; text-decoration: none; border-radius: 5px;">
                Reset Password
            </a>
            <p style="margin-top: 24px; color: #666;">
                This link expires in {minutes} minutes. If you didn't request a password reset, you can safely ignore this email.
            </p>
        </div>
        """

        return self.send(to_email, subject, text_body, html_body)
