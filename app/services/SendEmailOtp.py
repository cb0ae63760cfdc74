# services/SendEmailOtp.py

import html
import logging
from datetime import datetime
from typing import Optional

from app.core.exceptions import EmailDeliveryError
from app.services.ResendEmailClient import ResendEmailClient

logger = logging.getLogger(__name__)


def _layout(title: str, subtitle: str, body: str) -> str:
    return f"""
    <div style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 480px; margin: 0 auto; padding: 40px 24px; background-color: #0f0f10; color: #fafafa; border-radius: 16px;">
        <div style="text-align: center; margin-bottom: 32px;">
            <h1 style="font-size: 24px; font-weight: 700; margin: 0; color: #ffffff;">
                Growth<span style="color: #10b981;">Tubes</span>
            </h1>
        </div>
        <h2 style="font-size: 20px; font-weight: 600; margin: 0 0 8px 0; color: #ffffff; text-align: center;">
            {title}
        </h2>
        <p style="font-size: 14px; color: #a1a1aa; text-align: center; margin: 0 0 32px 0;">
            {subtitle}
        </p>
        {body}
        <hr style="border: none; border-top: 1px solid #27272a; margin: 32px 0;" />
        <p style="font-size: 11px; color: #52525b; text-align: center; margin: 0;">
            &copy; {datetime.now().year} GrowthTubes. All rights reserved.
        </p>
    </div>
    """


def _code_block(code: str, expires_minutes: int) -> str:
    return f"""
        <div style="background: linear-gradient(135deg, #10b98120, #0d612d30); border: 1px solid #10b98140; border-radius: 12px; padding: 24px; text-align: center; margin-bottom: 32px;">
            <p style="font-size: 36px; font-weight: 700; letter-spacing: 8px; color: #10b981; margin: 0; font-family: 'Courier New', monospace;">
                {code}
            </p>
        </div>
        <p style="font-size: 13px; color: #71717a; text-align: center; margin: 0 0 8px 0;">
            This code expires in <strong style="color: #a1a1aa;">{expires_minutes} minutes</strong>.
        </p>
        <p style="font-size: 13px; color: #71717a; text-align: center; margin: 0;">
            If you didn't request this code, you can safely ignore this email.
        </p>
    """


class Mailer:
    """
    Renders and sends the account emails.

    When no client is configured (local development without a Resend key)
    sends are skipped and logged instead. Codes are never written to the log.
    """

    def __init__(
        self,
        client: Optional[ResendEmailClient],
        otp_expire_minutes: int,
        frontend_url: str,
    ):
        self.client = client
        self.otp_expire_minutes = otp_expire_minutes
        self.frontend_url = frontend_url.rstrip("/")

    async def _send(self, email: str, subject: str, html_content: str, kind: str):
        if self.client is None:
            logger.warning(f"⚠️ [EMAIL] No email client configured, skipped {kind} email to {email}")
            return None
        result = await self.client.send_email(
            to_emails=[email],
            subject=subject,
            body_html=html_content,
        )
        logger.info(f"✅ [EMAIL] Sent {kind} email to {email}")
        return result

    async def send_otp_email(self, email: str, code: str):
        """
        Send the email verification code.

        Raises:
            EmailDeliveryError: the code could not be delivered.
        """
        html_content = _layout(
            "Verify your email",
            "Enter this code to complete your verification",
            _code_block(code, self.otp_expire_minutes),
        )
        return await self._send(email, "Verify your email | GrowthTubes", html_content, "verification")

    async def send_password_reset_email(self, email: str, code: str):
        html_content = _layout(
            "Reset your password",
            "Enter this code to choose a new password",
            _code_block(code, self.otp_expire_minutes),
        )
        try:
            return await self._send(email, "Reset your password | GrowthTubes", html_content, "password reset")
        except EmailDeliveryError as e:
            raise EmailDeliveryError("Failed to send password reset email") from e

    async def send_welcome_email(self, email: str, name: Optional[str] = None):
        greeting = f"Hi <strong>{html.escape(name)}</strong>," if name else "Hi there,"
        body = f"""
        <p style="font-size: 14px; color: #d4d4d8;">{greeting}</p>
        <p style="font-size: 14px; color: #d4d4d8;">
            Your email is verified and your creator account is ready.
        </p>
        <div style="text-align: center; margin: 32px 0;">
            <a href="{self.frontend_url}/creator/dashboard" style="display: inline-block; padding: 14px 32px; background: #10b981; color: #0f0f10; text-decoration: none; border-radius: 8px; font-weight: 600;">
                Go to your dashboard
            </a>
        </div>
        """
        return await self._send(
            email,
            "Welcome to GrowthTubes",
            _layout("Welcome aboard!", "Start building your first course", body),
            "welcome",
        )
