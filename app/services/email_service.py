"""
Email Service for the iTECHS Learning Platform
==============================================
Handles outgoing mail:
- Login OTP codes for teachers
- Welcome emails with account credentials
- Temporary passwords after an administrative reset

One instance is built per application (see app.main) and handed to the
endpoints through the get_email_service dependency. No SMTP connection
is opened until the first message is sent. Delivery failures are logged
and reported as False, never raised.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime, timezone

from app.core.config import Settings, settings as default_settings
from app.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.smtp_host = config.SMTP_HOST
        self.smtp_port = config.SMTP_PORT
        self.smtp_user = config.SMTP_USER
        self.smtp_password = config.SMTP_PASSWORD
        self.smtp_tls = config.SMTP_TLS
        self.from_email = config.EMAIL_FROM
        self.from_name = config.EMAIL_FROM_NAME
        self.frontend_url = config.FRONTEND_URL
        self.otp_expire_minutes = config.OTP_EXPIRE_MINUTES
        self.development = config.is_development

    @property
    def is_configured(self) -> bool:
        """Check if SMTP credentials are present"""
        return bool(self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if the message was handed to the SMTP server.
        """
        if not self.is_configured:
            logger.warning(f"[Email] SMTP not configured, skipping '{subject}' to {to_email}")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.smtp_tls
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_otp_email(self, to_email: str, otp_code: str, user_name: Optional[str] = None) -> bool:
        """Send the login verification code to a teacher"""
        if not self.is_configured and self.development:
            logger.info(f"[Email/dev] OTP for {to_email}: {otp_code}")
            return True

        subject = "Your iTECHS login verification code"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; background-color: #f4f4f4; }}
                .container {{ max-width: 600px; margin: 0 auto; background: #ffffff; }}
                .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px 20px; text-align: center; }}
                .content {{ padding: 30px; text-align: center; }}
                .otp-box {{ background: #667eea; color: white; padding: 20px; border-radius: 10px; display: inline-block; font-size: 32px; font-weight: bold; letter-spacing: 8px; }}
                .footer {{ background-color: #2c3e50; color: white; padding: 20px; text-align: center; font-size: 14px; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>iTECHS Learning Platform</h1>
                    <p>Teacher login verification</p>
                </div>
                <div class="content">
                    <p>Hi {user_name or 'there'},</p>
                    <p>Use the code below to complete your login:</p>
                    <div class="otp-box">{otp_code}</div>
                    <p>This code expires in {self.otp_expire_minutes} minutes and can be used once.</p>
                    <p style="font-size: 14px; color: #6b7280;">If you did not try to log in, you can ignore this email.</p>
                </div>
                <div class="footer">
                    <p>&copy; {datetime.now(timezone.utc).year} iTECHS Learning Platform</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"""
        Hi {user_name or 'there'},

        Your iTECHS login verification code is: {otp_code}

        It expires in {self.otp_expire_minutes} minutes and can be used once.
        If you did not try to log in, you can ignore this email.
        """

        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_welcome_email(
        self,
        to_email: str,
        user_name: Optional[str],
        username: str,
        role: str,
        temporary_password: Optional[str] = None
    ) -> bool:
        """Send account details to a newly created user"""
        if not self.is_configured and self.development:
            logger.info(
                f"[Email/dev] Welcome {role} {username} <{to_email}>"
                + (f", temporary password: {temporary_password}" if temporary_password else "")
            )
            return True

        subject = "Welcome to the iTECHS Learning Platform"
        role_label = role.replace("_", " ").title()

        credentials_html = f"<p><strong>Username:</strong> {username}</p>"
        credentials_text = f"Username: {username}"
        if temporary_password:
            credentials_html += (
                f"<p><strong>Temporary password:</strong> {temporary_password}</p>"
                "<p>Please change it after your first login.</p>"
            )
            credentials_text += f"\n        Temporary password: {temporary_password} (change it after your first login)"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
                .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
                .credentials {{ background: #f8f9fe; padding: 20px; border-radius: 8px; border-left: 4px solid #667eea; }}
                .button {{ display: inline-block; background: #667eea; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>Welcome to iTECHS!</h1>
                    <p>Your {role_label} account is ready</p>
                </div>
                <div class="content">
                    <p>Hi {user_name or 'there'},</p>
                    <div class="credentials">{credentials_html}</div>
                    <p style="text-align: center;">
                        <a href="{self.frontend_url}/login" class="button">Log in</a>
                    </p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"""
        Welcome to iTECHS!

        Hi {user_name or 'there'}, your {role_label} account is ready.

        {credentials_text}

        Log in at {self.frontend_url}/login
        """

        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: Optional[str],
        username: str,
        temporary_password: str
    ) -> bool:
        """Send the temporary password set by a teacher or administrator"""
        if not self.is_configured and self.development:
            logger.info(f"[Email/dev] Password reset for {username} <{to_email}>: {temporary_password}")
            return True

        subject = "Your iTECHS password has been reset"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <p>Hi {user_name or 'there'},</p>
            <p>Your password was reset by an administrator.</p>
            <p><strong>Username:</strong> {username}<br>
               <strong>Temporary password:</strong> {temporary_password}</p>
            <p>Log in at <a href="{self.frontend_url}/login">{self.frontend_url}/login</a> and change it right away.</p>
        </body>
        </html>
        """

        text_content = f"""
        Hi {user_name or 'there'},

        Your password was reset by an administrator.
        Username: {username}
        Temporary password: {temporary_password}

        Log in at {self.frontend_url}/login and change it right away.
        """

        return await self.send_email(to_email, subject, html_content, text_content)
