# purrfectcare/services/email_service.py
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from flask import Flask

class EmailService:
    """
    트랜잭션 메일(이메일 인증, 비밀번호 재설정)을 SMTP로 발송하는 서비스.
    SMTP_HOST가 없으면 메일은 발송하지 않고 로그만 남깁니다.
    """

    def __init__(self):
        self.host: Optional[str] = None
        self.port: int = 587
        self.user: Optional[str] = None
        self.password: Optional[str] = None
        self.sender: Optional[str] = None
        self.app_url: str = ''
        self.app_name: str = 'PurrfectCare'

    def init_app(self, app: Flask):
        self.host = app.config.get('SMTP_HOST')
        self.port = app.config.get('SMTP_PORT', 587)
        self.user = app.config.get('SMTP_USER')
        self.password = app.config.get('SMTP_PASSWORD')
        self.sender = app.config.get('EMAIL_FROM')
        self.app_url = (app.config.get('APP_URL') or '').rstrip('/')
        self.app_name = app.config.get('NAME', 'PurrfectCare')
        if not self.host:
            logging.info("EmailService: SMTP_HOST가 없어 메일 발송이 비활성화되었습니다.")

    def send(self, to_email: str, subject: str, html: str) -> bool:
        """메일을 발송합니다. 성공 여부만 반환하며 실패는 호출자에게 전파하지 않습니다."""
        if not self.host:
            logging.info(f"메일 발송 생략 (SMTP 미설정): to={to_email}, subject={subject}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to_email
        message.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, to_email, message.as_string())
            logging.info(f"Email sent to {to_email}: {subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logging.error(f"메일 발송 실패 (to: {to_email}): {e}", exc_info=True)
            return False

    def send_verification_email(self, to_email: str, name: str, user_id: str, token: str, otp: str) -> bool:
        link = f"{self.app_url}/verify-email?userId={user_id}&token={token}"
        html = f"""
        <html><body>
            <p>Hi {name},</p>
            <p>Welcome to {self.app_name}! Please verify your email address.</p>
            <p><a href="{link}">Verify Email</a></p>
            <p>Or enter this code in the app: <strong>{otp}</strong></p>
            <p>This link and code expire in 1 hour.</p>
        </body></html>
        """
        return self.send(to_email, f"{self.app_name}: Verify your email", html)

    def send_password_reset_email(self, to_email: str, name: str, user_id: str, token: str, otp: str) -> bool:
        link = f"{self.app_url}/reset-password?userId={user_id}&token={token}"
        html = f"""
        <html><body>
            <p>Hi {name},</p>
            <p>A password reset was requested for your {self.app_name} account.</p>
            <p><a href="{link}">Reset Password</a></p>
            <p>Or enter this code in the app: <strong>{otp}</strong></p>
            <p>This link and code expire in 1 hour. If you did not request this, please ignore this email.</p>
        </body></html>
        """
        return self.send(to_email, f"{self.app_name}: Password reset request", html)
