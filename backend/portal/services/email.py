"""
Email service for password reset links
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from jinja2 import Environment, FileSystemLoader

from ..config import Settings

logger = logging.getLogger(__name__)

template_dir = Path(__file__).parent.parent / "templates" / "emails"
jinja_env = Environment(loader=FileSystemLoader(str(template_dir)), autoescape=True)


def generate_reset_token() -> str:
    """Generate a secure reset token"""
    return secrets.token_urlsafe(32)


def hash_reset_token(token: str) -> str:
    """Digest stored in place of the raw token"""
    return hashlib.sha256(token.encode()).hexdigest()


def get_reset_token_expiry(settings: Settings) -> datetime:
    """Get reset token expiry time"""
    return datetime.now(timezone.utc) + timedelta(minutes=settings.reset_token_expire_minutes)


def build_mail_config(settings: Settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=settings.mail_password,
        MAIL_FROM=settings.mail_from,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_FROM_NAME=settings.mail_from_name,
        MAIL_STARTTLS=settings.mail_starttls,
        MAIL_SSL_TLS=settings.mail_ssl_tls,
        USE_CREDENTIALS=bool(settings.mail_username),
        VALIDATE_CERTS=settings.mail_validate_certs,
        TEMPLATE_FOLDER=template_dir,
    )


def render_password_reset(settings: Settings, email: str, reset_token: str) -> str:
    reset_link = f"{settings.frontend_url}/reset-password?token={reset_token}"
    template = jinja_env.get_template("password_reset.html")
    return template.render(
        email=email,
        reset_link=reset_link,
        expiry_minutes=settings.reset_token_expire_minutes,
        app_name=settings.app_name,
    )


async def send_password_reset_email(settings: Settings, email: str, reset_token: str) -> bool:
    """Send password reset email"""
    try:
        message = MessageSchema(
            subject=f"Reset Your Password - {settings.app_name}",
            recipients=[email],
            body=render_password_reset(settings, email, reset_token),
            subtype=MessageType.html,
        )

        fm = FastMail(build_mail_config(settings))
        await fm.send_message(message)
        logger.info("Password reset email sent")
        return True
    except Exception:
        logger.exception("Failed to send password reset email")
        return False
