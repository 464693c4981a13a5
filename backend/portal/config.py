from fastapi import Request
from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    app_name: str = "Profile Portal API"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Database - supports both SQLite (local) and PostgreSQL (production)
    database_url: str = "sqlite+aiosqlite:///./portal.db"

    # Security - MUST be set via environment variables in production
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:3000"

    # Email Configuration
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "noreply@example.com"
    mail_from_name: str = "Profile Portal"
    mail_port: int = 587
    mail_server: str = "smtp.gmail.com"
    mail_starttls: bool = True
    mail_ssl_tls: bool = False
    mail_validate_certs: bool = True

    # Frontend URL for email links
    frontend_url: str = "http://localhost:3000"

    # Password reset
    reset_token_expire_minutes: int = 60

    # Uploaded files
    uploads_dir: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "uploads")
    max_photo_bytes: int = 5 * 1024 * 1024
    max_resume_bytes: int = 10 * 1024 * 1024

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False

    def get_cors_origins(self) -> list:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was created with."""
    return request.app.state.settings
