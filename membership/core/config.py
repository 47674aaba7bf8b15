# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Single source of truth for every tunable parameter.
"""

import os


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _csv(name: str, default: str = "") -> list[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "membership-service")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.4.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    MAIL_SERVICE_URL: str = os.getenv("MAIL_SERVICE_URL", "http://mail-service:8006")
    MAIL_TIMEOUT: float = float(os.getenv("MAIL_TIMEOUT", "5.0"))
    DIRECTORY_SERVICE_URL: str = os.getenv(
        "DIRECTORY_SERVICE_URL", "http://directory-service:8007"
    )
    DIRECTORY_TIMEOUT: float = float(os.getenv("DIRECTORY_TIMEOUT", "5.0"))
    DOMAIN: str = os.getenv("DOMAIN", "sc3.club")

    # Lists every active member is subscribed to
    MEMBER_GROUPS: list[str] = _csv("MEMBER_GROUPS", "members@sc3.club,member_discussions@sc3.club")

    # Dry-run switches: log instead of calling the collaborator
    TEST_EMAILS: bool = _flag("TEST_EMAILS")
    TEST_GROUP_ADDS: bool = _flag("TEST_GROUP_ADDS")
    TEST_GROUP_REMOVES: bool = _flag("TEST_GROUP_REMOVES")

    FIFO_BATCH_SIZE: int = int(os.getenv("FIFO_BATCH_SIZE", "10"))
    FIFO_MAX_ATTEMPTS: int = int(os.getenv("FIFO_MAX_ATTEMPTS", "5"))
    RETRY_BASE_SECONDS: int = int(os.getenv("RETRY_BASE_SECONDS", "60"))
    RETRY_FALLBACK_SECONDS: int = int(os.getenv("RETRY_FALLBACK_SECONDS", "60"))
    RETRY_JITTER: float = float(os.getenv("RETRY_JITTER", "0"))
    QUEUE_TRIGGER_MINUTES: int = int(os.getenv("QUEUE_TRIGGER_MINUTES", "1"))

    RENEWAL_FORM_TEMPLATE: str = os.getenv("RENEWAL_FORM_TEMPLATE", "")

    DEFAULT_AUDIT_LIMIT: int = int(os.getenv("DEFAULT_AUDIT_LIMIT", "100"))
    MAX_AUDIT_LOG_SIZE: int = int(os.getenv("MAX_AUDIT_LOG_SIZE", "10000"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    SEED_DEFAULT_ACTION_SPECS: bool = _flag("SEED_DEFAULT_ACTION_SPECS", "true")


settings = Settings()
