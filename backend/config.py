# backend/config.py
from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 15
    DATABASE_URL: str = "sqlite:///./database_novahogar.db"

    # Checkout pricing
    TAX_RATE_PERCENT: Decimal = Decimal("16")
    SHIPPING_FEE: Decimal = Decimal("150.00")
    FREE_SHIPPING_THRESHOLD: Optional[Decimal] = None  # None disables the waiver
    CURRENCY: str = "MXN"

    # Outbound e-mail (SendGrid v3 API)
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    SENDGRID_API_KEY: str = ""
    EMAIL_FROM: str = "no-reply@novahogar.com"
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # Branding used on invoices and e-mails
    COMPANY_NAME: str = "Nova Hogar"
    COMPANY_SLOGAN: str = "DECORA TU VIDA, DECORA TU HOGAR"
    FRONTEND_URL: str = "http://localhost:3000"

    WELCOME_COUPON_PERCENT: int = 10
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
