from pathlib import Path
from typing import List, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Phone Verify API"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True

    # ── Database ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./phone_auth.db"

    # ── JWT / Auth ──────────────────────────────
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "phone-verify-api"
    JWT_AUDIENCE: str = "phone-verify-clients"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # ── OTP ─────────────────────────────────────
    OTP_PROVIDER: Literal["log", "twilio"] = "log"
    OTP_SESSION_TTL_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 5
    PHONE_VALIDATION_POLICY: Literal["generic", "israeli_mobile"] = "generic"

    # ── Twilio Verify ───────────────────────────
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_VERIFY_SERVICE_SID: str = ""
    TWILIO_VERIFY_BASE_URL: str = "https://verify.twilio.com/v2"
    TWILIO_TIMEOUT: int = 10

    # Integration-test numbers that never reach the SMS provider
    SANDBOX_ENABLED: bool = False
    SANDBOX_PHONES: List[str] = ["+972500000000"]
    SANDBOX_CODE: str = "123456"

    SESSION_CLEANUP_INTERVAL_SECONDS: int = 300

    # ── Logging ─────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
