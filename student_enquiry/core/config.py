from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    APP_NAME: str = "Student Enquiry Portal"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    STORE_BACKEND: Literal["firestore", "memory"] = "firestore"
    FIREBASE_CREDENTIALS_PATH: str = "./firebase-credentials.json"
    FIREBASE_PROJECT_ID: str = ""

    STUDENTS_COLLECTION: str = "students"
    COUNTERS_COLLECTION: str = "daily_counters"
    REGISTER_NUMBERS_COLLECTION: str = "register_numbers"

    # First token of a day is TOKEN_START + 1
    TOKEN_START: int = 100
    # IANA zone name; empty means the server's local date
    TOKEN_TIMEZONE: str = ""
    TRANSACTION_MAX_ATTEMPTS: int = 5

    CORS_ORIGINS: str = "*"

    AUTH_MODE: Literal["off", "mock", "firebase"] = "off"
    ADMIN_USERNAME: str = "admin"
    # bcrypt hash of the admin password
    ADMIN_PASSWORD_HASH: str = ""
    # Comma-separated emails allowed in firebase mode
    ADMIN_EMAILS: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_emails(self) -> set[str]:
        return {e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()}


settings = Settings()
