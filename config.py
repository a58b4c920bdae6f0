"""Application configuration loaded from environment variables."""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the BlindsCloud backend."""

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./blindscloud.db")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Bearer tokens
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-only-secret-change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

    # Job workflow
    DEPOSIT_PERCENTAGE: float = float(os.getenv("DEPOSIT_PERCENTAGE", "0.30"))
    INSTALLATION_LEAD_DAYS: int = int(os.getenv("INSTALLATION_LEAD_DAYS", "7"))
    DEFAULT_INSTALLATION_TIME: str = os.getenv("DEFAULT_INSTALLATION_TIME", "09:00")
    DEFAULT_INVOICE_TEMPLATE: str = os.getenv("DEFAULT_INVOICE_TEMPLATE", "default")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
