"""Application configuration."""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Settings read from the environment (or a local .env file)."""
    DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./marketplace.db")

    # JWT
    SECRET_KEY = os.environ.get("SECRET_KEY", "marketplace-secret-key-change-in-production")
    ALGORITHM = os.environ.get("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS", "http://localhost,http://localhost:3000,http://localhost:5173"
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


settings = Settings()
