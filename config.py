import logging
import os
from typing import List

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration, built once and handed to create_app()."""

    secret_key: str = Field("dev-secret-change-me", description="JWT signing secret")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(24 * 60, ge=1)
    database_url: str = Field("mongodb://localhost:27017")
    database_name: str = Field("funkopops")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    rate_limit_per_minute: int = Field(0, ge=0, description="0 disables rate limiting")
    log_level: str = Field("INFO")
    port: int = Field(8000)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            secret_key=os.getenv("SECRET_KEY", "dev-secret-change-me"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60)),
            database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "funkopops"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", 0)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            port=int(os.getenv("PORT", 8000)),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
