"""
Configuration and Logging

Settings are read from the environment (and a local .env file) once at
process start. Nothing re-reads the environment afterwards.
"""

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    database_url: Optional[str] = Field(None, description="MongoDB connection string")
    database_name: str = Field("foodAll", description="Database holding users, foods and orders")
    access_token_secret: Optional[str] = Field(None, description="HS256 signing secret")
    access_token_expire_minutes: int = 60
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    port: int = 5000


def _database_url() -> Optional[str]:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user, password = os.getenv("DB_USER"), os.getenv("DB_PASS")
    host = os.getenv("DB_HOST")
    if user and password and host:
        return f"mongodb+srv://{user}:{password}@{host}/?retryWrites=true&w=majority"
    return None


def load_settings() -> Settings:
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=_database_url(),
        database_name=os.getenv("DATABASE_NAME", "foodAll"),
        access_token_secret=os.getenv("ACCESS_TOKEN_SECRET"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        port=int(os.getenv("PORT", "5000")),
    )


def setup_logging(level: str = "INFO") -> None:
    """Attach a console handler to the root logger, once.

    Calling this again (tests, repeated ``create_app``) leaves the existing
    handlers alone.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)
