from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000,http://localhost:8081"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_url: str = DEFAULT_GEMINI_API_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    cors_allowed_origins: list[str] = field(default_factory=list)
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings(*, use_dotenv: bool = True) -> Settings:
    if use_dotenv:
        load_dotenv()

    origins = [
        origin.strip()
        for origin in os.getenv("LEGALEASE_CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ]
    frontend_url = (os.getenv("FRONTEND_URL") or "").strip()
    if frontend_url and frontend_url not in origins:
        origins.append(frontend_url)

    return Settings(
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
        gemini_model=(os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL).strip(),
        gemini_api_url=(os.getenv("GEMINI_API_URL") or DEFAULT_GEMINI_API_URL).strip().rstrip("/"),
        timeout_seconds=_float_env("GEMINI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        max_upload_bytes=_int_env("LEGALEASE_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        cors_allowed_origins=origins,
        log_level=(os.getenv("LEGALEASE_LOG_LEVEL") or "INFO").strip().upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
