import os
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()  # loads .env if present

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Overlay Kit")
    API_PREFIX: str = "/api"

    # The editor UI runs on a separate dev server
    BACKEND_CORS_ORIGINS: list[str] = _split_origins(
        os.getenv("BACKEND_CORS_ORIGINS", "http://localhost:5173")
    )

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg2://postgres:postgres@db:5432/overlays",
    )

    # Uploaded images live here and are served back under UPLOAD_URL_PREFIX
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "/app/data/uploads")
    UPLOAD_URL_PREFIX: str = os.getenv("UPLOAD_URL_PREFIX", "/uploads")

    PRESETS_PATH: str = os.getenv(
        "PRESETS_PATH",
        str(_PACKAGE_DIR / "presets" / "overlay-presets.json"),
    )

    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session_token")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache
def get_settings():
    return Settings()
