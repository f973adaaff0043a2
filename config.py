import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _normalise_prefix(raw_prefix: str) -> str:
    raw_prefix = raw_prefix.strip()
    if not raw_prefix or raw_prefix == "/":
        return ""
    if not raw_prefix.startswith("/"):
        raw_prefix = f"/{raw_prefix}"
    return raw_prefix.rstrip("/")


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    URL_PREFIX = _normalise_prefix(os.environ.get("FLASK_URL_PREFIX", ""))

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'timetable.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.environ.get("DB_ECHO", "false").lower() == "true"

    CONFLICT_POLICY = os.environ.get("CONFLICT_POLICY", "strict")
    DEFAULT_CLASS_LEVEL = os.environ.get("DEFAULT_CLASS_LEVEL", "CM1")

    ASSIST_TIMEOUT_SECONDS = _float_env("ASSIST_TIMEOUT_SECONDS", 45.0)
    # Callable, or "module:function" path, taking the prompt payload and
    # returning {"blocks": [...]}.
    ASSIST_GENERATOR = os.environ.get("ASSIST_GENERATOR") or None


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    URL_PREFIX = ""
    CONFLICT_POLICY = "strict"
    DEFAULT_CLASS_LEVEL = "CM1"
    ASSIST_TIMEOUT_SECONDS = 2.0
    ASSIST_GENERATOR = None
