"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


def _default_database_url() -> str:
    """Build the database URL from the discrete POSTGRES_* variables.

    Falls back to a local SQLite file next to the package when no
    PostgreSQL password is configured.
    """
    pg_pass = os.getenv("POSTGRES_PASSWORD")
    if not pg_pass:
        return f"sqlite:///{BASE / 'app.db'}"
    pg_user = os.getenv("POSTGRES_USER", "uj_ai_club")
    pg_db = os.getenv("POSTGRES_DB", "uj_ai_club")
    pg_host = os.getenv("POSTGRES_HOST", "postgres")
    return f"postgresql+psycopg://{pg_user}:{pg_pass}@{pg_host}:5432/{pg_db}"


def normalize_database_url(url: str) -> str:
    """Route plain postgres URLs through the psycopg driver."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    DATABASE_URL: str
    SERVER_ADDRESS: str
    UPLOADS_DIR: Path
    MAX_UPLOAD_BYTES: int
    FRONTEND_URL: str
    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str
    GOOGLE_REDIRECT_URI: str
    ALLOW_DEV_CORS: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL") or _default_database_url())
        self.SERVER_ADDRESS = os.getenv("SERVER_ADDRESS", "0.0.0.0:8000")
        self.UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(BASE / "uploads"))).expanduser()
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5 MB default
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "https://aiclub-uj.com").rstrip("/")
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "").strip()
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "").strip()
        self.GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "").strip()
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self._validate()

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET and self.GOOGLE_REDIRECT_URI)

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_HOURS <= 0:
            raise RuntimeError("JWT_EXPIRE_HOURS must be positive")
        host, sep, port = self.SERVER_ADDRESS.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise RuntimeError(f"SERVER_ADDRESS must look like HOST:PORT, got {self.SERVER_ADDRESS!r}")


settings = Settings()
