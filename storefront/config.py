import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

LOCAL_FRONTEND_URL = "http://localhost:3000"


@dataclass(frozen=True)
class Settings:
    stripe_api_key: str
    stripe_webhook_secret: str
    jwt_secret: str
    frontend_url: str
    environment: str
    stripe_timeout: float
    webhook_tolerance: int
    database_url: str
    host: str
    port: int
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def base_url(self) -> str:
        if self.is_production and self.frontend_url:
            return self.frontend_url.rstrip("/")
        return LOCAL_FRONTEND_URL

    @property
    def success_url(self) -> str:
        return f"{self.base_url}/checkout/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.base_url}/checkout"

    @property
    def portal_return_url(self) -> str:
        return f"{self.base_url}/profile"


def get_settings() -> Settings:
    """Read the environment on every call so a patched os.environ takes effect."""
    return Settings(
        stripe_api_key=os.getenv("STRIPE_API_KEY") or os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
        jwt_secret=os.getenv("JWT_SECRET", ""),
        frontend_url=os.getenv("FRONTEND_URL", ""),
        environment=os.getenv("APP_ENV", "development").lower(),
        stripe_timeout=float(os.getenv("STRIPE_TIMEOUT_SECONDS", "10")),
        webhook_tolerance=int(os.getenv("STRIPE_WEBHOOK_TOLERANCE", "300")),
        database_url=os.getenv("DATABASE_URL", ""),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
