"""Runtime settings, read from the environment (and a local .env file)."""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///bookwise.db"
    secret_key: str = "dev-secret-key"
    app_env: str = "development"  # development / production / test
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"  # None disables the log files
    cors_origin: str = "http://localhost:5173"
    bcrypt_rounds: int = 12

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        app_env = os.getenv("APP_ENV", cls.app_env)
        secret_key = os.getenv("SECRET_KEY")
        if not secret_key:
            if app_env == "production":
                raise RuntimeError("SECRET_KEY must be set in production")
            secret_key = cls.secret_key

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            secret_key=secret_key,
            app_env=app_env,
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            log_dir=os.getenv("LOG_DIR", cls.log_dir) or None,
            cors_origin=os.getenv("CORS_ORIGIN", cls.cors_origin),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
        )
