from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "local"

    # Full URL wins; otherwise the postgres parts are assembled below.
    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "marketplace"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12

    refund_window_days: int = 2
    delivery_base_minutes: int = 30
    delivery_jitter_minutes: int = 60
    admin_poll_interval_seconds: int = 30

    log_level: str = "INFO"
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
