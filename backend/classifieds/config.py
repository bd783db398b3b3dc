from pydantic_settings import BaseSettings
from pydantic import model_validator
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_database: str = "classifieds"
    mysql_user: str = "classifieds"
    mysql_password: str = ""
    # Full SQLAlchemy URL; takes precedence over the mysql_* fields when set
    database_url_override: str = ""

    # Persistence gateway
    db_pool_timeout: int = 10  # seconds to wait for a pooled connection
    db_retry_attempts: int = 3
    db_retry_base_delay: float = 1.0
    db_retry_max_delay: float = 10.0
    parallel_reads: bool = True

    # Sessions
    session_cookie_name: str = "session_id"
    session_ttl_days: int = 7

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size: int = 5 * 1024 * 1024
    allowed_image_extensions: list[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
    orphan_file_max_age_hours: int = 24

    # App
    environment: str = "development"
    cors_origins: list[str] = ["http://localhost:5173"]
    enable_scheduler: bool = False
    bootstrap_admin: bool = True  # create the admin account at startup

    # Admin bootstrap account
    admin_username: str = "admin"
    admin_password: str = "changeme"
    admin_email: str = "admin@example.com"

    @model_validator(mode="after")
    def validate_admin_password(self) -> "Settings":
        """Refuse to bootstrap an admin with a default password outside development."""
        weak_passwords = {"changeme", "", "admin", "password"}
        if self.environment != "development" and self.admin_password in weak_passwords:
            raise ValueError(
                f"ADMIN_PASSWORD must be set to a strong value in {self.environment} environment."
            )
        return self

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_database}"
            f"?charset=utf8mb4"
        )

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
