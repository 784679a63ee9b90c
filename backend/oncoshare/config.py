from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(...)

    # Object storage (Supabase-Storage compatible)
    storage_url: str = Field(default="")
    storage_key: str = Field(default="")
    storage_bucket: str = Field(default="T2T")
    storage_timeout_seconds: float = Field(default=30.0)

    # Sessions
    jwt_secret_key: str = Field(default="change-me")
    token_expire_seconds: int = Field(default=86400)  # 24 hours
    bcrypt_rounds: int = Field(default=10)
    session_file: str = Field(default=".oncoshare_session.json")

    # Bootstrap administrator, created at startup when both are set
    admin_email: str = Field(default="")
    admin_password: str = Field(default="")
    admin_username: str = Field(default="admin")

    # Logging
    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False

    def missing_storage_config(self) -> list[str]:
        """Names of the storage variables that are not set."""
        missing = []
        if not self.storage_url:
            missing.append("STORAGE_URL")
        if not self.storage_key:
            missing.append("STORAGE_KEY")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
