from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./students.db", alias="DATABASE_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Prebuilt frontend served at "/" when the directory exists
    frontend_dir: str = Field("frontend", alias="FRONTEND_DIR")
    create_tables_on_startup: bool = Field(True, alias="CREATE_TABLES_ON_STARTUP")
    port: int = Field(3000, alias="PORT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
