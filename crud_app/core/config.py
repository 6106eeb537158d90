from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "User CRUD API"
    app_version: str = "1.0.0"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "crud_app"
    db_user: str = "postgres"
    db_password: str = ""
    database_url: str | None = None
    db_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 0
    log_dir: str = "/var/logs/crud"
    log_file_name: str = "app.log"
    log_level: str = "INFO"
    migrate_max_retries: int = 30
    migrate_retry_delay_seconds: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def resolved_database_url(self) -> str:
        if self.database_url and self.database_url.strip():
            return self.database_url.strip()
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
