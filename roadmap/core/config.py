from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://roadmap:roadmap@db:5432/roadmap"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://roadmap.example.com,https://admin.example.com"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # JSON lines for log aggregators; plain text is easier to read locally.
    LOG_JSON: bool = False

    # Reporting defaults
    ANALYTICS_DEFAULT_WINDOW_DAYS: int = 90
    ANALYTICS_DEFAULT_LIMIT: int = 50
    ANALYTICS_MAX_LIMIT: int = 1000
    BACKLOG_DEFAULT_TOP_N: int = 10
    BACKLOG_MAX_TOP_N: int = 100

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
