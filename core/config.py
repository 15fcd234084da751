from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./app.db"

    JWT_SECRET: str
    # Refresh tokens fall back to JWT_SECRET when no dedicated secret is set
    JWT_REFRESH_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRES_IN: str = "15m"
    JWT_REFRESH_TOKEN_EXPIRES_IN: str = "7d"

    BCRYPT_ROUNDS: int = 12

    RATE_LIMIT_DEFAULT: str = "100/15 minutes"
    RATE_LIMIT_AUTH: str = "10/15 minutes"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV == "development"

    @property
    def refresh_secret(self) -> str:
        return self.JWT_REFRESH_SECRET or self.JWT_SECRET


settings = Settings()
