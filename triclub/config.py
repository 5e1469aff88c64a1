import os

from pydantic_settings import BaseSettings


class Config(BaseSettings):
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost:5432")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "<PASSWORD>")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "postgres")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "secret")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 60))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    DEV_ADMIN_EMAIL: str = os.getenv("DEV_ADMIN_EMAIL", "")
    CRON_API_KEY: str = os.getenv("CRON_API_KEY", "")

    # Workout scheduling
    CLUB_TIMEZONE: str = os.getenv("CLUB_TIMEZONE", "America/Toronto")
    LATE_CANCELLATION_HOURS: float = float(os.getenv("LATE_CANCELLATION_HOURS", 12))
    SCHEMA_CHECK_ENABLED: bool = os.getenv("SCHEMA_CHECK_ENABLED", "true").lower() == "true"

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}/{self.POSTGRES_DB}"


# Read configuration once at import
config = Config()
