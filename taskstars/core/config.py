from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TASKSTARS_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./taskstars.db"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24
    KID_TOKEN_MIN: int = 60 * 12

    # every GEM_RATIO points show up as one gem, the remainder as stars
    GEM_RATIO: int = Field(default=10, ge=1)

    DEFAULT_FAMILY_NAME: str = "Default Family"
    LOG_LEVEL: str = "INFO"


settings = Settings()
