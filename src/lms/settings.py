import os
from os.path import join
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from functools import lru_cache
from lms.config import root_dir

env_path = join(root_dir, ".env.local")
if os.path.exists(env_path):
    load_dotenv(env_path)


class Settings(BaseSettings):
    database_url: str = join(root_dir, "lms.db")
    database_timeout: float = 30.0  # seconds, applied when the pool is created

    jwt_secret: str | None = None
    bcrypt_rounds: int = 10

    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    frontend_url: str | None = None

    env: str = "development"
    log_level: str = "INFO"
    bugsnag_api_key: str | None = None

    model_config = SettingsConfigDict(env_file=join(root_dir, ".env"), extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cors_origins(self) -> List[str]:
        if not self.is_production:
            return ["*"]
        origins = list(self.allowed_origins)
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins


@lru_cache
def get_settings():
    return Settings()


settings = get_settings()
