# src/dblocator/core/config.py

from dotenv import load_dotenv
load_dotenv(".env")
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field
from sqlalchemy.engine import URL
from typing import Optional

class Settings(BaseSettings):
    # model_config loads the .env file as well
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    APP_ENV: str = "production"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # --- Directory Store ---
    DB_DRIVER: str = "mssql+aioodbc"
    DB_HOST: str = "localhost"
    DB_PORT: int = 1433
    DB_USER: str = "sa"
    DB_PASSWORD: str = ""
    DB_NAME: str = "DbLocator"
    DB_ODBC_DRIVER: str = "ODBC Driver 18 for SQL Server"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Used verbatim instead of the computed URL (e.g. sqlite+aiosqlite for local runs)
    DATABASE_URL_OVERRIDE: Optional[str] = None

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        url = URL.create(
            self.DB_DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query={"driver": self.DB_ODBC_DRIVER, "TrustServerCertificate": "yes"},
        )
        return url.render_as_string(hide_password=False)

    # --- Provisioning hub ---
    # Dynamic DDL is executed through this server; linked servers are reached from it.
    PROVISIONING_DATABASE_URL: Optional[str] = None
    SQL_COMMAND_TIMEOUT: int = 30

    # --- Redis cache ---
    CACHE_ENABLED: bool = True
    CACHE_KEY_PREFIX: str = "dblocator:"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    @computed_field
    @property
    def REDIS_URL(self) -> str:
        password = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{password}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # --- Secret cipher ---
    ENCRYPTION_KEY: Optional[str] = Field(None, description="Passphrase for stored database user passwords. Empty means plaintext storage.")
    ENCRYPTION_LEGACY_ZERO_IV: bool = Field(False, description="Read and write ciphertexts produced with an all-zero IV.")

    # --- Connection strings ---
    CONNECT_TIMEOUT: int = 30

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ADMIN_SCOPE: str = "dblocator:admin"

settings = Settings()
