from functools import lru_cache
from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "CloudBox"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 10000

    # Database
    DB_URL: Optional[str] = None
    DB_USER: str = "cloudbox"
    DB_PASSWORD: str = ""
    DB_NAME: str = "cloudbox"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Blob storage
    STORAGE_BACKEND: str = "local"
    UPLOAD_DIR: str = "uploads"

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def check_storage_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("local", "minio"):
            raise ValueError("STORAGE_BACKEND must be 'local' or 'minio'")
        return v

    # MinIO
    MINIO_ROOT_USER: str = ""
    MINIO_ROOT_PASSWORD: str = ""
    MINIO_BUCKET_NAME: str = "cloudbox-files"
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_SECURE: bool = False

    # Redis (share lookup cache, optional)
    REDIS_URL: Optional[str] = None
    SHARE_CACHE_TTL_SECONDS: int = 3600

    # Identity
    AUTH_PROVIDER: str = "firebase"
    FIREBASE_PROJECT_ID: str = ""
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    @field_validator("AUTH_PROVIDER")
    @classmethod
    def check_auth_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in ("firebase", "jwt"):
            raise ValueError("AUTH_PROVIDER must be 'firebase' or 'jwt'")
        return v

    # Share links are built from this when set, otherwise from the request
    PUBLIC_BASE_URL: Optional[str] = None

    # CORS
    BACKEND_CORS_ORIGINS: Union[List[str], str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str) and v.startswith("["):
            return json.loads(v)
        return v

    # File Upload
    MAX_FILE_SIZE_MB: int = 100
    MAX_FILE_SIZE_OVERRIDE_BYTES: Optional[int] = None
    UPLOAD_CHUNK_SIZE: int = 64 * 1024

    @property
    def MAX_FILE_SIZE_BYTES(self) -> int:
        if self.MAX_FILE_SIZE_OVERRIDE_BYTES is not None:
            return self.MAX_FILE_SIZE_OVERRIDE_BYTES
        return self.MAX_FILE_SIZE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
