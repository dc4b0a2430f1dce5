from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'hst_user'
    POSTGRES_PASSWORD: str = 'hst_pass'
    POSTGRES_DB: str = 'hst_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Sobrescribe la URL armada con POSTGRES_*

    # MinIO settings (documentos PDF de facturas)
    MINIO_HOST: str = 'minio'
    MINIO_PORT: int = 9000
    MINIO_PUBLIC_HOST: str = 'localhost'  # Hostname público para URLs firmadas
    MINIO_PUBLIC_PORT: int = 9000
    MINIO_ACCESS_KEY: str = 'minioadmin'
    MINIO_SECRET_KEY: str = 'minioadmin'
    MINIO_BUCKET_NAME: str = 'invoices'
    MINIO_USE_SSL: bool = False
    SIGNED_URL_EXPIRE_MINUTES: int = 10

    # JWT settings (tokens de capacidad para operaciones destructivas)
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    CAPABILITY_TOKEN_EXPIRE_MINUTES: int = 5

    # Clave compartida del operador
    ADMIN_PASSWORD: str = '1234'
    ADMIN_PASSWORD_HASH: Optional[str] = None  # bcrypt; si existe tiene prioridad

    # File upload limits
    MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20MB
    ALLOWED_FILE_TYPES: list = ["application/pdf"]

    # Contabilidad
    VAT_RATES: List[int] = [0, 15]  # JSON en el entorno, ej. VAT_RATES="[0, 15]"
    TIMEZONE: str = 'America/Guayaquil'
    COMPANY_NAME: str = 'HST CONTABILIDAD'
    SNAPSHOT_TTL_SECONDS: float = 30  # vencimiento del snapshot de lectura (escrituras de otros workers)

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def minio_endpoint(self) -> str:
        return f"{self.MINIO_HOST}:{self.MINIO_PORT}"

    @property
    def minio_public_endpoint(self) -> str:
        return f"{self.MINIO_PUBLIC_HOST}:{self.MINIO_PUBLIC_PORT}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("MINIO_USE_SSL", mode="before")
    @classmethod
    def parse_ssl(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
