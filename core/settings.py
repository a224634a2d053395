from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "development", "production"] = Field(
        default="local"
    )
    LOG_LEVEL: str = Field(default="INFO")
    PORT: int = Field(default=3001)
    CREATE_TABLES_ON_STARTUP: bool = Field(default=True)


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="")
    POSTGRES_DB: str = Field(default="spur_agent")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    # None: on in production or for render.com hosts
    POSTGRES_SSL: bool | None = Field(default=None)

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if not isinstance(data, dict):
            return data
        url = data.get("DATABASE_URL")
        if not url:
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD") or None,
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "spur_agent"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        elif isinstance(url, str) and url.startswith(("postgres://", "postgresql://")):
            # Hosted providers hand out libpq URLs; the engine needs the async driver
            scheme, rest = url.split("://", 1)
            engine = data.get("POSTGRES_ENGINE", "postgresql+asyncpg")
            data["DATABASE_URL"] = f"{engine}://{rest}"
        return data


class LLMSettings(CustomSettings):
    """Configuration for the completion provider.

    Any OpenAI-compatible endpoint works; set via env vars:
    - OPENAI_API_KEY
    - OPENAI_BASE_URL
    - PRIMARY_MODEL
    - FALLBACK_MODEL
    - REQUEST_TIMEOUT
    """

    OPENAI_API_KEY: SecretStr = Field(default="")
    OPENAI_BASE_URL: str | None = Field(default=None)
    PRIMARY_MODEL: str = Field(default="gpt-4o-mini")
    FALLBACK_MODEL: str = Field(default="gpt-3.5-turbo")
    TEMPERATURE: float = Field(default=0.3)
    MAX_TOKENS: int = Field(default=1000)
    REQUEST_TIMEOUT: float = Field(default=30.0)


class ChatSettings(CustomSettings):
    MAX_MESSAGE_LENGTH: int = Field(default=2000)
    HISTORY_WINDOW: int = Field(default=10)
    SERIALIZE_SESSION_WRITES: bool = Field(default=False)


class CorsSettings(CustomSettings):
    FRONTEND_URL: str = Field(default="http://localhost:5173")


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    LLM: LLMSettings = Field(default_factory=LLMSettings)
    CHAT: ChatSettings = Field(default_factory=ChatSettings)
    CORS: CorsSettings = Field(default_factory=CorsSettings)


def use_database_ssl(app: AppSettings, db: PgDbSettings) -> bool:
    if db.POSTGRES_SSL is not None:
        return db.POSTGRES_SSL
    return app.ENVIRONMENT == "production" or "render.com" in str(db.DATABASE_URL)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
