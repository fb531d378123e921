from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "task-market"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "TASK_MARKET_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/task_market",
        validation_alias=AliasChoices("DATABASE_URL", "TASK_MARKET_DATABASE_URL"),
    )
    create_schema_on_startup: bool = Field(default=False, validation_alias=AliasChoices("CREATE_SCHEMA_ON_STARTUP", "TASK_MARKET_CREATE_SCHEMA_ON_STARTUP"))
    jwt_secret: str | None = Field(default=None, validation_alias=AliasChoices("JWT_SECRET", "TASK_MARKET_JWT_SECRET"))
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM", "TASK_MARKET_JWT_ALGORITHM"))
    jwt_expires_days: int = Field(default=7, validation_alias=AliasChoices("JWT_EXPIRES_DAYS", "TASK_MARKET_JWT_EXPIRES_DAYS"))
    wechat_appid: str | None = Field(default=None, validation_alias=AliasChoices("WECHAT_APPID", "TASK_MARKET_WECHAT_APPID"))
    wechat_secret: str | None = Field(default=None, validation_alias=AliasChoices("WECHAT_SECRET", "TASK_MARKET_WECHAT_SECRET"))
    wechat_api_base_url: str = Field(default="https://api.weixin.qq.com", validation_alias=AliasChoices("WECHAT_API_BASE_URL", "TASK_MARKET_WECHAT_API_BASE_URL"))
    wechat_timeout_sec: float = Field(default=10.0, validation_alias=AliasChoices("WECHAT_TIMEOUT_SEC", "TASK_MARKET_WECHAT_TIMEOUT_SEC"))
    owner_open_id: str | None = Field(default=None, validation_alias=AliasChoices("OWNER_OPEN_ID", "TASK_MARKET_OWNER_OPEN_ID"))
    dev_login_enabled: bool = Field(default=False, validation_alias=AliasChoices("DEV_LOGIN_ENABLED", "TASK_MARKET_DEV_LOGIN_ENABLED"))
    cors_origins: list[str] = Field(default=["*"], validation_alias=AliasChoices("CORS_ORIGINS", "TASK_MARKET_CORS_ORIGINS"))

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if self.database_url.startswith("sqlite://"):
            return self.database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
