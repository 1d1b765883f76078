from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Database
    DB_USER: str = Field("signal_admin")
    DB_PASSWORD: str = Field("SignalPass2024")
    DB_NAME: str = Field("call_signaling")
    DB_HOST: str = Field("postgres")
    DB_PORT: int = Field(5432)
    DATABASE_URL: str | None = Field(None)

    # Redis
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)

    # LiveKit media server
    LIVEKIT_HOST: str = Field("localhost:7880")
    LIVEKIT_PUBLIC_HOST: str = Field("")
    LIVEKIT_API_KEY: str = Field("devkey")
    LIVEKIT_API_SECRET: str = Field("secret")

    # Calls
    CALL_CONTACT_GATING: bool = Field(True)

    # Push notifications (disabled when unset)
    PUSH_WEBHOOK_URL: str | None = Field(None)

    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(8000)
    DEBUG: bool = Field(False)
    JWT_SECRET_KEY: str = Field("supersecret")
    JWT_ALGORITHM: str = Field("HS256")
    JWT_EXP_DAYS: int = Field(7)

    # Metrics
    METRICS_ENABLED: bool = Field(False)
    METRICS_PORT: int = Field(8001)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def livekit_url(self) -> str:
        """URL handed to clients for joining media rooms."""
        if self.LIVEKIT_PUBLIC_HOST:
            return self.LIVEKIT_PUBLIC_HOST
        if self.LIVEKIT_HOST:
            return self.LIVEKIT_HOST
        return "ws://10.0.2.2:7880"


settings = Settings()
