from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    service_name: str = Field(default="observability-demo", alias="SERVICE_NAME")
    service_version: str = Field(default="1.0.0", alias="SERVICE_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5555, alias="PORT")
    log_level: str = Field(default="DEBUG", alias="LOG_LEVEL")

    signoz_endpoint: str = Field(default="", alias="SIGNOZ_ENDPOINT")
    signoz_token: str = Field(default="", alias="SIGNOZ_TOKEN")
    enable_tracing: bool = Field(default=True, alias="ENABLE_TRACING")

    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    @property
    def traces_endpoint(self) -> str | None:
        if not self.signoz_endpoint:
            return None
        return f"{self.signoz_endpoint.rstrip('/')}/v1/traces"

    @property
    def logs_endpoint(self) -> str | None:
        if not self.signoz_endpoint:
            return None
        return f"{self.signoz_endpoint.rstrip('/')}/v1/logs"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
