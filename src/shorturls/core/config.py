from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    public_base_url: Optional[str] = None

    # Database
    database_url: str = "sqlite:///./db.sqlite"

    # Links
    default_validity_minutes: int = 30

    # Log relay
    log_sink_url: str = "http://20.244.56.144/evaluation-service"
    log_sink_token: str = ""
    log_sink_timeout: float = 2.0
    log_relay_enabled: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def short_link_base(self) -> str:
        base = self.public_base_url or f"http://localhost:{self.port}"
        return base.rstrip("/")


def get_settings() -> Settings:
    return Settings()
