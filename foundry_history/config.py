"""Configuration settings for the Foundry History service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    HASS_URL: str = "http://homeassistant.local:8123"
    HASS_TOKEN: str = ""  # long-lived access token
    HTTP_TIMEOUT: float = 10.0
    WIDGETS_FILE: str = "./widgets.yaml"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
