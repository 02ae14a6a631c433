from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from ciudades.common.enums import CityMode
from ciudades.core.board.schemas import PipelineConfig


class Settings(BaseSettings):
    # Trello
    TRELLO_KEY: str = Field(validation_alias=AliasChoices("TRELLO_KEY", "TRELLO_API_KEY"), min_length=1)
    TRELLO_TOKEN: str = Field(min_length=1)
    TRELLO_BOARD_ID: str = Field(min_length=1)
    TRELLO_API_URL: str = "https://api.trello.com/1"
    TRELLO_REVALIDATE_SECONDS: int = Field(60, ge=15, le=3600)
    TRELLO_TIMEOUT_SECONDS: float = Field(45.0, gt=0)

    # Session auth
    AUTH_USER: str = Field(min_length=1)
    AUTH_PASS: str = Field(min_length=1)
    AUTH_SECRET: str = Field(min_length=32)

    # City resolution
    CITY_MODE: CityMode = CityMode.AUTO
    CITY_FIELD_NAME: str = Field("Ciudad", min_length=1)
    UPCOMING_DAYS: int = Field(7, gt=0, le=60)

    # App
    APP_ENV: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore", "frozen": True}

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            board_id=self.TRELLO_BOARD_ID,
            city_mode=self.CITY_MODE,
            city_field_name=self.CITY_FIELD_NAME,
            upcoming_days=self.UPCOMING_DAYS,
        )

    @property
    def secure_cookies(self) -> bool:
        return self.APP_ENV == "production"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Load settings once; a missing or invalid variable fails at startup."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
