from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_env: str = "dev"
    log_level: str = "info"
    log_dir: str = "logs"
    layout_map_dir: str = "data/layout_maps"
    history_limit: int = 100
    highlight_strong_ms: int = 300
    highlight_fade_ms: int = 1000

    @field_validator("log_level")
    @classmethod
    def _uppercase_level(cls, value: str) -> str:
        """Normalize level name so it can be handed to logging directly."""

        return value.strip().upper()

    @field_validator("highlight_strong_ms", "highlight_fade_ms")
    @classmethod
    def _ensure_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Highlight durations must be non-negative")
        return value


settings = Settings()
