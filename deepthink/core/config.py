"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings

# Package root (deepthink/)
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "Deep-Think Crisis Trainer"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./deepthink.db"

    # Scenarios bundled with the app, seeded into the DB on startup
    scenario_dir: Path = BASE_DIR / "data" / "scenarios"
    seed_scenarios_on_startup: bool = True

    # Fixed seed makes consequence draws replayable across sessions
    random_seed: int | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
