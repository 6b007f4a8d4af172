"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

# Upstream caps list endpoints at 20 items per page.
MAX_PAGE_SIZE = 20


class Settings(BaseSettings):
    """Cache agent configuration from .env file."""

    token: str = ""
    database_url: str = ""
    base_url: str = "https://api.spacetraders.io/v2"
    page_size: int = Field(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    rate_limit: float = Field(2.0, gt=0)
    rate_burst: int = Field(10, ge=1)
    db_max_connections: int = Field(5, ge=1)
    data_dir: Path = Path("data")

    model_config = {"env_prefix": "SPACETRADERS_", "env_file": ".env"}

    def missing(self) -> list[str]:
        """Names of required settings that are not set."""
        required = {
            "SPACETRADERS_TOKEN": self.token,
            "SPACETRADERS_DATABASE_URL": self.database_url,
        }
        return [name for name, value in required.items() if not value]


def load_settings() -> Settings:
    """Load and return application settings."""
    return Settings()
