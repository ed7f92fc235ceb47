"""Application settings loaded from environment variables using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    """Screening service configuration.

    All settings can be overridden via environment variables.
    REQUEST_DEADLINES maps a request priority to the overall budget (in
    seconds) for the provider fan-out; pass it as JSON in the environment.
    """

    DATA_DIR: str = str(DEFAULT_DATA_DIR)
    LOG_LEVEL: str = "INFO"
    STRICT_PROVIDER_VALIDATION: bool = True
    PROVIDER_LATENCY_MS: int = 0
    REQUEST_DEADLINES: dict[str, float] = {
        "urgent": 10.0,
        "high": 20.0,
        "medium": 45.0,
        "low": 90.0,
    }

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def deadline_for(self, priority: str) -> float:
        """Overall fan-out deadline for a priority, falling back to medium."""
        return self.REQUEST_DEADLINES.get(priority, self.REQUEST_DEADLINES.get("medium", 45.0))
