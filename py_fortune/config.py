"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Library settings, read from ``VORONOI_*`` environment variables or ``.env``."""

    # Diagram construction
    bound: float = Field(default=100.0, gt=0, description="Half-width of the square unbounded edges are clipped to")
    epsilon: float = Field(default=1e-9, ge=0, description="Tolerance for sweep and parabola comparisons, relative to the extent of the sites")
    strict: bool = Field(default=True, description="Raise on finalization defects instead of collecting them")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Log format (console or json)")

    class Config:
        env_prefix = "VORONOI_"
        env_file = ".env"
        extra = "ignore"


settings = Settings()
