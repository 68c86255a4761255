"""Configuration management for the receipt PDF text extractor.

Loads and validates YAML configuration with defaults that reproduce
the plain extraction behavior: flattened glyph maps, a -100 kerning
threshold and no readable-string fallback.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ExtractionConfig(BaseModel):
    """Configuration for the PDF text extraction pipeline."""

    model_config = ConfigDict(frozen=True)

    kerning_space_threshold: float = -100.0
    font_scoped_unicode: bool = False
    readable_string_fallback: bool = False
    winansi_fallback: bool = False


class ServerConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
