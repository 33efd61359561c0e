"""Configuration module using pydantic-settings.

This module provides environment variable management for the detection
service. Uses pydantic-settings for automatic validation and .env file
support. Model and decoding constants live in detector.yaml; this covers
deployment-level knobs only.

Author: Matthew Hong
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        MODELS_DIR: Local directory holding the ONNX detector
        MODEL_NAME: Registry name of the detector model
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        PORT: FastAPI server port
        CONFIDENCE_THRESHOLD: Default objectness threshold
        INFERENCE_TIMEOUT_S: Upper bound for one detection call
    """

    MODELS_DIR: str = "./models"
    MODEL_NAME: str = "lettuce_detector"
    LOG_LEVEL: str = "INFO"
    PORT: int = 8100
    CONFIDENCE_THRESHOLD: float = Field(default=0.25, ge=0.0, le=1.0)
    INFERENCE_TIMEOUT_S: float = Field(default=30.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern).

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
