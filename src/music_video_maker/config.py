"""Configuration management for Music Video Maker."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini API (sequencing oracle and music description)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    oracle_max_output_tokens: int = 8192
    oracle_thinking_budget: int = 1024

    # Storage configuration (filesystem only)
    storage_path: str = "./data"

    # Clip analysis
    max_concurrent_analyses: int = 4
    object_model_path: Optional[str] = None  # frozen_inference_graph.pb (SSD MobileNet COCO)
    object_model_config: Optional[str] = None  # matching .pbtxt
    detection_score_threshold: float = 0.5
    face_cascade_path: Optional[str] = None  # defaults to the cascade bundled with OpenCV

    # Thumbnails
    thumbnail_max_width: int = 512
    thumbnail_quality: int = 80

    # Development
    debug: bool = False
    log_level: str = "INFO"

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    def get_gemini_model_name(self) -> str:
        """Get the Gemini model name used for sequencing and music description."""
        return self.gemini_model

    def validate_api_keys(self) -> bool:
        """Check if required API keys are configured."""
        return bool(self.gemini_api_key)


# Global settings instance
settings = Settings()
