"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "orbit-nav"
    debug: bool = False
    log_level: str = "INFO"

    # Gesture recognition
    swipe_threshold_ratio: float = 0.3
    long_press_ms: int = 500
    long_press_tolerance_px: float = 20.0
    pinch_threshold: float = 0.25

    # Navigation
    transition_delay_ms: int = 300
    recommendation_timeout_seconds: float = 20.0

    # Sessions
    session_ttl_minutes: int = 30

    # Gemini LLM
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.7
    gemini_max_output_tokens: int = 200

    # TMDB metadata
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_api_key: str = ""
    tmdb_timeout_seconds: float = 10.0

    default_dominant_hex: str = "#1a1a2e"

    model_config = {"env_prefix": "ORBIT_"}


settings = Settings()
