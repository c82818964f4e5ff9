from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Forex Scalper Backend"
    cors_origins: list[str] = ["http://localhost:4000", "http://localhost:5173"]
    log_level: str = "INFO"

    # Generative-language service (Gemini REST API)
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_api_key: str | None = None
    analysis_model: str = "gemini-3-flash-preview"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    tts_voice_name: str = "Kore"
    http_timeout_seconds: float = 30.0
    audio_sample_rate: int = 24000

    # Simulated feed
    default_asset: str = "EUR/USD"
    default_timeframe: Literal["1M", "5M", "15M"] = "1M"
    window_capacity: int = 60
    signal_history: int = 10

    # Signal thresholds: fixed constants, tunable only through the environment
    breakout_period: int = 20
    breakout_volume_ratio: float = 1.5
    strong_volume_ratio: float = 3.0
    wyckoff_damping: float = 0.5
    alert_cooldown_seconds: float = 20.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
