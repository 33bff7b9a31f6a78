"""
Configuration module - centralized settings for the entire application.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    To point the service at another bridge, set environment variables:
        export SMART_HOME_API_URL=https://bridge.example.com/smarthome
        export GEMINI_API_KEY=your-api-key
    """

    # ---------------------------------------------------------------------------
    # PYDANTIC SETTINGS CONFIGURATION
    # ---------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",        # Load from .env file in project root
        env_file_encoding="utf-8",
        extra="ignore",         # Ignore extra env vars not defined here
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    # APP_NAME: Display name shown in API docs and logging
    APP_NAME: str = "HomePilot"

    # DEBUG: Enable debug mode (more verbose logging)
    DEBUG: bool = False

    # LOG_LEVEL: Level for the "homepilot" logger hierarchy
    LOG_LEVEL: str = "INFO"

    # ---------------------------------------------------------------------------
    # AI/LLM PROVIDER SETTINGS
    # ---------------------------------------------------------------------------
    # GEMINI_API_KEY: Google's Gemini API, used to interpret voice commands
    GEMINI_API_KEY: str = ""

    # GEMINI_MODEL: Fast model with native JSON output
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # AI request timeout in seconds
    AI_REQUEST_TIMEOUT: float = 30.0

    # INTENT_PROVIDER: "gemini" (language model) or "rules" (offline, deterministic)
    INTENT_PROVIDER: str = "gemini"

    # ---------------------------------------------------------------------------
    # SMART HOME BRIDGE SETTINGS
    # ---------------------------------------------------------------------------
    # SMART_HOME_API_URL: Base endpoint for QUERY and EXECUTE intents
    SMART_HOME_API_URL: str = "https://smarthome.tkv.in.net/smarthome"

    # BRIDGE_SYNC_PATH: Appended to the base endpoint for SYNC intents
    BRIDGE_SYNC_PATH: str = "/sync"

    # BRIDGE_TIMEOUT_SECONDS: Applied to every bridge request (no retries)
    BRIDGE_TIMEOUT_SECONDS: float = 10.0

    # REQUEST_ID_PREFIX: Prefix of the requestId sent with every bridge call
    REQUEST_ID_PREFIX: str = "homepilot"

    # ---------------------------------------------------------------------------
    # VOICE SETTINGS
    # ---------------------------------------------------------------------------
    # WAKE_WORD: Leading keyword stripped from commands ("jarvis, turn on ...")
    WAKE_WORD: str = "jarvis"

    # WAKE_WORD_REQUIRED: Reject commands that don't start with the wake word
    WAKE_WORD_REQUIRED: bool = False


# ---------------------------------------------------------------------------
# GLOBAL SETTINGS INSTANCE
# ---------------------------------------------------------------------------
# Usage: from homepilot.core.config import settings
settings = Settings()
