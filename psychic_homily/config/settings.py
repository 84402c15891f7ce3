"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables**: e.g. JWT_SECRET_KEY=...
#      (highest priority, always wins)
#   2. **.env file**: key=value lines in the project root .env file
#      (used for local development)
#
# Field ``jwt_secret_key`` maps to env var ``JWT_SECRET_KEY``.
#
# Defaults apply when neither source sets a field.  Structured data that
# does not fit an env var (the discovery venue registry, the state
# timezone map) lives in config/config.yaml and is read by loader.py.
#
# SECURITY: The .env file is in .gitignore and never committed.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Psychic Homily application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Database ===
    # Every provider shares one SQLite file so show creation can write the
    # show, its venues and its artists inside a single transaction.
    database_path: str = "data/psychic_homily.db"

    # === JWT ===
    # Empty secret is rejected at startup outside development.
    jwt_secret_key: str = ""
    jwt_expiry_hours: int = 24
    jwt_refresh_grace_hours: int = 168  # 7 days past expiry may still refresh
    jwt_issuer: str = "psychic-homily-backend"
    jwt_audience: str = "psychic-homily-users"
    auth_cookie_name: str = "auth_token"

    # === Account security ===
    max_failed_login_attempts: int = 5
    account_lock_minutes: int = 15
    magic_link_expiry_minutes: int = 15
    password_breach_check_enabled: bool = True

    # === Discord notifications ===
    discord_webhook_url: str = ""
    discord_enabled: bool = False

    # === Rate limiting ===
    rate_limit_enabled: bool = True
    rate_limit_auth_per_minute: int = 10
    rate_limit_api_per_minute: int = 100

    # === Shows ===
    default_timezone: str = "America/Phoenix"
    # 1.0 = exact case-insensitive headliner match only; lower values
    # enable rapidfuzz token_sort_ratio matching.
    duplicate_fuzzy_threshold: float = 0.92
    # 0 = same UTC calendar day; 1 = day before through day after.
    duplicate_window_days: int = 0

    # === Application ===
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    app_env: str = "development"
    log_level: str = "INFO"
    cors_allowed_origins: str = ""  # Comma-separated; empty = allow all
    config_path: str = "config/config.yaml"

    def get_cors_origins(self) -> list[str] | None:
        """Parse ``cors_allowed_origins`` into a list, or None for allow-all."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        return origins or None

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"
