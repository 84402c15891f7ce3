"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  (static defaults checked into the repo)
#   2. .env file           (local developer overrides, not committed)
#   3. Environment vars    (set at deploy time)
#
# load_config() reads the YAML file first, then deep-merges values from
# Settings on top.  The YAML file is where the discovery venue registry
# and the state -> timezone map live; Settings covers the scalar knobs.
#
# The _deep_merge helper does recursive dict merging:
#   base = {"rate_limit": {"auth_per_minute": 10}}
#   overrides = {"rate_limit": {"enabled": False}}
#   result = {"rate_limit": {"auth_per_minute": 10, "enabled": False}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from psychic_homily.config.settings import Settings

_DEFAULT_STATE_TIMEZONE = "America/Phoenix"


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "rate_limit": {
            "enabled": settings.rate_limit_enabled,
            "auth_per_minute": settings.rate_limit_auth_per_minute,
            "api_per_minute": settings.rate_limit_api_per_minute,
        },
        "discord": {
            "enabled": settings.discord_enabled,
            "webhook_url": settings.discord_webhook_url,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    yaml_config.setdefault("discovery", {})
    yaml_config["discovery"].setdefault("venues", {})
    yaml_config["discovery"].setdefault("state_timezones", {})
    yaml_config["discovery"].setdefault("default_timezone", _DEFAULT_STATE_TIMEZONE)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
