from psychic_homily.config.loader import load_config
from psychic_homily.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "load_config", "settings"]
