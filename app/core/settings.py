# backend/app/core/settings.py
# Configuration applicative (pydantic-settings, fichier .env) exposée via `get_settings()`.

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from rich import print


class Settings(BaseSettings):
    # === App settings ===
    app_name: str = "CarbonTrack"
    api_version: str = "0.1.0"

    # === MongoDB ===
    mongodb_user: str = ""
    mongodb_password: str = ""
    mongodb_uri_tpl: str = "mongodb://localhost:27017"
    mongodb_db: str = "carbontrack"
    seed_indexes_on_startup: bool = True

    # === JWT ===
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"

    # === LOGS ===
    logs_dir: str = "logs"
    log_retention_days: int = 30

    # === DOMAINE ===
    quiz_cooldown_days: int = 30
    baseline_window: int = 30  # nb d'activités prises pour la baseline

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def mongodb_uri(self) -> str:
        """Build the full MongoDB URI from template."""
        return self.mongodb_uri_tpl.replace("[[MONGODB_USER]]", self.mongodb_user)\
                                   .replace("[[MONGODB_PASSWORD]]", self.mongodb_password)


@lru_cache
def get_settings() -> Settings:
    """Instance unique des settings (chargée au premier appel)."""
    settings = Settings()
    print("--- Settings loaded ---")
    return settings
