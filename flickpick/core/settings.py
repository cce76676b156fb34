# flickpick/core/settings.py
import json
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

MIN_MOVIE_COUNT = 5
MAX_MOVIE_COUNT = 100
CACHE_FLUSH_EVERY = 10


class Settings(BaseSettings):
    # --- Plex (catalog) ---
    plex_url: str = Field(default="http://localhost:32400", alias="PLEX_URL")
    plex_token: str = Field(default="", alias="PLEX_TOKEN")

    # --- Ratings providers ---
    omdb_api_key: Optional[str] = Field(default=None, alias="OMDB_API_KEY")
    tmdb_api_key: Optional[str] = Field(default=None, alias="TMDB_API_KEY")
    http_timeout: float = Field(default=20.0, alias="HTTP_TIMEOUT")
    enrich_concurrency: int = Field(default=8, alias="ENRICH_CONCURRENCY")

    # --- Ratings cache ---
    # When REDIS_URL is set the cache is persisted to Redis, otherwise to a JSON file.
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    ratings_cache_file: str = Field(default="ratings-cache.json", alias="RATINGS_CACHE_FILE")

    # --- Sessions ---
    session_max_age_hours: float = Field(default=24.0, alias="SESSION_MAX_AGE_HOURS")
    session_sweep_minutes: int = Field(default=60, alias="SESSION_SWEEP_MINUTES")
    default_movie_count: int = Field(default=50, alias="DEFAULT_MOVIE_COUNT")

    # --- HTTP ---
    # comma separated ("http://a,http://b") or a JSON list
    cors_origins: Annotated[List[str], NoDecode] = Field(default=["http://localhost:5173"], alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )


settings = Settings()
