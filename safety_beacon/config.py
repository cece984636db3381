"""Client configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the Safety Beacon client core."""
    model_config = SettingsConfigDict(env_prefix="BEACON_", extra="ignore")

    record_store: str = "parse"  # options: parse, memory
    parse_server_url: str = "http://localhost:1337/parse"
    parse_application_id: str = "safety-beacon"
    parse_rest_api_key: str | None = None
    handle_cache_redis_url: str | None = None
    handle_cache_ttl_seconds: int = 60 * 60 * 24 * 30
    geocoder: str = "nominatim"  # options: nominatim
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "safety-beacon/0.1"
    geocode_cache_ttl_seconds: int = 3600
    request_timeout_seconds: float = 10.0
    background_workers: int = 4
    bookmarks_collection: str = "Bookmarks"

    @field_validator("parse_server_url", "geocoder_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
