"""Factory helpers for choosing a geocoding provider at startup."""

from __future__ import annotations

from functools import partial

from safety_beacon import config
from safety_beacon.geocoding.base import CallableGeocodingService, GeocodingService
from safety_beacon.geocoding.nominatim_client import forward_geocode, reverse_geocode
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="geocoding/factory")


DEFAULT_GEOCODER_NAME = "nominatim"


def build_geocoder(settings: config.Settings | None = None) -> GeocodingService:
    """Instantiate the configured geocoding provider."""
    settings = settings or config.settings
    source = (settings.geocoder or DEFAULT_GEOCODER_NAME).lower()

    if source == "nominatim":
        if not settings.geocoder_base_url:
            raise ValueError("geocoder_base_url must be set for the Nominatim geocoder")
        logger.info("Using Nominatim geocoder", extra={"base_url": mask_url(settings.geocoder_base_url)})
        options = {
            "base_url": settings.geocoder_base_url,
            "user_agent": settings.geocoder_user_agent,
            "timeout": settings.request_timeout_seconds,
        }
        return CallableGeocodingService(
            forward=partial(forward_geocode, **options),
            reverse=partial(reverse_geocode, **options),
        )

    raise ValueError(f"Unknown geocoder '{source}'")
