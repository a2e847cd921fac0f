"""Configuration settings for Stayfinder."""

from dataclasses import dataclass
from typing import Optional
import logging
import math
import os

from stayfinder.geo.bbox import MeterBoxSpec, ZoomViewportSpec


logger = logging.getLogger(__name__)

DEFAULT_JITTER_FACTOR = 0.2


@dataclass
class ViewportTierConfig:
    """Tier ladder used to turn a geocoded point into a search viewport."""
    primary_width_meters: float = 350
    primary_height_meters: float = 250
    safety_meters: float = 10
    expansion_factor: float = 1.5
    search_zoom: int = 17
    fallback_zoom: int = 17
    fallback_width_px: int = 400
    fallback_height_px: int = 300
    refinement_path: str = "/homes"
    search_by_map: bool = True

    def primary_spec(self) -> MeterBoxSpec:
        return MeterBoxSpec(
            width_meters=self.primary_width_meters,
            height_meters=self.primary_height_meters,
            safety_meters=self.safety_meters,
        )

    def expanded_spec(self) -> MeterBoxSpec:
        return self.primary_spec().scaled(self.expansion_factor)

    def fallback_spec(self) -> ZoomViewportSpec:
        return ZoomViewportSpec(
            zoom=self.fallback_zoom,
            width_px=self.fallback_width_px,
            height_px=self.fallback_height_px,
            safety_meters=self.safety_meters,
        )


@dataclass
class BatchFetchConfig:
    """Concurrency and retry configuration for detail fetches."""
    max_concurrency: int = 3
    max_retries: int = 4
    base_delay_ms: int = 500
    jitter_factor: float = DEFAULT_JITTER_FACTOR

    def __post_init__(self):
        """Reject values the worker pool and backoff cannot run with."""
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {self.max_concurrency}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries cannot be negative, got {self.max_retries}")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError(f"jitter_factor must be between 0 and 1, got {self.jitter_factor}")


@dataclass
class ProviderConfig:
    """Endpoints and credentials for the upstream providers."""
    locationiq_url: str = "https://us1.locationiq.com/v1/search"
    locationiq_api_key: Optional[str] = None
    airbnb_search_url: str = "https://www.airbnb.com/api/v3/StaysSearch"
    airbnb_detail_url: str = "https://www.airbnb.com/api/v3/StaysPdpSections"
    airbnb_api_key: Optional[str] = None
    default_timeout_ms: int = 15000


@dataclass
class StayfinderSettings:
    """Main Stayfinder configuration settings."""
    viewport: ViewportTierConfig = None
    batch_fetch: BatchFetchConfig = None
    providers: ProviderConfig = None

    def __post_init__(self):
        """Initialize nested configs if not provided."""
        if self.viewport is None:
            self.viewport = ViewportTierConfig()
        if self.batch_fetch is None:
            self.batch_fetch = BatchFetchConfig()
        if self.providers is None:
            self.providers = ProviderConfig()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_jitter_factor(name: str = "JITTER_FACTOR") -> float:
    """Read the backoff jitter factor, falling back to the default when unusable."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return DEFAULT_JITTER_FACTOR
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if math.isnan(value) or value < 0 or value > 1:
        logger.warning(f"{name} must be between 0 and 1, using default {DEFAULT_JITTER_FACTOR}")
        return DEFAULT_JITTER_FACTOR
    return value


# Default configuration, overridable through the environment
STAYFINDER_CONFIG = {
    "viewport": {
        "primary_width_meters": float(os.getenv("PRIMARY_WIDTH_METERS", "350")),
        "primary_height_meters": float(os.getenv("PRIMARY_HEIGHT_METERS", "250")),
        "safety_meters": float(os.getenv("SAFETY_METERS", "10")),
        "expansion_factor": float(os.getenv("EXPANSION_FACTOR", "1.5")),
        "search_zoom": int(os.getenv("SEARCH_ZOOM", "17")),
        "fallback_zoom": int(os.getenv("FALLBACK_ZOOM", "17")),
        "fallback_width_px": int(os.getenv("FALLBACK_WIDTH_PX", "400")),
        "fallback_height_px": int(os.getenv("FALLBACK_HEIGHT_PX", "300")),
        "refinement_path": os.getenv("REFINEMENT_PATH", "/homes"),
        "search_by_map": _env_bool("SEARCH_BY_MAP", "true"),
    },
    "batch_fetch": {
        "max_concurrency": int(os.getenv("MAX_CONCURRENCY", "3")),
        "max_retries": int(os.getenv("MAX_RETRIES", "4")),
        "base_delay_ms": int(os.getenv("BASE_DELAY_MS", "500")),
        "jitter_factor": _env_jitter_factor(),
    },
    "providers": {
        "locationiq_url": os.getenv("LOCATIONIQ_URL", "https://us1.locationiq.com/v1/search"),
        "locationiq_api_key": os.getenv("LOCATIONIQ_API_KEY"),
        "airbnb_search_url": os.getenv("AIRBNB_SEARCH_URL", "https://www.airbnb.com/api/v3/StaysSearch"),
        "airbnb_detail_url": os.getenv("AIRBNB_DETAIL_URL", "https://www.airbnb.com/api/v3/StaysPdpSections"),
        "airbnb_api_key": os.getenv("AIRBNB_API_KEY"),
        "default_timeout_ms": int(os.getenv("DEFAULT_TIMEOUT_MS", "15000")),
    },
}


def get_settings() -> StayfinderSettings:
    """Get Stayfinder settings from configuration."""
    return StayfinderSettings(
        viewport=ViewportTierConfig(**STAYFINDER_CONFIG["viewport"]),
        batch_fetch=BatchFetchConfig(**STAYFINDER_CONFIG["batch_fetch"]),
        providers=ProviderConfig(**STAYFINDER_CONFIG["providers"]),
    )
