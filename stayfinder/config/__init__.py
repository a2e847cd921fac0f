"""Configuration module for Stayfinder."""

from .settings import (
    STAYFINDER_CONFIG,
    StayfinderSettings,
    ViewportTierConfig,
    BatchFetchConfig,
    ProviderConfig,
    get_settings,
)

__all__ = [
    'STAYFINDER_CONFIG',
    'StayfinderSettings',
    'ViewportTierConfig',
    'BatchFetchConfig',
    'ProviderConfig',
    'get_settings',
]
