"""
Provider adapters for Stayfinder.

Concrete geocoding, rental search and detail fetch collaborators.
"""

from .base import DetailFetch, Geocoding, RentalSearch
from .airbnb import AirbnbDetailClient, AirbnbSearchClient
from .locationiq import LocationIqGeocoder

__all__ = [
    'DetailFetch',
    'Geocoding',
    'RentalSearch',
    'AirbnbDetailClient',
    'AirbnbSearchClient',
    'LocationIqGeocoder',
]
