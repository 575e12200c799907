"""Reverse geocoding using OSM Nominatim API."""

import time
import logging
import requests
from typing import Optional, Dict, Any

from .config import (
    NOMINATIM_API_URL,
    NOMINATIM_RATE_LIMIT_SECONDS,
    NOMINATIM_TIMEOUT,
    NOMINATIM_LANGUAGE,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


class ReverseGeocoder:
    """Fetches raw Nominatim address records for coordinates."""

    def __init__(self, api_url: str = NOMINATIM_API_URL, language: str = NOMINATIM_LANGUAGE):
        self.api_url = api_url
        self.language = language
        self.last_request_time = 0.0

    def reverse_geocode(self, lat: float, lon: float) -> Optional[Dict[str, Any]]:
        """
        Reverse geocode coordinates to a raw Nominatim record.

        Args:
            lat: Latitude coordinate
            lon: Longitude coordinate

        Returns:
            Decoded JSON object (with an "address" mapping), or None on error

        Note:
            Respects Nominatim rate limiting (max 1 request per second).
            Returns None on HTTP, network and JSON decoding errors.
        """
        # Rate limiting
        now = time.time()
        time_since_last = now - self.last_request_time
        if time_since_last < NOMINATIM_RATE_LIMIT_SECONDS:
            sleep_time = NOMINATIM_RATE_LIMIT_SECONDS - time_since_last
            logger.debug(f"Geocoding rate limiting: sleeping {sleep_time:.1f}s")
            time.sleep(sleep_time)

        try:
            params = {
                "lat": lat,
                "lon": lon,
                "format": "json",
                "addressdetails": 1,
                "accept-language": self.language,
            }

            logger.debug(f"Reverse geocoding: ({lat}, {lon})")

            response = requests.get(
                self.api_url,
                params=params,
                timeout=NOMINATIM_TIMEOUT,
                headers={"User-Agent": USER_AGENT},  # Required by Nominatim
            )

            self.last_request_time = time.time()

            if response.status_code != 200:
                logger.debug(f"Geocoding API error {response.status_code}: {response.text[:100]}")
                return None

            data = response.json()
            if not isinstance(data, dict) or "error" in data:
                logger.debug(f"Geocoding returned no address for ({lat}, {lon})")
                return None
            return data

        except requests.exceptions.Timeout:
            logger.debug("Geocoding API timeout")
            return None
        except requests.exceptions.ConnectionError:
            logger.debug("Geocoding API connection error")
            return None
        except ValueError as e:
            logger.debug(f"Invalid JSON from geocoding API: {e}")
            return None
        except requests.exceptions.RequestException as e:
            logger.debug(f"Unexpected error in geocoding: {e}")
            return None
