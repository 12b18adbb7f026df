"""
API-Football transport

Shared HTTP access to API-Football v3 for the data and odds clients:
- API key rotation over API_FOOTBALL_KEYS (comma-separated)
- Rotation on HTTP 429 and on quota errors reported in the body
- Bounded timeouts and simple rate limiting

Every failure surfaces as FeedUnavailableError so callers can defer
the affected fixture instead of failing the batch.
"""

import logging
import os
import threading
import time
from typing import Dict, List, Optional, Any

import requests

from .errors import FeedUnavailableError

logger = logging.getLogger(__name__)

API_BASE = 'https://v3.football.api-sports.io'


def parse_api_keys(raw: Optional[str]) -> List[str]:
    """Split a comma-separated key list, dropping blanks."""
    if not raw:
        return []
    return [k.strip() for k in raw.split(',') if k.strip()]


class RateLimiter:
    """Minimum spacing between requests, shared across threads."""

    def __init__(self, min_interval: float = 0.25):
        self.min_interval = min_interval
        self.last_call = 0.0
        self._lock = threading.Lock()

    def wait(self):
        with self._lock:
            elapsed = time.time() - self.last_call
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self.last_call = time.time()


class ApiFootballTransport:
    """
    GET requests against API-Football with key rotation.

    Keys are tried in order starting from the last key that worked. A
    key answering 429 or reporting an exhausted quota is skipped for the
    rest of the call; any other HTTP error fails the call immediately.
    """

    TIMEOUT = 20  # seconds
    QUOTA_MARKERS = ('limit', 'suspended', 'quota')

    def __init__(
        self,
        api_keys: Optional[List[str]] = None,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE,
        min_interval: float = 0.25,
    ):
        self.api_keys = api_keys if api_keys is not None else parse_api_keys(os.getenv('API_FOOTBALL_KEYS'))
        if not self.api_keys:
            logger.warning("API_FOOTBALL_KEYS not set - API calls will fail")

        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/')
        self.rate_limiter = RateLimiter(min_interval=min_interval)
        self._key_index = 0

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """
        Fetch an endpoint and return its 'response' payload.

        Args:
            path: Endpoint path ('fixtures', 'fixtures/statistics')
            params: Query parameters

        Returns:
            The 'response' list from the API body

        Raises:
            FeedUnavailableError: All keys exhausted or the request failed
        """
        if not self.api_keys:
            raise FeedUnavailableError("No API-Football keys configured")

        url = f"{self.base_url}/{path.lstrip('/')}"
        start = self._key_index

        for offset in range(len(self.api_keys)):
            idx = (start + offset) % len(self.api_keys)
            key = self.api_keys[idx]

            self.rate_limiter.wait()
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers={'x-apisports-key': key},
                    timeout=self.TIMEOUT,
                )
            except requests.RequestException as e:
                raise FeedUnavailableError(f"Request to {path} failed: {e}") from e

            if response.status_code == 429:
                logger.warning(f"Key {key[:4]}... rate limited (429) - rotating")
                continue

            if response.status_code != 200:
                raise FeedUnavailableError(f"HTTP {response.status_code} from {path}")

            try:
                data = response.json()
            except ValueError as e:
                raise FeedUnavailableError(f"Invalid JSON from {path}") from e

            errors = data.get('errors')
            if errors:
                error_text = str(errors).lower()
                if any(marker in error_text for marker in self.QUOTA_MARKERS):
                    logger.warning(f"Key {key[:4]}... exhausted - rotating")
                    continue
                raise FeedUnavailableError(f"API error from {path}: {errors}")

            self._key_index = idx
            return data.get('response') or []

        raise FeedUnavailableError(f"All {len(self.api_keys)} API keys exhausted for {path}")
