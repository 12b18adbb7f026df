"""
Football Odds Client

Fetches pre-match odds for fixtures from API-Football /odds and flattens
them into raw market listings for the market normalizer:

    [{'name': 'Goals Over/Under', 'bookmaker': 'Bet365',
      'values': [{'value': 'Over 2.5', 'odd': '1.85'}, ...]}, ...]

Responses are cached on disk (1 hour) to spare API quota across runs.
"""

import logging
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Any

from .api_football import ApiFootballTransport
from .errors import FeedUnavailableError
from .market_normalizer import PriceQuote, normalize_quotes

logger = logging.getLogger(__name__)


class FootballOddsClient:
    """
    Client for fixture odds.

    Features:
    - All bookmakers and bet types for a fixture
    - Response caching on disk
    - Normalized best-price lookup per canonical market
    """

    # Cache directory
    CACHE_DIR = Path(__file__).parent.parent / "data" / "odds_cache"
    CACHE_HOURS = 1

    def __init__(
        self,
        transport: Optional[ApiFootballTransport] = None,
        cache_dir: Optional[Path] = None,
    ):
        self._transport = transport
        self.cache_dir = Path(cache_dir) if cache_dir else self.CACHE_DIR
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    @property
    def transport(self) -> ApiFootballTransport:
        """Lazy load the HTTP transport."""
        if self._transport is None:
            self._transport = ApiFootballTransport()
        return self._transport

    def _get_cache_path(self, cache_key: str) -> Path:
        return self.cache_dir / f"{cache_key}.json"

    def _get_cached(self, cache_key: str, max_age_hours: int = CACHE_HOURS) -> Optional[Any]:
        """Get cached response if not expired."""
        cache_path = self._get_cache_path(cache_key)

        if not cache_path.exists():
            return None

        mtime = datetime.fromtimestamp(cache_path.stat().st_mtime)
        if datetime.now() - mtime > timedelta(hours=max_age_hours):
            return None

        try:
            with open(cache_path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Cache read error: {e}")
            return None

    def _set_cached(self, cache_key: str, data: Any):
        cache_path = self._get_cache_path(cache_key)
        try:
            with open(cache_path, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning(f"Cache write error: {e}")

    # =========================================================================
    # API METHODS
    # =========================================================================

    def get_raw_markets(self, fixture_id: int) -> List[Dict]:
        """
        Raw market listings for a fixture across all bookmakers.

        Returns:
            List of {'name', 'bookmaker', 'values'}; empty when the fixture
            has no odds yet

        Raises:
            FeedUnavailableError: Upstream lookup failed
        """
        cache_key = f"odds_{fixture_id}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        response = self.transport.get('odds', {'fixture': fixture_id})
        markets = self._parse_odds_response(response)

        self._set_cached(cache_key, markets)
        logger.info(f"Fixture {fixture_id}: {len(markets)} raw markets")
        return markets

    def _parse_odds_response(self, response: List[Dict]) -> List[Dict]:
        """Flatten bookmaker -> bets -> values into market listings."""
        markets = []
        for entry in response or []:
            for bookmaker in entry.get('bookmakers', []):
                bk_name = bookmaker.get('name', 'unknown')
                for bet in bookmaker.get('bets', []):
                    markets.append({
                        'name': bet.get('name', ''),
                        'bookmaker': bk_name,
                        'values': [
                            {'value': str(v.get('value', '')), 'odd': v.get('odd')}
                            for v in bet.get('values', [])
                        ],
                    })
        return markets

    def get_quotes(self, fixture_id: int) -> Dict[str, PriceQuote]:
        """
        Best price per canonical market for a fixture.

        An upstream failure yields no quotes (every market then SKIPs).
        """
        try:
            markets = self.get_raw_markets(fixture_id)
        except FeedUnavailableError as e:
            logger.error(f"Error fetching odds for fixture {fixture_id}: {e}")
            return {}
        return normalize_quotes(markets)


# =============================================================================
# CONVENIENCE
# =============================================================================

_client: Optional[FootballOddsClient] = None


def get_odds_client() -> FootballOddsClient:
    """Get singleton odds client instance."""
    global _client
    if _client is None:
        _client = FootballOddsClient()
    return _client
