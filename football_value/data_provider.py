"""
Football Data Provider

Wraps API-Football with caching and provides the data the estimator and
the settlement grader need:
- Venue-specific team form samples (goals, corners, cards)
- Season aggregates (failed to score, clean sheets)
- Referee card averages
- Head-to-head meetings
- Final results with match statistics
"""

import logging
import time
from datetime import date
from typing import Dict, List, Optional, Tuple, Any

from .api_football import ApiFootballTransport
from .estimator import (
    FixtureContext,
    HeadToHeadRecord,
    RefereeStats,
    SeasonAggregate,
    TeamFormSample,
)
from .estimator.base import HOME, AWAY
from .errors import FeedUnavailableError
from .grading import FinalResult
from .text import normalize_text

logger = logging.getLogger(__name__)


STAT_CORNERS = 'Corner Kicks'
STAT_YELLOW = 'Yellow Cards'
STAT_RED = 'Red Cards'


def _stat_value(statistics: List[Dict], stat_type: str) -> Optional[int]:
    """Integer statistic from an API-Football statistics list; None when absent."""
    for stat in statistics:
        if stat.get('type') == stat_type:
            value = stat.get('value')
            if value is None:
                return None
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
    return None


def _halftime_score(entry: Dict) -> Tuple[Optional[int], Optional[int]]:
    """Half-time (home, away) goals; (None, None) when the feed has no half-time score."""
    halftime = (entry.get('score') or {}).get('halftime') or {}
    if halftime.get('home') is None or halftime.get('away') is None:
        return None, None
    return halftime['home'], halftime['away']


def _halftime_goals(entry: Dict) -> Optional[int]:
    """Goals by both sides at half time; None when the feed has no half-time score."""
    home, away = _halftime_score(entry)
    if home is None:
        return None
    return home + away


class FootballDataProvider:
    """
    Data provider for the football value engine.

    Provides:
    - Fixtures for a date
    - FixtureContext assembly (samples, season, referee, h2h)
    - Final results with corners and cards for settlement
    """

    FORM_WINDOW = 40          # recent fixtures scanned per team
    SAMPLES_PER_VENUE = 10    # venue matches kept per team
    H2H_LIMIT = 10
    REFEREE_WINDOW = 10       # referee matches averaged

    # Cache TTLs (seconds)
    CACHE_TTL = {
        'fixtures': 900,
        'team_fixtures': 3600,
        'statistics': 86400,
        'team_season': 3600,
        'h2h': 86400,
        'referee': 86400,
    }

    def __init__(self, transport: Optional[ApiFootballTransport] = None):
        self._transport = transport
        self._cache: Dict[str, Any] = {}
        self._cache_times: Dict[str, float] = {}

    @property
    def transport(self) -> ApiFootballTransport:
        """Lazy load the HTTP transport."""
        if self._transport is None:
            self._transport = ApiFootballTransport()
        return self._transport

    def _get_cached(self, key: str, ttl_type: str) -> Optional[Any]:
        """Get cached value if not expired."""
        if key in self._cache:
            age = time.time() - self._cache_times.get(key, 0)
            if age < self.CACHE_TTL.get(ttl_type, 3600):
                return self._cache[key]
        return None

    def _set_cached(self, key: str, value: Any):
        self._cache[key] = value
        self._cache_times[key] = time.time()

    def _fetch(self, ttl_type: str, path: str, **params) -> List[Any]:
        key = f"{path}?{sorted(params.items())}"
        cached = self._get_cached(key, ttl_type)
        if cached is not None:
            return cached
        data = self.transport.get(path, params)
        self._set_cached(key, data)
        return data

    # =========================================================================
    # FIXTURES
    # =========================================================================

    def get_fixtures(self, fixture_date: date, league_ids: Optional[List[int]] = None) -> List[Dict]:
        """
        Fixtures scheduled on a date.

        Returns:
            List of API-Football fixture entries
        """
        fixtures = self._fetch('fixtures', 'fixtures', date=fixture_date.isoformat())
        if league_ids:
            fixtures = [f for f in fixtures if f.get('league', {}).get('id') in league_ids]
        logger.info(f"Found {len(fixtures)} fixtures for {fixture_date}")
        return fixtures

    def get_fixture_statistics(self, fixture_id: int) -> Dict[int, List[Dict]]:
        """Statistics per team id for a fixture (empty when the feed has none)."""
        entries = self._fetch('statistics', 'fixtures/statistics', fixture=fixture_id)
        return {
            entry.get('team', {}).get('id'): entry.get('statistics') or []
            for entry in entries
        }

    def get_fixture_result(self, fixture_id: int) -> Optional[FinalResult]:
        """
        Final result of a fixture with corners and cards when available.

        Returns:
            FinalResult, or None if the fixture is unknown

        Raises:
            FeedUnavailableError: Upstream lookup failed
        """
        entries = self.transport.get('fixtures', {'id': fixture_id})
        if not entries:
            logger.warning(f"Fixture {fixture_id} not found")
            return None

        entry = entries[0]
        status = entry.get('fixture', {}).get('status', {}).get('short', '')
        teams = entry.get('teams', {})
        goals = entry.get('goals', {})
        home_id = teams.get('home', {}).get('id')
        away_id = teams.get('away', {}).get('id')

        stats: Dict[int, List[Dict]] = {}
        if status in ('FT', 'AET', 'PEN'):
            try:
                stats = self.get_fixture_statistics(fixture_id)
            except FeedUnavailableError as e:
                logger.warning(f"Statistics unavailable for fixture {fixture_id}: {e}")

        home_stats = stats.get(home_id, [])
        away_stats = stats.get(away_id, [])
        home_ht, away_ht = _halftime_score(entry)

        return FinalResult(
            fixture_id=fixture_id,
            status=status,
            home_team=teams.get('home', {}).get('name', ''),
            away_team=teams.get('away', {}).get('name', ''),
            home_goals=goals.get('home'),
            away_goals=goals.get('away'),
            home_corners=_stat_value(home_stats, STAT_CORNERS),
            away_corners=_stat_value(away_stats, STAT_CORNERS),
            # Yellow cards only, the same count the card model prices
            home_cards=_stat_value(home_stats, STAT_YELLOW),
            away_cards=_stat_value(away_stats, STAT_YELLOW),
            home_ht_goals=home_ht,
            away_ht_goals=away_ht,
        )

    # =========================================================================
    # TEAM FORM
    # =========================================================================

    def get_team_samples(
        self,
        team_id: int,
        venue: str,
        limit: int = SAMPLES_PER_VENUE,
        with_statistics: bool = True,
    ) -> List[TeamFormSample]:
        """
        Recent finished matches of a team at one venue, newest first.

        Args:
            team_id: API-Football team id
            venue: 'home' or 'away'
            limit: Maximum samples returned
            with_statistics: Fetch corners/cards per match

        Returns:
            List of TeamFormSample (corners/cards None when unavailable)
        """
        fixtures = self._fetch('team_fixtures', 'fixtures', team=team_id, last=self.FORM_WINDOW)
        samples = []

        for entry in fixtures:
            if len(samples) >= limit:
                break

            status = entry.get('fixture', {}).get('status', {}).get('short', '')
            if status not in ('FT', 'AET', 'PEN'):
                continue

            teams = entry.get('teams', {})
            if teams.get(venue, {}).get('id') != team_id:
                continue

            goals = entry.get('goals', {})
            other = AWAY if venue == HOME else HOME
            if goals.get(venue) is None or goals.get(other) is None:
                continue

            fixture_id = entry.get('fixture', {}).get('id')
            corners = yellow = red = None
            if with_statistics:
                try:
                    team_stats = self.get_fixture_statistics(fixture_id).get(team_id, [])
                    corners = _stat_value(team_stats, STAT_CORNERS)
                    yellow = _stat_value(team_stats, STAT_YELLOW)
                    red = _stat_value(team_stats, STAT_RED)
                except FeedUnavailableError as e:
                    logger.debug(f"No statistics for fixture {fixture_id}: {e}")

            samples.append(TeamFormSample(
                fixture_id=fixture_id,
                team_id=team_id,
                venue=venue,
                goals_scored=goals[venue],
                goals_conceded=goals[other],
                corners=corners,
                yellow_cards=yellow,
                red_cards=red,
                first_half_goals=_halftime_goals(entry),
                played_at=entry.get('fixture', {}).get('date', ''),
            ))

        logger.debug(f"Team {team_id}: {len(samples)} {venue} samples")
        return samples

    def get_season_aggregate(self, team_id: int, league_id: int, season: int) -> SeasonAggregate:
        """Games played, failed-to-score and clean-sheet counts for a season."""
        data = self._fetch('team_season', 'teams/statistics', team=team_id, league=league_id, season=season)
        # teams/statistics answers with an object, not a list
        stats = data if isinstance(data, dict) else (data[0] if data else {})
        if not stats:
            return SeasonAggregate()

        return SeasonAggregate(
            games_played=stats.get('fixtures', {}).get('played', {}).get('total') or 0,
            failed_to_score=stats.get('failed_to_score', {}).get('total'),
            clean_sheets=stats.get('clean_sheet', {}).get('total'),
        )

    # =========================================================================
    # REFEREE / H2H
    # =========================================================================

    def get_referee_stats(self, name: str, league_id: int, season: int) -> Optional[RefereeStats]:
        """
        Card averages over the referee's recent league matches.

        Returns:
            RefereeStats; avg_yellow_cards is None when no match had card data
        """
        if not name:
            return None

        target = self._referee_key(name)
        fixtures = self._fetch('referee', 'fixtures', league=league_id, season=season, status='FT')
        refereed = [
            f for f in fixtures
            if self._referee_key(f.get('fixture', {}).get('referee') or '') == target
        ][-self.REFEREE_WINDOW:]

        yellows, reds = [], []
        for entry in refereed:
            fixture_id = entry.get('fixture', {}).get('id')
            try:
                stats = self.get_fixture_statistics(fixture_id)
            except FeedUnavailableError as e:
                logger.debug(f"No statistics for fixture {fixture_id}: {e}")
                continue
            per_team = [_stat_value(s, STAT_YELLOW) for s in stats.values()]
            if len(per_team) == 2 and None not in per_team:
                yellows.append(sum(per_team))
                reds.append(sum(_stat_value(s, STAT_RED) or 0 for s in stats.values()))

        return RefereeStats(
            name=name,
            games=len(yellows),
            avg_yellow_cards=sum(yellows) / len(yellows) if yellows else None,
            avg_red_cards=sum(reds) / len(reds) if reds else None,
        )

    @staticmethod
    def _referee_key(name: str) -> str:
        # Feed appends nationality: 'M. Oliver, England'
        return normalize_text(name.split(',')[0])

    def get_head_to_head(self, home_team_id: int, away_team_id: int) -> List[HeadToHeadRecord]:
        """Recent finished meetings, goals seen from the current home team."""
        entries = self._fetch(
            'h2h', 'fixtures/headtohead',
            h2h=f"{home_team_id}-{away_team_id}", last=self.H2H_LIMIT,
        )
        records = []
        for entry in entries:
            goals = entry.get('goals', {})
            if goals.get('home') is None or goals.get('away') is None:
                continue
            was_home = entry.get('teams', {}).get('home', {}).get('id') == home_team_id
            records.append(HeadToHeadRecord(
                home_goals=goals['home'] if was_home else goals['away'],
                away_goals=goals['away'] if was_home else goals['home'],
                played_at=entry.get('fixture', {}).get('date', ''),
            ))

        records.sort(key=lambda r: r.played_at, reverse=True)
        return records[:self.H2H_LIMIT]

    # =========================================================================
    # CONTEXT ASSEMBLY
    # =========================================================================

    def build_context(self, fixture: Dict) -> FixtureContext:
        """
        Assemble the estimator input for an API-Football fixture entry.

        Raises:
            FeedUnavailableError: A required lookup failed
        """
        info = fixture.get('fixture', {})
        league = fixture.get('league', {})
        teams = fixture.get('teams', {})
        home = teams.get('home', {})
        away = teams.get('away', {})
        league_id = league.get('id')
        season = league.get('season')

        referee = None
        if info.get('referee'):
            try:
                referee = self.get_referee_stats(info['referee'], league_id, season)
            except FeedUnavailableError as e:
                logger.warning(f"Referee lookup failed for fixture {info.get('id')}: {e}")

        return FixtureContext(
            fixture_id=info.get('id'),
            home_team=home.get('name', ''),
            away_team=away.get('name', ''),
            home_team_id=home.get('id', 0),
            away_team_id=away.get('id', 0),
            home_samples=self.get_team_samples(home.get('id'), HOME),
            away_samples=self.get_team_samples(away.get('id'), AWAY),
            home_season=self.get_season_aggregate(home.get('id'), league_id, season),
            away_season=self.get_season_aggregate(away.get('id'), league_id, season),
            referee=referee,
            h2h=self.get_head_to_head(home.get('id'), away.get('id')),
            kickoff=info.get('date', ''),
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_provider: Optional[FootballDataProvider] = None


def get_data_provider() -> FootballDataProvider:
    """Get singleton data provider instance."""
    global _provider
    if _provider is None:
        _provider = FootballDataProvider()
    return _provider
