"""
Tests for the API-Football transport, data provider and odds client.

No network: the transport gets a fake session, the clients a fake
transport keyed by endpoint path.
"""

import pytest
import requests

from football_value.api_football import ApiFootballTransport, parse_api_keys
from football_value.data_provider import FootballDataProvider
from football_value.errors import FeedUnavailableError
from football_value.odds_client import FootballOddsClient


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {'errors': [], 'response': []}

    def json(self):
        return self._body


class FakeSession:
    """Answers per API key; records every request."""

    def __init__(self, by_key):
        self.by_key = by_key
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        key = headers['x-apisports-key']
        self.requests.append((url, params, key, timeout))
        answer = self.by_key[key]
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeTransport:
    """Serves canned 'response' payloads by endpoint path."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, path, params=None):
        self.calls.append((path, dict(params or {})))
        route = self.routes.get(path)
        if callable(route):
            return route(params or {})
        if isinstance(route, Exception):
            raise route
        return route or []


def transport(session, keys=('key-a', 'key-b')):
    return ApiFootballTransport(api_keys=list(keys), session=session, min_interval=0)


class TestApiFootballTransport:

    def test_parse_keys(self):
        assert parse_api_keys(' a, b ,,c ') == ['a', 'b', 'c']
        assert parse_api_keys(None) == []

    def test_returns_response_payload(self):
        session = FakeSession({'key-a': FakeResponse(body={'errors': [], 'response': [{'id': 1}]})})
        assert transport(session, keys=['key-a']).get('fixtures', {'id': 1}) == [{'id': 1}]

        url, params, key, timeout = session.requests[0]
        assert url == 'https://v3.football.api-sports.io/fixtures'
        assert timeout == 20

    def test_rotates_on_429(self):
        session = FakeSession({
            'key-a': FakeResponse(status_code=429),
            'key-b': FakeResponse(body={'errors': [], 'response': ['ok']}),
        })
        client = transport(session)

        assert client.get('odds') == ['ok']
        assert [r[2] for r in session.requests] == ['key-a', 'key-b']

        # The working key is tried first next time
        client.get('odds')
        assert session.requests[-1][2] == 'key-b'

    def test_rotates_on_quota_error(self):
        session = FakeSession({
            'key-a': FakeResponse(body={'errors': {'requests': 'You have reached the request limit for the day'}}),
            'key-b': FakeResponse(body={'errors': [], 'response': ['ok']}),
        })
        assert transport(session).get('fixtures') == ['ok']

    def test_all_keys_exhausted(self):
        session = FakeSession({'key-a': FakeResponse(status_code=429), 'key-b': FakeResponse(status_code=429)})
        with pytest.raises(FeedUnavailableError):
            transport(session).get('fixtures')

    def test_other_api_error(self):
        session = FakeSession({'key-a': FakeResponse(body={'errors': {'fixture': 'Invalid fixture id'}})})
        with pytest.raises(FeedUnavailableError):
            transport(session, keys=['key-a']).get('fixtures')

    def test_network_error(self):
        session = FakeSession({'key-a': requests.ConnectionError('reset')})
        with pytest.raises(FeedUnavailableError):
            transport(session, keys=['key-a']).get('fixtures')

    def test_no_keys(self):
        with pytest.raises(FeedUnavailableError):
            ApiFootballTransport(api_keys=[], session=FakeSession({})).get('fixtures')


def fixture_entry(fixture_id, home_id, away_id, home_goals, away_goals, status='FT', date='2025-09-01', referee=None):
    return {
        'fixture': {'id': fixture_id, 'status': {'short': status}, 'date': date, 'referee': referee},
        'league': {'id': 39, 'season': 2025},
        'teams': {'home': {'id': home_id, 'name': f"Team {home_id}"}, 'away': {'id': away_id, 'name': f"Team {away_id}"}},
        'goals': {'home': home_goals, 'away': away_goals},
    }


def statistics(home_id, away_id, home_corners=None, away_corners=None, home_yellow=None, away_yellow=None,
               home_red=None, away_red=None):
    def team(team_id, corners, yellow, red):
        return {'team': {'id': team_id}, 'statistics': [
            {'type': 'Corner Kicks', 'value': corners},
            {'type': 'Yellow Cards', 'value': yellow},
            {'type': 'Red Cards', 'value': red},
        ]}
    return [team(home_id, home_corners, home_yellow, home_red), team(away_id, away_corners, away_yellow, away_red)]


class TestFootballDataProvider:

    def test_fixture_result_with_statistics(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [fixture_entry(10, 1, 2, 2, 1)],
            'fixtures/statistics': statistics(1, 2, 8, 4, 2, 3),
        }))
        result = provider.get_fixture_result(10)

        assert result.is_finished
        assert result.score == '2-1'
        assert (result.home_corners, result.away_corners) == (8, 4)
        assert (result.home_cards, result.away_cards) == (2, 3)

    def test_cards_count_yellow_only(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [fixture_entry(10, 1, 2, 2, 1)],
            'fixtures/statistics': statistics(1, 2, 8, 4, 2, 3, home_red=1, away_red=2),
        }))
        result = provider.get_fixture_result(10)

        assert (result.home_cards, result.away_cards) == (2, 3)

    def test_fixture_result_halftime_score(self):
        entry = fixture_entry(10, 1, 2, 2, 1)
        entry['score'] = {'halftime': {'home': 0, 'away': 1}}
        provider = FootballDataProvider(FakeTransport({'fixtures': [entry], 'fixtures/statistics': []}))
        result = provider.get_fixture_result(10)

        assert (result.home_ht_goals, result.away_ht_goals) == (0, 1)
        assert result.half_goals('home', 2) == 2

    def test_fixture_result_without_halftime_score(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [fixture_entry(10, 1, 2, 2, 1)], 'fixtures/statistics': [],
        }))
        assert provider.get_fixture_result(10).half_goals('home', 1) is None

    def test_missing_statistics_stay_none(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [fixture_entry(10, 1, 2, 2, 1)],
            'fixtures/statistics': FeedUnavailableError('timeout'),
        }))
        result = provider.get_fixture_result(10)

        assert result.home_corners is None
        assert result.home_cards is None

    def test_unknown_fixture(self):
        provider = FootballDataProvider(FakeTransport({'fixtures': []}))
        assert provider.get_fixture_result(99) is None

    def test_team_samples_use_venue(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [
                fixture_entry(1, 5, 6, 3, 0),
                fixture_entry(2, 6, 5, 1, 1),   # away match for team 5
                fixture_entry(3, 5, 7, 0, 2),
                fixture_entry(4, 5, 8, None, None, status='NS'),
            ],
        }))
        samples = provider.get_team_samples(5, 'home', with_statistics=False)

        assert [s.fixture_id for s in samples] == [1, 3]
        assert [(s.goals_scored, s.goals_conceded) for s in samples] == [(3, 0), (0, 2)]
        assert all(s.corners is None for s in samples)

    def test_team_samples_first_half_goals(self):
        entry = fixture_entry(1, 5, 6, 3, 1)
        entry['score'] = {'halftime': {'home': 1, 'away': 1}}
        provider = FootballDataProvider(FakeTransport({'fixtures': [entry, fixture_entry(2, 5, 7, 1, 0)]}))
        samples = provider.get_team_samples(5, 'home', with_statistics=False)

        assert [s.first_half_goals for s in samples] == [2, None]

    def test_head_to_head_from_current_home_side(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures/headtohead': [
                fixture_entry(1, 5, 6, 2, 0, date='2024-01-01'),
                fixture_entry(2, 6, 5, 3, 1, date='2025-01-01'),
            ],
        }))
        records = provider.get_head_to_head(5, 6)

        assert [(r.home_goals, r.away_goals) for r in records] == [(1, 3), (2, 0)]

    def test_referee_averages(self):
        provider = FootballDataProvider(FakeTransport({
            'fixtures': [
                fixture_entry(1, 5, 6, 1, 0, referee='M. Oliver, England'),
                fixture_entry(2, 7, 8, 1, 0, referee='A. Taylor, England'),
                fixture_entry(3, 9, 10, 1, 0, referee='M. Oliver, England'),
            ],
            'fixtures/statistics': lambda params: (
                statistics(5, 6, home_yellow=2, away_yellow=2) if params['fixture'] == 1
                else statistics(9, 10, home_yellow=3, away_yellow=3)
            ),
        }))
        referee = provider.get_referee_stats('M. Oliver', 39, 2025)

        assert referee.games == 2
        assert referee.avg_yellow_cards == pytest.approx(5.0)
        assert referee.has_card_rate

    def test_season_aggregate(self):
        provider = FootballDataProvider(FakeTransport({
            'teams/statistics': {
                'fixtures': {'played': {'total': 10}},
                'failed_to_score': {'total': 2},
                'clean_sheet': {'total': 4},
            },
        }))
        season = provider.get_season_aggregate(5, 39, 2025)

        assert (season.games_played, season.failed_to_score, season.clean_sheets) == (10, 2, 4)

    def test_responses_cached(self):
        fake = FakeTransport({'fixtures': [fixture_entry(1, 5, 6, 1, 0)]})
        provider = FootballDataProvider(fake)

        from datetime import date
        provider.get_fixtures(date(2025, 9, 1))
        provider.get_fixtures(date(2025, 9, 1))
        assert len(fake.calls) == 1


ODDS_RESPONSE = [{
    'fixture': {'id': 10},
    'bookmakers': [
        {'name': 'Bet365', 'bets': [
            {'name': 'Goals Over/Under', 'values': [{'value': 'Over 2.5', 'odd': '1.90'}]},
            {'name': 'Both Teams Score', 'values': [{'value': 'Yes', 'odd': '1.80'}]},
        ]},
        {'name': 'Pinnacle', 'bets': [
            {'name': 'Goals Over/Under', 'values': [{'value': 'Over 2.5', 'odd': '1.97'}]},
        ]},
    ],
}]


class TestFootballOddsClient:

    def test_raw_markets_flattened(self, tmp_path):
        client = FootballOddsClient(FakeTransport({'odds': ODDS_RESPONSE}), cache_dir=tmp_path)
        markets = client.get_raw_markets(10)

        assert len(markets) == 3
        assert markets[0] == {
            'name': 'Goals Over/Under',
            'bookmaker': 'Bet365',
            'values': [{'value': 'Over 2.5', 'odd': '1.90'}],
        }

    def test_quotes_best_price(self, tmp_path):
        client = FootballOddsClient(FakeTransport({'odds': ODDS_RESPONSE}), cache_dir=tmp_path)
        quotes = client.get_quotes(10)

        assert quotes['over_2.5_goals'].decimal_odds == 1.97
        assert quotes['btts_yes'].bookmaker == 'Bet365'

    def test_disk_cache(self, tmp_path):
        fake = FakeTransport({'odds': ODDS_RESPONSE})
        FootballOddsClient(fake, cache_dir=tmp_path).get_raw_markets(10)
        FootballOddsClient(fake, cache_dir=tmp_path).get_raw_markets(10)

        assert len(fake.calls) == 1
        assert (tmp_path / 'odds_10.json').exists()

    def test_feed_failure_yields_no_quotes(self, tmp_path):
        client = FootballOddsClient(FakeTransport({'odds': FeedUnavailableError('down')}), cache_dir=tmp_path)
        assert client.get_quotes(10) == {}
