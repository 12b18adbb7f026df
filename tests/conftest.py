"""Shared builders and fakes for the football value tests."""

import pytest

from football_value.estimator import (
    FixtureContext,
    HeadToHeadRecord,
    MarketProbabilityEstimate,
    RefereeStats,
    SeasonAggregate,
    TeamFormSample,
)
from football_value.thresholds import MarketThreshold, ThresholdConfig


def make_samples(team_id, venue, scored, conceded, corners=None, yellow=None, start_id=1000, first_half=None):
    """One TeamFormSample per entry of the parallel lists."""
    samples = []
    for i, (gs, gc) in enumerate(zip(scored, conceded)):
        samples.append(TeamFormSample(
            fixture_id=start_id + i,
            team_id=team_id,
            venue=venue,
            goals_scored=gs,
            goals_conceded=gc,
            corners=corners[i] if corners else None,
            yellow_cards=yellow[i] if yellow else None,
            first_half_goals=first_half[i] if first_half else None,
        ))
    return samples


def make_context(
    fixture_id=1,
    home_scored=(2, 2, 2, 2, 2),
    home_conceded=(1, 1, 1, 1, 1),
    away_scored=(1, 1, 1, 1, 1),
    away_conceded=(1, 1, 1, 1, 1),
    home_corners=None,
    away_corners=None,
    home_yellow=None,
    away_yellow=None,
    home_first_half=None,
    away_first_half=None,
    referee=None,
    h2h=None,
    home_season=None,
    away_season=None,
):
    return FixtureContext(
        fixture_id=fixture_id,
        home_team='Brighton',
        away_team='Burnley',
        home_team_id=51,
        away_team_id=44,
        home_samples=make_samples(
            51, 'home', home_scored, home_conceded, home_corners, home_yellow, first_half=home_first_half),
        away_samples=make_samples(
            44, 'away', away_scored, away_conceded, away_corners, away_yellow, 2000, away_first_half),
        home_season=home_season or SeasonAggregate(),
        away_season=away_season or SeasonAggregate(),
        referee=referee,
        h2h=list(h2h or []),
    )


def make_estimate(market_key, p_model, uncertainty=None, selection=None):
    return MarketProbabilityEstimate(
        market_key=market_key,
        selection=selection or market_key,
        p_model=p_model,
        uncertainty=uncertainty,
        model_name='test',
    )


@pytest.fixture
def context_factory():
    return make_context


@pytest.fixture
def referee():
    return RefereeStats(name='M. Oliver', games=10, avg_yellow_cards=4.0, avg_red_cards=0.1)


@pytest.fixture
def h2h_records():
    """5 home wins, 3 draws, 2 away wins, newest first."""
    scores = [(2, 0), (1, 0), (3, 1), (2, 1), (1, 0), (1, 1), (0, 0), (2, 2), (0, 1), (1, 2)]
    return [HeadToHeadRecord(h, a) for h, a in scores]


@pytest.fixture
def thresholds():
    """Flat thresholds so judge tests do not depend on the bundled table."""
    return ThresholdConfig(
        version='test',
        default=MarketThreshold(min_edge=0.08, min_confidence=55),
        markets={},
    )


# ---------------------------------------------------------------------------
# Supabase fake
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records a chained Supabase query and answers from the owning FakeClient."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.op = 'select'
        self.payload = None
        self.filters = []
        self.kwargs = {}

    def select(self, *args, **kwargs):
        self.op = 'select'
        return self

    def insert(self, payload):
        self.op, self.payload = 'insert', payload
        return self

    def upsert(self, payload, **kwargs):
        self.op, self.payload, self.kwargs = 'upsert', payload, kwargs
        return self

    def update(self, payload):
        self.op, self.payload = 'update', payload
        return self

    def eq(self, column, value):
        self.filters.append(('eq', column, value))
        return self

    def in_(self, column, values):
        self.filters.append(('in', column, list(values)))
        return self

    def limit(self, n):
        return self

    def order(self, *args, **kwargs):
        return self

    def execute(self):
        self.client.calls.append(self)
        rows = self.client.rows.setdefault(self.table, [])
        if self.op == 'insert':
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            rows.extend(payload)
            return FakeResponse(payload)
        if self.op == 'upsert':
            key = self.kwargs.get('on_conflict')
            rows[:] = [r for r in rows if r.get(key) != self.payload.get(key)]
            rows.append(self.payload)
            return FakeResponse([self.payload])
        if self.op == 'update':
            return FakeResponse([])
        return FakeResponse([r for r in rows if self._matches(r)])

    def _matches(self, row):
        for kind, column, value in self.filters:
            if kind == 'eq' and row.get(column) != value:
                return False
            if kind == 'in' and row.get(column) not in value:
                return False
        return True


class FakeSupabase:
    def __init__(self, rows=None):
        self.rows = rows or {}
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
