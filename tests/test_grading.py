"""
Tests for settlement grading.

Includes regressions for selections that were once graded against the
wrong statistic (team totals graded on match goals, corners on goals).
"""

import re

import pytest

from football_value.estimator import ALL_MODELS, HeadToHeadRecord, RefereeStats
from football_value.grading import (
    INDETERMINATE,
    LOST,
    WON,
    FinalResult,
    grade,
    significant_tokens,
)
from football_value.metrics_builder import MetricsBuilder

from conftest import make_context


def result(home_goals, away_goals, home='Brighton', away='Burnley', status='FT', **stats):
    return FinalResult(
        fixture_id=1,
        status=status,
        home_team=home,
        away_team=away,
        home_goals=home_goals,
        away_goals=away_goals,
        **stats,
    )


class TestOverUnder:
    """Goals, corners and cards lines."""

    def test_total_goals(self):
        graded = grade('Goals Over/Under', 'Over 2.5', result(2, 1))
        assert graded.outcome == WON
        assert graded.matcher == 'over_under'
        assert graded.actual_value == 3

    def test_home_team_total_by_keyword(self):
        graded = grade('Team Total', 'Home Under 1.5', result(1, 0))
        assert graded.outcome == WON
        assert graded.actual_value == 1

    def test_team_total_by_name_in_spanish(self):
        graded = grade(
            'Total de Goles del Equipo Local',
            'Baniyas Menos de 1.5 Goles',
            result(1, 0, home='Baniyas SC', away='Al Nasr'),
        )
        assert graded.outcome == WON
        assert graded.detail == 'Home goals: 1'

    def test_away_team_by_name(self):
        graded = grade('Total Goals', 'Al Nasr Over 0.5', result(1, 0, home='Baniyas SC', away='Al Nasr'))
        assert graded.outcome == LOST
        assert graded.actual_value == 0

    def test_team_corners(self):
        graded = grade('Corners', 'Brighton Más de 6.5 Corners', result(2, 1, home_corners=8, away_corners=4))
        assert graded.outcome == WON
        assert graded.actual_value == 8

    def test_total_corners(self):
        graded = grade('Corners Over Under', 'Under 10.5', result(0, 0, home_corners=8, away_corners=4))
        assert graded.outcome == LOST
        assert graded.actual_value == 12

    def test_missing_corners_indeterminate(self):
        graded = grade('Corners', 'Home Over 6.5', result(2, 1))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'over_under'

    def test_partial_corner_data_indeterminate(self):
        graded = grade('Corners', 'Over 9.5', result(2, 1, home_corners=8))
        assert graded.outcome == INDETERMINATE

    def test_cards(self):
        graded = grade('Tarjetas', 'Más de 4.5', result(1, 1, home_cards=3, away_cards=3))
        assert graded.outcome == WON

    def test_push_on_integer_line(self):
        graded = grade('Goals Over/Under', 'Over 3', result(2, 1))
        assert graded.outcome == INDETERMINATE
        assert graded.actual_value == 3

    def test_handicap_not_treated_as_under(self):
        graded = grade('Asian Handicap', 'Brighton -1.5', result(2, 0))
        assert graded.matcher != 'over_under'

    def test_correct_score_not_treated_as_under(self):
        graded = grade('Resultado Exacto', '2-1', result(2, 1))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'unmatched'


class TestHalves:
    """Half-scoped goal lines use the half-time score."""

    def test_first_half_uses_halftime_score(self):
        graded = grade('1t_over_0.5', '1st Half Over 0.5', result(2, 0, home_ht_goals=0, away_ht_goals=0))
        assert graded.outcome == LOST
        assert graded.actual_value == 0
        assert graded.detail == '1st half goals: 0'

    def test_second_half_is_full_time_minus_halftime(self):
        graded = grade('2t_over_1.5', '2nd Half Over 1.5', result(2, 1, home_ht_goals=1, away_ht_goals=0))
        assert graded.outcome == WON
        assert graded.actual_value == 2

    def test_spanish_half_wording(self):
        fixture = result(1, 1, home_ht_goals=1, away_ht_goals=0)
        assert grade('Goles Segundo Tiempo', 'Más de 0.5', fixture).outcome == WON
        assert grade('Goles Primer Tiempo', 'Menos de 1.5', fixture).outcome == WON

    def test_team_half_goals(self):
        graded = grade('First Half Team Goals', 'Burnley Over 0.5', result(1, 2, home_ht_goals=1, away_ht_goals=0))
        assert graded.outcome == LOST
        assert graded.detail == 'Away 1st half goals: 0'

    def test_missing_halftime_score_indeterminate(self):
        graded = grade('1t_over_0.5', '1st Half Over 0.5', result(2, 0))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'over_under'

    def test_half_corners_indeterminate(self):
        graded = grade('Corners 1st Half', 'Over 4.5', result(2, 0, home_corners=6, away_corners=3))
        assert graded.outcome == INDETERMINATE


class TestCleanSheet:
    """Clean sheets are graded on the opponent's goals."""

    def test_home_win_with_conceded_goal_is_lost(self):
        graded = grade('home_clean_sheet', 'Brighton Clean Sheet', result(2, 1))
        assert graded.outcome == LOST
        assert graded.matcher == 'clean_sheet'
        assert graded.actual_value == 1

    def test_away_clean_sheet_in_draw(self):
        assert grade('away_clean_sheet', 'Burnley Clean Sheet', result(0, 0)).outcome == WON

    def test_spanish_keyword_side(self):
        assert grade('Portería a cero', 'Local', result(1, 0)).outcome == WON

    def test_negated(self):
        assert grade('Clean Sheet', 'Brighton - No', result(3, 0)).outcome == LOST

    def test_unresolved_side(self):
        graded = grade('Clean Sheet', 'Yes', result(1, 0))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'clean_sheet'

    def test_result_matchers_ignore_other_statistics(self):
        graded = grade('Match Winner', 'Brighton 1st Half', result(2, 1))
        assert graded.matcher == 'unmatched'


class TestBtts:
    """Both teams to score."""

    def test_yes(self):
        assert grade('Ambos Marcan', 'Sí', result(1, 1)).outcome == WON

    def test_yes_lost(self):
        assert grade('Both Teams To Score', 'Yes', result(1, 0)).outcome == LOST

    def test_no(self):
        graded = grade('Both Teams To Score', 'No', result(1, 0))
        assert graded.outcome == WON
        assert graded.matcher == 'btts'


class TestResult:
    """1X2 and double chance."""

    def test_double_chance_codes(self):
        assert grade('Double Chance', '1X', result(0, 0)).outcome == WON
        assert grade('Double Chance', 'X2', result(2, 0)).outcome == LOST
        assert grade('Double Chance', '12', result(0, 1)).outcome == WON

    def test_double_chance_worded(self):
        graded = grade('Doble Oportunidad', 'Local o Empate', result(1, 1))
        assert graded.outcome == WON
        assert graded.matcher == 'double_chance'

    def test_double_chance_team_name(self):
        assert grade('Double Chance', 'Burnley or Draw', result(2, 1)).outcome == LOST

    def test_match_result_codes(self):
        assert grade('1X2', '1', result(2, 1)).outcome == WON
        assert grade('1X2', 'X', result(1, 1)).outcome == WON
        assert grade('1X2', '2', result(2, 1)).outcome == LOST

    def test_match_result_by_team_name(self):
        graded = grade('Match Winner', 'Brighton', result(2, 1))
        assert graded.outcome == WON
        assert graded.matcher == 'match_result'
        assert graded.detail == 'Home win (2-1)'

        assert grade('Match Winner', 'Burnley', result(2, 1)).outcome == LOST

    def test_shared_prefix_does_not_resolve(self):
        fixture = result(1, 0, home='Manchester United', away='Manchester City')
        graded = grade('Match Winner', 'Manchester', fixture)
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'unmatched'

    def test_both_teams_named_is_unresolved(self):
        fixture = result(1, 0, home='Manchester United', away='Manchester City')
        graded = grade('Match Winner', 'Manchester United v Manchester City', fixture)
        assert graded.outcome == INDETERMINATE


class TestGradeEntryPoint:
    """Unfinished fixtures, unknown text, determinism."""

    def test_unfinished_fixture(self):
        graded = grade('Goals Over/Under', 'Over 2.5', result(None, None, status='NS'))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'unfinished'

    @pytest.mark.parametrize("selection", ['3:1', '2-1', '2 - 1'])
    def test_unmatched_text(self, selection):
        graded = grade('Exact Score', selection, result(2, 1))
        assert graded.outcome == INDETERMINATE
        assert graded.matcher == 'unmatched'

    def test_deterministic(self):
        fixture = result(2, 2, home_corners=5, away_corners=6)
        first = grade('Corners', 'Over 10.5', fixture)
        assert grade('Corners', 'Over 10.5', fixture) == first

    @pytest.mark.parametrize("name,expected", [
        ('Baniyas SC', ['baniyas']),
        ('Al Nasr', ['nasr']),
        ('Real Club Deportivo de La Coruña', ['real', 'deportivo', 'coruna']),
        ('FC 04', []),
    ])
    def test_significant_tokens(self, name, expected):
        assert significant_tokens(name) == expected


# ---------------------------------------------------------------------------
# Predictions as the engine stores them: canonical key + model selection
# ---------------------------------------------------------------------------

def engine_estimates():
    ctx = make_context(
        home_corners=(6,) * 5,
        away_corners=(4,) * 5,
        home_yellow=(2,) * 5,
        away_yellow=(2,) * 5,
        referee=RefereeStats(name='M. Oliver', games=10, avg_yellow_cards=4.0),
        h2h=[HeadToHeadRecord(2, 1), HeadToHeadRecord(1, 1), HeadToHeadRecord(0, 2)],
    )
    metrics = MetricsBuilder().build(ctx)
    return [e for model in ALL_MODELS for e in model().calculate(ctx, metrics)]


ENGINE_ESTIMATES = engine_estimates()

SETTLED_RESULTS = {
    'home_win': result(2, 1, home_ht_goals=0, away_ht_goals=0,
                       home_corners=8, away_corners=4, home_cards=2, away_cards=3),
    'goalless': result(0, 0, home_ht_goals=0, away_ht_goals=0,
                       home_corners=3, away_corners=2, home_cards=1, away_cards=1),
    'away_win': result(1, 3, home_ht_goals=1, away_ht_goals=1,
                       home_corners=5, away_corners=7, home_cards=4, away_cards=2),
}


def expected_outcome(market_key, r):
    """What a market key settles to, worked out from the key alone."""
    goals = {'home': r.home_goals, 'away': r.away_goals}
    outcome = 'home' if r.home_goals > r.away_goals else 'away' if r.away_goals > r.home_goals else 'draw'

    m = re.fullmatch(r'(over|under)_(\d+\.5)_goals', market_key)
    if m:
        total = r.home_goals + r.away_goals
        won = total > float(m.group(2)) if m.group(1) == 'over' else total < float(m.group(2))
    elif re.fullmatch(r'(home|away)_over_\d+\.5', market_key):
        side, _, line = market_key.split('_')
        won = goals[side] > float(line)
    elif re.fullmatch(r'[12]t_over_\d+\.5', market_key):
        half_time = r.home_ht_goals + r.away_ht_goals
        half = half_time if market_key.startswith('1t') else r.home_goals + r.away_goals - half_time
        won = half > float(market_key.split('_')[-1])
    elif re.fullmatch(r'(corners|cards)_over_\d+\.5', market_key):
        stat = market_key.split('_')[0]
        won = getattr(r, f"home_{stat}") + getattr(r, f"away_{stat}") > float(market_key.split('_')[-1])
    elif market_key in ('btts_yes', 'btts_no'):
        both = r.home_goals > 0 and r.away_goals > 0
        won = both if market_key == 'btts_yes' else not both
    elif market_key.startswith('1x2_'):
        won = outcome == market_key[len('1x2_'):]
    elif market_key.startswith('double_chance_'):
        codes = {'1': 'home', 'x': 'draw', '2': 'away'}
        won = outcome in {codes[c] for c in market_key[len('double_chance_'):]}
    elif market_key in ('home_clean_sheet', 'away_clean_sheet'):
        opponent = 'away' if market_key.startswith('home') else 'home'
        won = goals[opponent] == 0
    else:
        raise AssertionError(f"No expectation for {market_key}")
    return WON if won else LOST


class TestEngineMarkets:
    """Every market the estimator produces settles on its own statistic."""

    def test_all_market_families_produced(self):
        keys = {e.market_key for e in ENGINE_ESTIMATES}
        for key in ('over_2.5_goals', '1t_over_0.5', 'corners_over_9.5', 'cards_over_3.5',
                    'btts_no', '1x2_draw', 'double_chance_x2', 'home_clean_sheet'):
            assert key in keys

    @pytest.mark.parametrize("result_name", sorted(SETTLED_RESULTS))
    @pytest.mark.parametrize(
        "market_key,selection",
        [(e.market_key, e.selection) for e in ENGINE_ESTIMATES],
        ids=[e.market_key for e in ENGINE_ESTIMATES],
    )
    def test_stored_prediction_settles(self, market_key, selection, result_name):
        final_result = SETTLED_RESULTS[result_name]
        graded = grade(market_key, selection, final_result)

        assert graded.outcome == expected_outcome(market_key, final_result), graded

    @pytest.mark.parametrize(
        "market_key,selection",
        [(e.market_key, e.selection) for e in ENGINE_ESTIMATES if e.market_key[:2] in ('1t', '2t')],
    )
    def test_half_markets_without_halftime_score(self, market_key, selection):
        assert grade(market_key, selection, result(2, 0)).outcome == INDETERMINATE
