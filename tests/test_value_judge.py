"""
Tests for the value judge: decisions, confidence and pick ranking.
"""

import pytest

from football_value.estimator import QualityFlags
from football_value.market_normalizer import PriceQuote
from football_value.value_judge import (
    AVOID,
    BET,
    ENGINE_VERSION,
    SKIP,
    WATCH,
    ValueJudge,
    is_goal_market,
)

from conftest import make_estimate


def quote(market_key, odds, bookmaker='Bet365'):
    return PriceQuote(market_key=market_key, selection=market_key, decimal_odds=odds, bookmaker=bookmaker)


@pytest.fixture
def judge(thresholds):
    return ValueJudge(thresholds=thresholds)


class TestDecisions:
    """BET / WATCH / AVOID / SKIP rules."""

    def test_no_price_is_skipped(self, judge):
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.6)], quotes={})

        assert report.picks == []
        assert report.skipped == ['btts_yes']
        assert report.summary['skipped_markets'] == 1

    def test_positive_edge_is_bet(self, judge):
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.60)], {'btts_yes': quote('btts_yes', 2.00)})
        pick = report.picks[0]

        assert pick.edge == pytest.approx(0.10)
        assert pick.p_implied == pytest.approx(0.50)
        assert pick.confidence == 60
        assert pick.decision == BET
        assert pick.rank == 1
        assert pick.is_primary is True

    def test_uncertainty_discounts_confidence(self, judge):
        report = judge.evaluate(
            1, [make_estimate('btts_yes', 0.60, uncertainty=0.10)], {'btts_yes': quote('btts_yes', 2.00)})
        pick = report.picks[0]

        # round(60 * 0.9) = 54 < 55
        assert pick.confidence == 54
        assert pick.decision == WATCH
        assert any('Confidence 54 below' in r for r in pick.reasons)

    def test_strongly_negative_edge_is_avoid(self, judge):
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.30)], {'btts_yes': quote('btts_yes', 2.00)})
        assert report.picks[0].decision == AVOID

    def test_edge_at_threshold_is_bet(self, judge):
        # 0.58 - 1/2.00 is 0.07999999999999996 in floating point
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.58)], {'btts_yes': quote('btts_yes', 2.00)})
        pick = report.picks[0]

        assert pick.edge == 0.08
        assert pick.decision == BET

    def test_edge_at_avoid_bound_is_watch(self, judge):
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.40)], {'btts_yes': quote('btts_yes', 2.00)})
        assert report.picks[0].decision == WATCH

    def test_small_edge_is_watch(self, judge):
        report = judge.evaluate(1, [make_estimate('btts_yes', 0.55)], {'btts_yes': quote('btts_yes', 2.00)})
        pick = report.picks[0]

        assert pick.decision == WATCH
        assert pick.rank is None

    def test_per_market_threshold(self):
        from football_value.thresholds import MarketThreshold, ThresholdConfig
        config = ThresholdConfig(
            version='t',
            markets={'over_2.5_goals': MarketThreshold(min_edge=0.015, min_confidence=50)},
        )
        report = ValueJudge(config).evaluate(
            1, [make_estimate('over_2.5_goals', 0.52)], {'over_2.5_goals': quote('over_2.5_goals', 2.00)})

        assert report.picks[0].decision == BET
        assert report.threshold_version == 't'


class TestQualityFlags:
    """Disqualifying data-quality flags."""

    def test_small_sample_demotes_to_watch(self, judge):
        report = judge.evaluate(
            1, [make_estimate('btts_yes', 0.70)], {'btts_yes': quote('btts_yes', 2.00)},
            quality_flags=QualityFlags(small_sample=True),
        )
        pick = report.picks[0]

        assert pick.decision == WATCH
        assert pick.data_gaps is True
        assert 'Small sample (< 5 matches)' in pick.risks

    def test_high_variance_only_affects_goal_markets(self, judge):
        estimates = [make_estimate('over_2.5_goals', 0.70), make_estimate('btts_yes', 0.70)]
        quotes = {'over_2.5_goals': quote('over_2.5_goals', 2.0), 'btts_yes': quote('btts_yes', 2.0)}
        report = judge.evaluate(1, estimates, quotes, quality_flags=QualityFlags(high_variance_goals=True))
        decisions = {p.market_key: p.decision for p in report.picks}

        assert decisions == {'over_2.5_goals': WATCH, 'btts_yes': BET}

    def test_goal_market_detection(self):
        assert is_goal_market('over_2.5_goals')
        assert is_goal_market('home_over_1.5')
        assert is_goal_market('1t_over_0.5')
        assert not is_goal_market('btts_yes')
        assert not is_goal_market('corners_over_9.5')


class TestRanking:
    """At most three BETs per fixture, best edge first."""

    def test_pick_limit(self, judge):
        probs = {'btts_yes': 0.70, '1x2_home': 0.72, 'over_1.5_goals': 0.74,
                 'double_chance_1x': 0.76, 'home_over_0.5': 0.78}
        estimates = [make_estimate(k, p) for k, p in probs.items()]
        quotes = {k: quote(k, 2.0) for k in probs}
        report = judge.evaluate(1, estimates, quotes)

        bets = report.bets
        assert [p.market_key for p in bets] == ['home_over_0.5', 'double_chance_1x', 'over_1.5_goals']
        assert [p.rank for p in bets] == [1, 2, 3]
        assert report.primary_pick.market_key == 'home_over_0.5'

        demoted = [p for p in report.picks if 'Demoted: exceeds pick limit' in p.reasons]
        assert {p.market_key for p in demoted} == {'btts_yes', '1x2_home'}
        assert all(p.decision == WATCH for p in demoted)

    def test_single_primary(self, judge):
        estimates = [make_estimate('btts_yes', 0.70), make_estimate('1x2_home', 0.75)]
        quotes = {k: quote(k, 2.0) for k in ('btts_yes', '1x2_home')}
        report = judge.evaluate(1, estimates, quotes)

        assert sum(1 for p in report.picks if p.is_primary) == 1

    def test_rank_opportunities(self, judge):
        estimates = [make_estimate('btts_yes', 0.60), make_estimate('1x2_home', 0.42), make_estimate('1x2_draw', 0.3)]
        ranked = judge.rank_opportunities(estimates, {'btts_yes': 1.8, '1x2_home': 2.5, '1x2_draw': 1.0})

        assert [e.market_key for e, _ in ranked] == ['btts_yes', '1x2_home']
        assert ranked[0][1] == pytest.approx(0.0444, abs=1e-4)


class TestReportPayloads:
    """Serialized and read-only views."""

    def test_to_dict(self, judge):
        report = judge.evaluate(
            7, [make_estimate('btts_yes', 0.60)], {'btts_yes': quote('btts_yes', 2.0)}, run_id='run-1')
        data = report.to_dict()

        assert data['run_id'] == 'run-1'
        assert data['engine_version'] == ENGINE_VERSION
        assert data['picks'][0]['market'] == 'btts_yes'
        assert data['picks'][0]['is_primary_pick'] is True
        assert data['picks'][0]['risk_notes']['risks'] == []
        assert data['picks'][0]['risk_notes']['data_gaps'] is False

    def test_narrative_payload_is_read_only(self, judge):
        report = judge.evaluate(7, [make_estimate('btts_yes', 0.60)], {'btts_yes': quote('btts_yes', 2.0)})
        payload = report.to_narrative_payload()

        with pytest.raises(TypeError):
            payload['fixture_id'] = 8
        with pytest.raises(TypeError):
            payload['picks'][0]['decision'] = SKIP
        assert isinstance(payload['picks'], tuple)
