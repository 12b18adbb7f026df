"""
Fixture Metrics Builder

Turns the raw TeamFormSample lists of a FixtureContext into the venue
averages, dispersion figures and data-quality flags the market models
and the value judge consume.

Only venue-relevant samples are used: the home team's home matches and
the away team's away matches. Missing corner/card statistics stay NaN
in the frame and are skipped by the averages, so a team with no corner
data gets no corner average rather than zero.
"""

import logging
from dataclasses import asdict
from typing import List, Optional, Tuple

import pandas as pd

from .estimator.base import (
    FixtureContext,
    FixtureMetrics,
    QualityFlags,
    SeasonAggregate,
    TeamFormSample,
    HOME,
    AWAY,
)

logger = logging.getLogger(__name__)


# Cold-start constants for teams with no games played
COLD_START = {
    'home_scored': 1.5,
    'home_conceded': 1.2,
    'away_scored': 1.0,
    'away_conceded': 1.3,
    'home_failed_to_score_rate': 2 / 10,
    'away_failed_to_score_rate': 3 / 10,
    'home_clean_sheet_rate': 3 / 10,
    'away_clean_sheet_rate': 2 / 10,
    'first_half_share': 0.45,
}

SAMPLE_COLUMNS = [
    'fixture_id', 'team_id', 'venue', 'goals_scored', 'goals_conceded',
    'corners', 'yellow_cards', 'red_cards', 'first_half_goals', 'played_at',
]


class MetricsBuilder:
    """
    Builds FixtureMetrics from form samples.

    Thresholds for the quality flags:
    - small_sample: fewer than MIN_SAMPLE venue matches on either side
    - high_variance_goals: goals-scored std above HIGH_VARIANCE_STD
    - low_coverage_*: fewer than MIN_SAMPLE matches with that statistic
    """

    MIN_SAMPLE = 5
    HIGH_VARIANCE_STD = 1.5
    MIN_HALF_SHARE = 0.30
    MAX_HALF_SHARE = 0.60

    def build(self, ctx: FixtureContext) -> FixtureMetrics:
        """
        Build metrics for a fixture.

        Args:
            ctx: Fixture context from the data feed

        Returns:
            FixtureMetrics with quality flags attached
        """
        home_df = self._to_frame(ctx.home_samples, HOME, ctx.fixture_id)
        away_df = self._to_frame(ctx.away_samples, AWAY, ctx.fixture_id)

        home_scored, home_scored_std = self._goal_stats(home_df, 'goals_scored', COLD_START['home_scored'])
        home_conceded, _ = self._goal_stats(home_df, 'goals_conceded', COLD_START['home_conceded'])
        away_scored, away_scored_std = self._goal_stats(away_df, 'goals_scored', COLD_START['away_scored'])
        away_conceded, _ = self._goal_stats(away_df, 'goals_conceded', COLD_START['away_conceded'])

        home_corners, home_corners_n = self._optional_avg(home_df, 'corners')
        away_corners, away_corners_n = self._optional_avg(away_df, 'corners')
        home_cards, home_cards_n = self._optional_avg(home_df, 'yellow_cards')
        away_cards, away_cards_n = self._optional_avg(away_df, 'yellow_cards')

        home_scores_rate = 1.0 - self._failed_to_score_rate(
            ctx.home_season, home_df, COLD_START['home_failed_to_score_rate'])
        away_scores_rate = 1.0 - self._failed_to_score_rate(
            ctx.away_season, away_df, COLD_START['away_failed_to_score_rate'])

        home_cs = self._clean_sheet_rate(ctx.home_season, home_df, COLD_START['home_clean_sheet_rate'])
        away_cs = self._clean_sheet_rate(ctx.away_season, away_df, COLD_START['away_clean_sheet_rate'])
        first_half_share = self._first_half_share(home_df, away_df)

        flags = QualityFlags(
            high_variance_goals=(
                home_scored_std > self.HIGH_VARIANCE_STD
                or away_scored_std > self.HIGH_VARIANCE_STD
            ),
            low_coverage_corners=(
                home_corners_n < self.MIN_SAMPLE or away_corners_n < self.MIN_SAMPLE
            ),
            low_coverage_cards=(
                home_cards_n < self.MIN_SAMPLE or away_cards_n < self.MIN_SAMPLE
            ),
            small_sample=(
                len(home_df) < self.MIN_SAMPLE or len(away_df) < self.MIN_SAMPLE
            ),
            referee_unknown=ctx.referee is None or not ctx.referee.name,
        )

        metrics = FixtureMetrics(
            home_scored_avg=home_scored,
            home_conceded_avg=home_conceded,
            away_scored_avg=away_scored,
            away_conceded_avg=away_conceded,
            home_scored_std=home_scored_std,
            away_scored_std=away_scored_std,
            home_sample_size=len(home_df),
            away_sample_size=len(away_df),
            home_corners_avg=home_corners,
            away_corners_avg=away_corners,
            home_corners_samples=home_corners_n,
            away_corners_samples=away_corners_n,
            home_cards_avg=home_cards,
            away_cards_avg=away_cards,
            home_cards_samples=home_cards_n,
            away_cards_samples=away_cards_n,
            home_scores_rate=home_scores_rate,
            away_scores_rate=away_scores_rate,
            home_clean_sheet_rate=home_cs,
            away_clean_sheet_rate=away_cs,
            first_half_share=first_half_share,
            flags=flags,
        )

        logger.debug(
            f"Fixture {ctx.fixture_id} metrics: lambda {metrics.lambda_home:.2f}-"
            f"{metrics.lambda_away:.2f}, samples {len(home_df)}/{len(away_df)}"
        )
        return metrics

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _to_frame(
        self,
        samples: List[TeamFormSample],
        venue: str,
        fixture_id: int,
    ) -> pd.DataFrame:
        """Samples to a DataFrame restricted to the given venue."""
        if not samples:
            return pd.DataFrame(columns=SAMPLE_COLUMNS)

        df = pd.DataFrame([asdict(s) for s in samples], columns=SAMPLE_COLUMNS)
        relevant = df[df['venue'] == venue]

        dropped = len(df) - len(relevant)
        if dropped:
            logger.debug(f"Fixture {fixture_id}: ignored {dropped} samples not played {venue}")

        relevant = relevant.copy()
        for col in ('goals_scored', 'goals_conceded', 'corners', 'yellow_cards', 'red_cards', 'first_half_goals'):
            relevant[col] = pd.to_numeric(relevant[col], errors='coerce')
        return relevant

    def _goal_stats(self, df: pd.DataFrame, column: str, default: float) -> Tuple[float, float]:
        """Mean and population std of a goal column, cold-start default if empty."""
        values = df[column].dropna() if not df.empty else pd.Series(dtype=float)
        if values.empty:
            return default, 0.0
        std = float(values.std(ddof=0)) if len(values) >= 2 else 0.0
        return float(values.mean()), std

    def _optional_avg(self, df: pd.DataFrame, column: str) -> Tuple[Optional[float], int]:
        """Average over samples that carry the statistic; None when none do."""
        if df.empty:
            return None, 0
        values = df[column].dropna()
        if values.empty:
            return None, 0
        return float(values.mean()), int(values.count())

    def _failed_to_score_rate(
        self,
        season: SeasonAggregate,
        df: pd.DataFrame,
        default: float,
    ) -> float:
        if season.games_played > 0 and season.failed_to_score is not None:
            return season.failed_to_score / season.games_played
        if not df.empty:
            return float((df['goals_scored'] == 0).mean())
        return default

    def _clean_sheet_rate(
        self,
        season: SeasonAggregate,
        df: pd.DataFrame,
        default: float,
    ) -> float:
        if season.games_played > 0 and season.clean_sheets is not None:
            return season.clean_sheets / season.games_played
        if not df.empty:
            return float((df['goals_conceded'] == 0).mean())
        return default

    def _first_half_share(self, home_df: pd.DataFrame, away_df: pd.DataFrame) -> float:
        """
        Share of match goals scored before half time across both sides' samples.

        Falls back to the league-wide share with fewer than MIN_SAMPLE
        half-time scores or no goals in them.
        """
        frames = [df for df in (home_df, away_df) if not df.empty]
        if not frames:
            return COLD_START['first_half_share']

        df = pd.concat(frames)
        known = df[df['first_half_goals'].notna()]
        match_goals = (known['goals_scored'] + known['goals_conceded']).sum()
        if len(known) < self.MIN_SAMPLE or match_goals <= 0:
            return COLD_START['first_half_share']

        share = float(known['first_half_goals'].sum() / match_goals)
        return max(self.MIN_HALF_SHARE, min(self.MAX_HALF_SHARE, share))


# =============================================================================
# CONVENIENCE
# =============================================================================

_builder: Optional[MetricsBuilder] = None


def get_metrics_builder() -> MetricsBuilder:
    """Get singleton metrics builder instance."""
    global _builder
    if _builder is None:
        _builder = MetricsBuilder()
    return _builder
