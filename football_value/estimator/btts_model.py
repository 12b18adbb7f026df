"""
Both Teams To Score Model

P(BTTS) = P(home scores) * P(away scores), where each scoring rate is
1 - failed_to_score / games_played. Clamped to [30%, 85%].
"""

from typing import List

from .base import (
    BaseMarketModel,
    MarketProbabilityEstimate,
    FixtureContext,
    FixtureMetrics,
    clamp,
)


class BttsModel(BaseMarketModel):

    name = "historical_btts"

    MIN_PROB = 0.30
    MAX_PROB = 0.85

    UNCERTAINTY = 0.10
    SMALL_SAMPLE_UNCERTAINTY = 0.15

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        raw = metrics.home_scores_rate * metrics.away_scores_rate
        p_yes = clamp(raw, self.MIN_PROB, self.MAX_PROB)
        uncertainty = (
            self.SMALL_SAMPLE_UNCERTAINTY if metrics.flags.small_sample
            else self.UNCERTAINTY
        )
        rates = dict(
            home_scores_rate=metrics.home_scores_rate,
            away_scores_rate=metrics.away_scores_rate,
        )

        return [
            self._estimate(
                'btts_yes', 'Yes', p_yes,
                uncertainty=uncertainty,
                rationale=(
                    f"Home scores {metrics.home_scores_rate * 100:.0f}%, "
                    f"away scores {metrics.away_scores_rate * 100:.0f}%"
                ),
                **rates,
            ),
            self._estimate(
                'btts_no', 'No', 1.0 - p_yes,
                uncertainty=uncertainty,
                rationale=f"At least one side blanks: {(1.0 - p_yes) * 100:.1f}%",
                **rates,
            ),
        ]
