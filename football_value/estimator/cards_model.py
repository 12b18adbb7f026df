"""
Cards Model

Expected yellow cards = 0.4 * referee average + 0.3 * home average
+ 0.3 * away average.

Without a referee card rate the card markets are not produced at all.
A missing referee is not replaced by a league default.
"""

import logging
from typing import List

from .base import (
    BaseMarketModel,
    MarketProbabilityEstimate,
    FixtureContext,
    FixtureMetrics,
    clamped_over_probability,
    line_to_threshold,
    format_line,
)

logger = logging.getLogger(__name__)


class CardsModel(BaseMarketModel):

    name = "poisson_cards"

    REFEREE_WEIGHT = 0.4
    HOME_WEIGHT = 0.3
    AWAY_WEIGHT = 0.3

    LINES = (2.5, 3.5, 4.5, 5.5)

    UNCERTAINTY = 0.12
    LOW_COVERAGE_UNCERTAINTY = 0.15

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        referee = ctx.referee
        if referee is None or not referee.has_card_rate:
            logger.info(f"Fixture {ctx.fixture_id}: no referee card rate - omitting card markets")
            return []

        if metrics.home_cards_avg is None or metrics.away_cards_avg is None:
            logger.info(f"Fixture {ctx.fixture_id}: no team card data - omitting card markets")
            return []

        expected = (
            referee.avg_yellow_cards * self.REFEREE_WEIGHT
            + metrics.home_cards_avg * self.HOME_WEIGHT
            + metrics.away_cards_avg * self.AWAY_WEIGHT
        )
        uncertainty = (
            self.LOW_COVERAGE_UNCERTAINTY if metrics.flags.low_coverage_cards
            else self.UNCERTAINTY
        )

        estimates = []
        for line in self.LINES:
            p_over = clamped_over_probability(expected, line_to_threshold(line))
            estimates.append(self._estimate(
                f"cards_over_{format_line(line)}",
                f"Over {format_line(line)} Cards",
                p_over,
                uncertainty=uncertainty,
                rationale=(
                    f"Expected cards {expected:.2f} (referee {referee.name} "
                    f"{referee.avg_yellow_cards:.2f}/game)"
                ),
                expected_cards=expected,
                referee_avg=referee.avg_yellow_cards,
                home_cards_avg=metrics.home_cards_avg,
                away_cards_avg=metrics.away_cards_avg,
            ))

        return estimates
