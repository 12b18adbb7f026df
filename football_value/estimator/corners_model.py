"""
Corners Model

Expected corners = home corner average (at home) + away corner average
(away). Only samples that actually carried corner statistics count.
If either side has no corner data at all the whole family is omitted.
"""

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


class CornersModel(BaseMarketModel):

    name = "poisson_corners"

    LINES = (7.5, 8.5, 9.5, 10.5, 11.5, 12.5)

    UNCERTAINTY = 0.12
    LOW_COVERAGE_UNCERTAINTY = 0.15

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        if metrics.home_corners_avg is None or metrics.away_corners_avg is None:
            return []

        expected = metrics.home_corners_avg + metrics.away_corners_avg
        uncertainty = (
            self.LOW_COVERAGE_UNCERTAINTY if metrics.flags.low_coverage_corners
            else self.UNCERTAINTY
        )

        estimates = []
        for line in self.LINES:
            p_over = clamped_over_probability(expected, line_to_threshold(line))
            estimates.append(self._estimate(
                f"corners_over_{format_line(line)}",
                f"Over {format_line(line)} Corners",
                p_over,
                uncertainty=uncertainty,
                rationale=(
                    f"Expected corners {expected:.1f} "
                    f"({metrics.home_corners_avg:.1f} + {metrics.away_corners_avg:.1f})"
                ),
                expected_corners=expected,
                home_corners_samples=metrics.home_corners_samples,
                away_corners_samples=metrics.away_corners_samples,
            ))

        return estimates
