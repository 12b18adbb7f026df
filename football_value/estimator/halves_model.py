"""
Halves Model

Splits the expected match goals between the first and second half by
the share of goals the two sides' recent matches produced before half
time (45/55 league-wide without enough half-time scores) and prices the
half goal lines with Poisson.
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


class HalvesModel(BaseMarketModel):

    name = "poisson_halves"

    LINES = (0.5, 1.5)

    UNCERTAINTY = 0.12

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        estimates = []
        share = metrics.first_half_share
        halves = (
            ('1t', '1st Half', metrics.lambda_total * share),
            ('2t', '2nd Half', metrics.lambda_total * (1.0 - share)),
        )

        for prefix, label, lam in halves:
            for line in self.LINES:
                p_over = clamped_over_probability(lam, line_to_threshold(line))
                estimates.append(self._estimate(
                    f"{prefix}_over_{format_line(line)}",
                    f"{label} Over {format_line(line)}",
                    p_over,
                    uncertainty=self.UNCERTAINTY,
                    rationale=f"{label} expected goals {lam:.2f}",
                    lambda_half=lam,
                    first_half_share=share,
                ))

        return estimates
