"""
Goals Model

Poisson model on venue-specific scoring/conceding averages.

lambda_home  = avg(home scored at home, away conceded away)
lambda_away  = avg(away scored away, home conceded at home)
lambda_total = lambda_home + lambda_away
"""

from typing import List

from .base import (
    BaseMarketModel,
    MarketProbabilityEstimate,
    FixtureContext,
    FixtureMetrics,
    clamp,
    clamped_over_probability,
    line_to_threshold,
    format_line,
)


class GoalsModel(BaseMarketModel):
    """
    Total and team goal lines.

    Uncertainty grows with the scoring dispersion of both sides and is
    capped at 15%.
    """

    name = "poisson_goals"

    OVER_LINES = (0.5, 1.5, 2.5, 3.5, 4.5)
    UNDER_LINES = (1.5, 2.5, 3.5)
    TEAM_LINES = (0.5, 1.5)

    MAX_UNCERTAINTY = 0.15

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        lam_total = metrics.lambda_total
        uncertainty = min(
            self.MAX_UNCERTAINTY,
            0.1 * (metrics.home_scored_std + metrics.away_scored_std),
        )

        estimates = []

        for line in self.OVER_LINES:
            p_over = clamped_over_probability(lam_total, line_to_threshold(line))
            estimates.append(self._estimate(
                f"over_{format_line(line)}_goals",
                f"Over {format_line(line)}",
                p_over,
                uncertainty=uncertainty,
                rationale=(
                    f"Expected goals {lam_total:.2f}: {p_over * 100:.1f}% chance of "
                    f"{line_to_threshold(line) + 1}+ goals"
                ),
                lambda_total=lam_total,
            ))

        for line in self.UNDER_LINES:
            p_under = 1.0 - clamped_over_probability(lam_total, line_to_threshold(line))
            estimates.append(self._estimate(
                f"under_{format_line(line)}_goals",
                f"Under {format_line(line)}",
                p_under,
                uncertainty=uncertainty,
                rationale=f"Complement of Over {format_line(line)}: {p_under * 100:.1f}%",
                lambda_total=lam_total,
            ))

        # Team totals get a little more uncertainty than the match total
        team_uncertainty = clamp(uncertainty * 1.2, 0.0, self.MAX_UNCERTAINTY)
        for side, lam in (('home', metrics.lambda_home), ('away', metrics.lambda_away)):
            team = ctx.home_team if side == 'home' else ctx.away_team
            for line in self.TEAM_LINES:
                p_over = clamped_over_probability(lam, line_to_threshold(line))
                estimates.append(self._estimate(
                    f"{side}_over_{format_line(line)}",
                    f"{team} Over {format_line(line)}",
                    p_over,
                    uncertainty=team_uncertainty,
                    rationale=f"{team} expected goals {lam:.2f}",
                    **{f"lambda_{side}": lam},
                ))

        return estimates
