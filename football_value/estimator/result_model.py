"""
Match Result Model

1X2 from the last 10 head-to-head meetings with a home-advantage
adjustment (+10% home, -10% away), clamped to plausible bounds:

    home 25-70%, draw 20-35%, away 15-55%

Double chance and clean sheets are derived from the same inputs.
"""

from typing import List

from .base import (
    BaseMarketModel,
    MarketProbabilityEstimate,
    FixtureContext,
    FixtureMetrics,
    clamp,
)


class ResultModel(BaseMarketModel):

    name = "h2h_result"

    H2H_LIMIT = 10
    HOME_ADJUSTMENT = 1.1
    AWAY_ADJUSTMENT = 0.9

    HOME_BOUNDS = (0.25, 0.70)
    DRAW_BOUNDS = (0.20, 0.35)
    AWAY_BOUNDS = (0.15, 0.55)

    MAX_DOUBLE_CHANCE = 0.95

    UNCERTAINTY = 0.10
    NO_H2H_UNCERTAINTY = 0.15

    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        meetings = ctx.recent_h2h(self.H2H_LIMIT)
        total = max(len(meetings), 1)

        home_wins = sum(1 for m in meetings if m.home_goals > m.away_goals)
        away_wins = sum(1 for m in meetings if m.home_goals < m.away_goals)
        draws = len(meetings) - home_wins - away_wins

        p_home = clamp(home_wins / total * self.HOME_ADJUSTMENT, *self.HOME_BOUNDS)
        p_draw = clamp(draws / total, *self.DRAW_BOUNDS)
        p_away = clamp(away_wins / total * self.AWAY_ADJUSTMENT, *self.AWAY_BOUNDS)

        uncertainty = self.UNCERTAINTY if meetings else self.NO_H2H_UNCERTAINTY
        record = f"H2H last {len(meetings)}: {home_wins}W {draws}D {away_wins}L"
        inputs = dict(h2h_games=len(meetings), home_wins=home_wins, draws=draws, away_wins=away_wins)

        estimates = [
            self._estimate('1x2_home', '1', p_home, uncertainty, record, **inputs),
            self._estimate('1x2_draw', 'X', p_draw, uncertainty, record, **inputs),
            self._estimate('1x2_away', '2', p_away, uncertainty, record, **inputs),
        ]

        for key, selection, p in (
            ('double_chance_1x', '1X', p_home + p_draw),
            ('double_chance_x2', 'X2', p_draw + p_away),
            ('double_chance_12', '12', p_home + p_away),
        ):
            estimates.append(self._estimate(
                key, selection, min(p, self.MAX_DOUBLE_CHANCE), uncertainty, record, **inputs,
            ))

        estimates.append(self._estimate(
            'home_clean_sheet', f"{ctx.home_team} Clean Sheet",
            metrics.home_clean_sheet_rate,
            uncertainty=self.UNCERTAINTY,
            rationale=f"{ctx.home_team} keeps a clean sheet in {metrics.home_clean_sheet_rate * 100:.0f}% of games",
        ))
        estimates.append(self._estimate(
            'away_clean_sheet', f"{ctx.away_team} Clean Sheet",
            metrics.away_clean_sheet_rate,
            uncertainty=self.UNCERTAINTY,
            rationale=f"{ctx.away_team} keeps a clean sheet in {metrics.away_clean_sheet_rate * 100:.0f}% of games",
        ))

        return estimates
