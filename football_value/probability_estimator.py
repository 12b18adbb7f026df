"""
Football Probability Estimator

Runs every market model over a fixture and collects the estimates.
A model that fails or lacks data contributes nothing: its markets are
absent from the output instead of being filled with a neutral guess.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from .estimator import (
    ALL_MODELS,
    BaseMarketModel,
    FixtureContext,
    FixtureMetrics,
    MarketProbabilityEstimate,
)
from .metrics_builder import MetricsBuilder, get_metrics_builder

logger = logging.getLogger(__name__)


@dataclass
class EstimatorResult:
    """
    Estimates for one fixture.

    Contains:
    - One estimate per canonical market the data supported
    - The metrics and quality flags they were computed from
    - Names of models that raised (their markets are missing)
    """
    fixture_id: int
    estimates: List[MarketProbabilityEstimate] = field(default_factory=list)
    metrics: Optional[FixtureMetrics] = None
    failed_models: List[str] = field(default_factory=list)

    def by_market(self) -> Dict[str, MarketProbabilityEstimate]:
        return {e.market_key: e for e in self.estimates}

    @property
    def expected_values(self) -> Dict[str, float]:
        """Expected goals per side and in total."""
        if self.metrics is None:
            return {}
        return {
            'home_goals': round(self.metrics.lambda_home, 2),
            'away_goals': round(self.metrics.lambda_away, 2),
            'total_goals': round(self.metrics.lambda_total, 2),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fixture_id': self.fixture_id,
            'estimates': [e.to_dict() for e in self.estimates],
            'metrics': self.metrics.to_dict() if self.metrics else None,
            'expected_values': self.expected_values,
            'failed_models': list(self.failed_models),
        }


class ProbabilityEstimator:
    """
    Converts historical team/referee figures into market probabilities.

    Models (estimator/):
    - goals: total and team goal lines (Poisson)
    - halves: first/second half goal lines
    - btts: both teams to score from failed-to-score rates
    - result: 1X2, double chance, clean sheets from head-to-head
    - corners: corner lines, omitted without corner data
    - cards: card lines, omitted without a referee card rate
    """

    def __init__(
        self,
        models: Optional[List[BaseMarketModel]] = None,
        metrics_builder: Optional[MetricsBuilder] = None,
    ):
        self.models = models if models is not None else [cls() for cls in ALL_MODELS]
        self.metrics_builder = metrics_builder or get_metrics_builder()

    def estimate(self, ctx: FixtureContext) -> EstimatorResult:
        """
        Estimate all supported markets for a fixture.

        Args:
            ctx: Fixture context

        Returns:
            EstimatorResult; markets appear at most once
        """
        metrics = self.metrics_builder.build(ctx)
        result = EstimatorResult(fixture_id=ctx.fixture_id, metrics=metrics)

        seen = set()
        for model in self.models:
            try:
                estimates = model.calculate(ctx, metrics)
            except Exception as e:
                logger.error(f"Error in {model.name} model for fixture {ctx.fixture_id}: {e}")
                result.failed_models.append(model.name)
                continue

            for estimate in estimates:
                if estimate.market_key in seen:
                    logger.warning(
                        f"Duplicate market {estimate.market_key} from {model.name} - keeping first"
                    )
                    continue
                seen.add(estimate.market_key)
                result.estimates.append(estimate)

        logger.info(
            f"Fixture {ctx.fixture_id}: {len(result.estimates)} market estimates "
            f"(expected goals {metrics.lambda_total:.2f})"
        )
        return result


# =============================================================================
# CONVENIENCE
# =============================================================================

_estimator: Optional[ProbabilityEstimator] = None


def get_probability_estimator() -> ProbabilityEstimator:
    """Get singleton estimator instance."""
    global _estimator
    if _estimator is None:
        _estimator = ProbabilityEstimator()
    return _estimator
