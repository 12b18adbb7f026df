"""
Base Market Model Framework

Defines the data structures shared by every market model and the abstract
base class the models implement. Adapted from the signal framework: each
model reads a FixtureContext plus derived FixtureMetrics and emits
MarketProbabilityEstimate objects.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any


# Poisson over-probabilities are clamped to this range to avoid
# overconfidence from small samples
MIN_OVER_PROB = 0.05
MAX_OVER_PROB = 0.95

HOME = 'home'
AWAY = 'away'


# =============================================================================
# INPUT RECORDS (from the data feed)
# =============================================================================

@dataclass(frozen=True)
class TeamFormSample:
    """
    One historical match seen from one team's side.

    Corner, card and first-half counts are None when the feed had no
    figures for the match. They are never zero-filled.
    """
    fixture_id: int
    team_id: int
    venue: str                          # 'home' or 'away'
    goals_scored: int
    goals_conceded: int
    corners: Optional[int] = None
    yellow_cards: Optional[int] = None
    red_cards: Optional[int] = None
    first_half_goals: Optional[int] = None  # both sides
    played_at: str = ''

    def __post_init__(self):
        if self.venue not in (HOME, AWAY):
            raise ValueError(f"venue must be 'home' or 'away', got {self.venue!r}")


@dataclass(frozen=True)
class RefereeStats:
    """Aggregate card figures for the appointed referee."""
    name: str
    games: int = 0
    avg_yellow_cards: Optional[float] = None
    avg_red_cards: Optional[float] = None

    @property
    def has_card_rate(self) -> bool:
        return bool(self.name) and self.avg_yellow_cards is not None


@dataclass(frozen=True)
class HeadToHeadRecord:
    """Past meeting, goals seen from the current fixture's home team."""
    home_goals: int
    away_goals: int
    played_at: str = ''


@dataclass
class SeasonAggregate:
    """Season-level counters for one team (all venues)."""
    games_played: int = 0
    failed_to_score: Optional[int] = None
    clean_sheets: Optional[int] = None


@dataclass
class FixtureContext:
    """
    Everything the estimator needs for one fixture.

    home_samples holds the home team's matches played at home,
    away_samples the away team's matches played away.
    """
    fixture_id: int
    home_team: str
    away_team: str
    home_team_id: int = 0
    away_team_id: int = 0
    home_samples: List[TeamFormSample] = field(default_factory=list)
    away_samples: List[TeamFormSample] = field(default_factory=list)
    home_season: SeasonAggregate = field(default_factory=SeasonAggregate)
    away_season: SeasonAggregate = field(default_factory=SeasonAggregate)
    referee: Optional[RefereeStats] = None
    h2h: List[HeadToHeadRecord] = field(default_factory=list)
    kickoff: str = ''

    def recent_h2h(self, limit: int = 10) -> List[HeadToHeadRecord]:
        """Most recent head-to-head meetings (feed order is newest first)."""
        return self.h2h[:limit]


# =============================================================================
# DERIVED METRICS
# =============================================================================

@dataclass
class QualityFlags:
    """Data-quality flags consumed by the value judge."""
    high_variance_goals: bool = False
    low_coverage_corners: bool = False
    low_coverage_cards: bool = False
    small_sample: bool = False
    referee_unknown: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return dict(self.__dict__)


@dataclass
class FixtureMetrics:
    """
    Venue-specific averages computed from the form samples.

    Corner/card averages are None when no sample carried that statistic.
    """
    home_scored_avg: float
    home_conceded_avg: float
    away_scored_avg: float
    away_conceded_avg: float
    home_scored_std: float = 0.0
    away_scored_std: float = 0.0
    home_sample_size: int = 0
    away_sample_size: int = 0

    home_corners_avg: Optional[float] = None
    away_corners_avg: Optional[float] = None
    home_corners_samples: int = 0
    away_corners_samples: int = 0

    home_cards_avg: Optional[float] = None
    away_cards_avg: Optional[float] = None
    home_cards_samples: int = 0
    away_cards_samples: int = 0

    home_scores_rate: float = 0.8
    away_scores_rate: float = 0.7
    home_clean_sheet_rate: float = 0.3
    away_clean_sheet_rate: float = 0.2

    # Share of match goals scored before half time
    first_half_share: float = 0.45

    flags: QualityFlags = field(default_factory=QualityFlags)

    @property
    def lambda_home(self) -> float:
        """Expected home goals: home attack at home vs away defence away."""
        return (self.home_scored_avg + self.away_conceded_avg) / 2

    @property
    def lambda_away(self) -> float:
        """Expected away goals: away attack away vs home defence at home."""
        return (self.away_scored_avg + self.home_conceded_avg) / 2

    @property
    def lambda_total(self) -> float:
        return self.lambda_home + self.lambda_away

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in self.__dict__.items() if k != 'flags'}
        data['lambda_home'] = round(self.lambda_home, 4)
        data['lambda_away'] = round(self.lambda_away, 4)
        data['lambda_total'] = round(self.lambda_total, 4)
        data['flags'] = self.flags.to_dict()
        return data


# =============================================================================
# MODEL OUTPUT
# =============================================================================

@dataclass
class MarketProbabilityEstimate:
    """
    Model probability for one canonical market selection.

    Attributes:
        market_key: Canonical key shared with the normalizer ('over_2.5_goals')
        selection: Human-readable selection ('Over 2.5', 'Yes', '1')
        p_model: Probability 0.0 to 1.0
        uncertainty: Optional 0.0 to 1.0 discount applied to confidence
        model_name: Which model produced it
        rationale: Short explanation of the inputs
        inputs: Raw model inputs (expected values, rates)
    """
    market_key: str
    selection: str
    p_model: float
    uncertainty: Optional[float] = None
    model_name: str = ''
    rationale: str = ''
    inputs: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.p_model = round(clamp(self.p_model, 0.0, 1.0), 4)
        if self.uncertainty is not None:
            self.uncertainty = round(clamp(self.uncertainty, 0.0, 1.0), 4)

    def to_dict(self) -> Dict:
        return {
            'market_key': self.market_key,
            'selection': self.selection,
            'p_model': self.p_model,
            'uncertainty': self.uncertainty,
            'model_name': self.model_name,
            'rationale': self.rationale,
            'inputs': self.inputs,
        }


class BaseMarketModel(ABC):
    """
    Abstract base class for all market models.

    Each model implements calculate(), returning zero or more estimates.
    Returning an empty list means the data did not support the market
    family; it is never replaced with a guessed number.
    """

    name: str = "base"

    @abstractmethod
    def calculate(
        self,
        ctx: FixtureContext,
        metrics: FixtureMetrics,
    ) -> List[MarketProbabilityEstimate]:
        """
        Calculate market probabilities for a fixture.

        Args:
            ctx: Fixture context with raw samples, referee and h2h
            metrics: Venue averages and quality flags

        Returns:
            List of MarketProbabilityEstimate
        """
        pass

    def _estimate(
        self,
        market_key: str,
        selection: str,
        p_model: float,
        uncertainty: Optional[float] = None,
        rationale: str = '',
        **inputs: Any,
    ) -> MarketProbabilityEstimate:
        return MarketProbabilityEstimate(
            market_key=market_key,
            selection=selection,
            p_model=p_model,
            uncertainty=uncertainty,
            model_name=self.name,
            rationale=rationale,
            inputs={k: round(v, 4) if isinstance(v, float) else v for k, v in inputs.items()},
        )


# =============================================================================
# PROBABILITY HELPERS
# =============================================================================

def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value to range."""
    return max(min_val, min(max_val, value))


def poisson_pmf(k: int, lam: float) -> float:
    """P(X = k) for X ~ Poisson(lam)."""
    if lam <= 0:
        return 1.0 if k == 0 else 0.0
    return (lam ** k) * math.exp(-lam) / math.factorial(k)


def poisson_over_probability(lam: float, k: int) -> float:
    """
    P(X > k) for X ~ Poisson(lam).

    For a line of 2.5 pass k=2: the market wins on 3 or more.
    """
    cumulative = sum(poisson_pmf(i, lam) for i in range(k + 1))
    return max(0.0, 1.0 - cumulative)


def clamped_over_probability(lam: float, k: int) -> float:
    """Poisson over-probability clamped to [MIN_OVER_PROB, MAX_OVER_PROB]."""
    return clamp(poisson_over_probability(lam, k), MIN_OVER_PROB, MAX_OVER_PROB)


def line_to_threshold(line: float) -> int:
    """Half-point line to the integer k used by poisson_over_probability."""
    return int(math.floor(line))


def format_line(line: float) -> str:
    """Render a line the way market keys spell it ('2.5', '10.5')."""
    return f"{line:.1f}"
