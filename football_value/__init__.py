"""
Football Value Engine

Market-first valuation and settlement for football fixtures.
Converts historical team/referee figures into market probabilities and
compares them against bookmaker prices.

Core components:
- estimator/: Market models (goals, halves, BTTS, result, corners, cards)
- probability_estimator: Runs the models over a fixture
- market_normalizer: Bookmaker wording to canonical market keys
- value_judge: BET/WATCH/AVOID/SKIP decisions with pick ranking
- grading/: Settlement matchers for stored predictions
- settlement: Settles pending predictions and parlays
- pipeline: Parallel fixture analysis
- data_provider / odds_client: API-Football clients
- db_manager: Supabase operations for picks, predictions and verdicts
"""

from .errors import FootballValueError, FeedUnavailableError, ThresholdConfigError
from .estimator import (
    FixtureContext,
    FixtureMetrics,
    HeadToHeadRecord,
    MarketProbabilityEstimate,
    QualityFlags,
    RefereeStats,
    SeasonAggregate,
    TeamFormSample,
    ALL_MODELS,
)
from .probability_estimator import (
    EstimatorResult,
    ProbabilityEstimator,
    get_probability_estimator,
)
from .market_normalizer import PriceQuote, normalize_market_key, normalize_quotes
from .thresholds import ThresholdConfig, MarketThreshold, load_thresholds
from .value_judge import (
    ValueJudge,
    ValuePick,
    ValueReport,
    ENGINE_VERSION,
    get_value_judge,
)
from .grading import FinalResult, GradeResult, grade
from .settlement import (
    SettlementEngine,
    SettlementVerdict,
    confidence_delta,
    settle_parlay,
    settle_pending_predictions,
)
from .pipeline import FixturePipeline, BatchResult, FixtureJob
from .data_provider import FootballDataProvider, get_data_provider
from .odds_client import FootballOddsClient, get_odds_client
from .db_manager import ValueDBManager, get_db_manager

__all__ = [
    # Errors
    'FootballValueError',
    'FeedUnavailableError',
    'ThresholdConfigError',
    # Estimator
    'FixtureContext',
    'FixtureMetrics',
    'HeadToHeadRecord',
    'MarketProbabilityEstimate',
    'QualityFlags',
    'RefereeStats',
    'SeasonAggregate',
    'TeamFormSample',
    'ALL_MODELS',
    'EstimatorResult',
    'ProbabilityEstimator',
    # Normalizer / judge
    'PriceQuote',
    'normalize_market_key',
    'normalize_quotes',
    'ThresholdConfig',
    'MarketThreshold',
    'load_thresholds',
    'ValueJudge',
    'ValuePick',
    'ValueReport',
    'ENGINE_VERSION',
    # Settlement
    'FinalResult',
    'GradeResult',
    'grade',
    'SettlementEngine',
    'SettlementVerdict',
    'confidence_delta',
    'settle_parlay',
    'settle_pending_predictions',
    # Pipeline and clients
    'FixturePipeline',
    'BatchResult',
    'FixtureJob',
    'FootballDataProvider',
    'FootballOddsClient',
    'ValueDBManager',
    # Singletons
    'get_probability_estimator',
    'get_value_judge',
    'get_data_provider',
    'get_odds_client',
    'get_db_manager',
]

__version__ = '2.0.0'
