"""Football market models"""

from .base import (
    BaseMarketModel,
    MarketProbabilityEstimate,
    TeamFormSample,
    RefereeStats,
    HeadToHeadRecord,
    SeasonAggregate,
    FixtureContext,
    FixtureMetrics,
    QualityFlags,
    poisson_pmf,
    poisson_over_probability,
    clamped_over_probability,
)
from .goals_model import GoalsModel
from .halves_model import HalvesModel
from .corners_model import CornersModel
from .cards_model import CardsModel
from .btts_model import BttsModel
from .result_model import ResultModel

# All model classes in evaluation order
ALL_MODELS = [
    GoalsModel,
    HalvesModel,
    BttsModel,
    ResultModel,
    CornersModel,
    CardsModel,
]

__all__ = [
    'BaseMarketModel',
    'MarketProbabilityEstimate',
    'TeamFormSample',
    'RefereeStats',
    'HeadToHeadRecord',
    'SeasonAggregate',
    'FixtureContext',
    'FixtureMetrics',
    'QualityFlags',
    'GoalsModel',
    'HalvesModel',
    'CornersModel',
    'CardsModel',
    'BttsModel',
    'ResultModel',
    'ALL_MODELS',
    'poisson_pmf',
    'poisson_over_probability',
    'clamped_over_probability',
]
