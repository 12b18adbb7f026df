"""
Market Thresholds

Per-market minimum edge and confidence used by the value judge. The
table is a versioned JSON document loaded at runtime so thresholds can
be tuned without a code change:

    {
      "version": "2024.1",
      "default": {"min_edge": 0.08, "min_confidence": 55},
      "markets": {"over_2.5_goals": {"min_edge": 0.015, "min_confidence": 50}}
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import ThresholdConfigError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS_PATH = Path(__file__).resolve().parent.parent / 'config' / 'market_thresholds.json'

FALLBACK_MIN_EDGE = 0.08
FALLBACK_MIN_CONFIDENCE = 55


@dataclass(frozen=True)
class MarketThreshold:
    min_edge: float
    min_confidence: float

    def to_dict(self) -> Dict[str, float]:
        return {'min_edge': self.min_edge, 'min_confidence': self.min_confidence}


@dataclass
class ThresholdConfig:
    """Versioned threshold table with a fallback for unlisted markets."""
    version: str = 'builtin'
    default: MarketThreshold = field(
        default_factory=lambda: MarketThreshold(FALLBACK_MIN_EDGE, FALLBACK_MIN_CONFIDENCE)
    )
    markets: Dict[str, MarketThreshold] = field(default_factory=dict)

    def get(self, market_key: str) -> MarketThreshold:
        return self.markets.get(market_key, self.default)

    def to_dict(self) -> Dict:
        return {
            'version': self.version,
            'default': self.default.to_dict(),
            'markets': {k: v.to_dict() for k, v in self.markets.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ThresholdConfig':
        if not isinstance(data, dict):
            raise ThresholdConfigError("Threshold document must be a JSON object")

        version = data.get('version')
        if not version:
            raise ThresholdConfigError("Threshold document has no version")

        default = (
            _parse_threshold('default', data['default'])
            if 'default' in data
            else MarketThreshold(FALLBACK_MIN_EDGE, FALLBACK_MIN_CONFIDENCE)
        )

        markets = data.get('markets', {})
        if not isinstance(markets, dict):
            raise ThresholdConfigError("'markets' must be an object keyed by market")

        return cls(
            version=str(version),
            default=default,
            markets={key: _parse_threshold(key, value) for key, value in markets.items()},
        )


def _parse_threshold(key: str, value: Dict) -> MarketThreshold:
    try:
        min_edge = float(value['min_edge'])
        min_confidence = float(value['min_confidence'])
    except (KeyError, TypeError, ValueError) as e:
        raise ThresholdConfigError(f"Invalid threshold for {key}: {value!r}") from e

    if not -1.0 <= min_edge <= 1.0:
        raise ThresholdConfigError(f"min_edge out of range for {key}: {min_edge}")
    if not 0 <= min_confidence <= 100:
        raise ThresholdConfigError(f"min_confidence out of range for {key}: {min_confidence}")

    return MarketThreshold(min_edge=min_edge, min_confidence=min_confidence)


def load_thresholds(path: Optional[Union[str, Path]] = None) -> ThresholdConfig:
    """
    Load the threshold table.

    Resolution order: explicit path, MARKET_THRESHOLDS_PATH, the bundled
    config/market_thresholds.json. A missing file yields the built-in
    fallback; a malformed file raises ThresholdConfigError.
    """
    resolved = Path(path or os.getenv('MARKET_THRESHOLDS_PATH') or DEFAULT_THRESHOLDS_PATH)

    if not resolved.exists():
        logger.warning(f"Threshold file {resolved} not found - using fallback thresholds")
        return ThresholdConfig()

    try:
        with open(resolved) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ThresholdConfigError(f"Threshold file {resolved} is not valid JSON: {e}") from e

    config = ThresholdConfig.from_dict(data)
    logger.info(f"Loaded {len(config.markets)} market thresholds (version {config.version})")
    return config
