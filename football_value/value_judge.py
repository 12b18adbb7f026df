"""
Football Value Judge

Compares model probabilities against bookmaker prices and classifies
every priced market as BET, WATCH or AVOID. Markets without a price are
SKIP and never reach the output.

Market-first philosophy: the price is the baseline, and a market only
becomes a BET when the model beats the price-implied probability by the
market's configured edge and the data behind the estimate is sound.
"""

import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Any, Tuple

from .estimator import MarketProbabilityEstimate, QualityFlags
from .market_normalizer import PriceQuote
from .thresholds import ThresholdConfig, load_thresholds

logger = logging.getLogger(__name__)

ENGINE_VERSION = '2.0.0'

BET = 'BET'
WATCH = 'WATCH'
AVOID = 'AVOID'
SKIP = 'SKIP'

DECISIONS = (BET, WATCH, AVOID, SKIP)


@dataclass
class ValuePick:
    """
    Judged market for a fixture.

    Contains:
    - Price, model and implied probabilities, edge
    - Decision and confidence
    - Risk notes ({risks, reasons, data_gaps})
    - Rank among BETs (1 = primary pick)
    """
    fixture_id: int
    market_key: str
    selection: str
    odds: float
    p_model: float
    p_implied: float
    edge: float
    decision: str
    confidence: int
    risks: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    data_gaps: bool = False
    rank: Optional[int] = None
    is_primary: bool = False
    bookmaker: str = ''
    run_id: str = ''
    engine_version: str = ENGINE_VERSION

    @property
    def risk_notes(self) -> Dict[str, Any]:
        return {
            'risks': list(self.risks),
            'reasons': list(self.reasons),
            'data_gaps': self.data_gaps,
        }

    def to_dict(self) -> Dict:
        return {
            'fixture_id': self.fixture_id,
            'market': self.market_key,
            'selection': self.selection,
            'odds': self.odds,
            'p_model': self.p_model,
            'p_implied': round(self.p_implied, 4),
            'edge': round(self.edge, 4),
            'decision': self.decision,
            'confidence': self.confidence,
            'risk_notes': self.risk_notes,
            'rank': self.rank,
            'is_primary_pick': self.is_primary,
            'bookmaker': self.bookmaker,
            'run_id': self.run_id,
            'engine_version': self.engine_version,
        }


@dataclass
class ValueReport:
    """All judged picks for one fixture."""
    fixture_id: int
    picks: List[ValuePick] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    run_id: str = ''
    threshold_version: str = ''

    @property
    def bets(self) -> List[ValuePick]:
        return sorted(
            (p for p in self.picks if p.decision == BET),
            key=lambda p: p.rank or 0,
        )

    @property
    def primary_pick(self) -> Optional[ValuePick]:
        for pick in self.picks:
            if pick.is_primary:
                return pick
        return None

    @property
    def summary(self) -> Dict[str, Any]:
        primary = self.primary_pick
        return {
            'fixture_id': self.fixture_id,
            'total_picks': len(self.picks),
            'bet_picks': sum(1 for p in self.picks if p.decision == BET),
            'watch_picks': sum(1 for p in self.picks if p.decision == WATCH),
            'avoid_picks': sum(1 for p in self.picks if p.decision == AVOID),
            'skipped_markets': len(self.skipped),
            'primary_pick': primary.market_key if primary else None,
        }

    def to_dict(self) -> Dict:
        return {
            'fixture_id': self.fixture_id,
            'run_id': self.run_id,
            'engine_version': ENGINE_VERSION,
            'threshold_version': self.threshold_version,
            'summary': self.summary,
            'picks': [p.to_dict() for p in self.picks],
            'skipped': list(self.skipped),
        }

    def to_narrative_payload(self) -> Mapping[str, Any]:
        """
        Read-only view for narrative generation.

        Decisions are final here: the payload is an immutable mapping of
        tuples so a narrator can describe picks but not change them.
        """
        picks = tuple(
            MappingProxyType({
                'market': p.market_key,
                'selection': p.selection,
                'odds': p.odds,
                'p_model': p.p_model,
                'edge': round(p.edge, 4),
                'decision': p.decision,
                'confidence': p.confidence,
                'rank': p.rank,
                'is_primary_pick': p.is_primary,
                'risks': tuple(p.risks),
                'reasons': tuple(p.reasons),
            })
            for p in self.picks
        )
        return MappingProxyType({
            'fixture_id': self.fixture_id,
            'engine_version': ENGINE_VERSION,
            'summary': MappingProxyType(self.summary),
            'picks': picks,
        })


class ValueJudge:
    """
    Classifies priced markets.

    Rules per market:
    - No price: SKIP (logged, excluded)
    - edge >= min_edge and confidence >= min_confidence: BET, unless a
      disqualifying flag is set (goal variance on goal markets, small
      sample), in which case WATCH
    - edge < AVOID_EDGE: AVOID
    - otherwise WATCH

    At most MAX_BETS picks per fixture stay BET, ranked by edge.
    """

    AVOID_EDGE = -0.10
    MAX_BETS = 3

    def __init__(self, thresholds: Optional[ThresholdConfig] = None):
        self._thresholds = thresholds

    @property
    def thresholds(self) -> ThresholdConfig:
        """Lazy-load the threshold table."""
        if self._thresholds is None:
            self._thresholds = load_thresholds()
        return self._thresholds

    def evaluate(
        self,
        fixture_id: int,
        estimates: List[MarketProbabilityEstimate],
        quotes: Dict[str, PriceQuote],
        quality_flags: Optional[QualityFlags] = None,
        run_id: Optional[str] = None,
    ) -> ValueReport:
        """
        Judge every estimated market against its price.

        Args:
            fixture_id: Fixture being judged
            estimates: Model estimates, one per market
            quotes: Normalized prices keyed by market
            quality_flags: Data-quality flags from the metrics
            run_id: Analysis run id (new one generated if omitted)

        Returns:
            ValueReport with ranked picks
        """
        flags = quality_flags or QualityFlags()
        report = ValueReport(
            fixture_id=fixture_id,
            run_id=run_id or str(uuid.uuid4()),
            threshold_version=self.thresholds.version,
        )

        for estimate in estimates:
            quote = quotes.get(estimate.market_key)
            if quote is None:
                logger.debug(f"Fixture {fixture_id}: skipping {estimate.market_key} - no odds available")
                report.skipped.append(estimate.market_key)
                continue

            pick = self._judge(fixture_id, estimate, quote, flags)
            pick.run_id = report.run_id
            report.picks.append(pick)

        report.picks = self.rank_picks(report.picks, max_bets=self.MAX_BETS)

        summary = report.summary
        logger.info(
            f"Fixture {fixture_id}: {summary['bet_picks']} BET, {summary['watch_picks']} WATCH, "
            f"{summary['avoid_picks']} AVOID, {summary['skipped_markets']} skipped"
        )
        return report

    def _judge(
        self,
        fixture_id: int,
        estimate: MarketProbabilityEstimate,
        quote: PriceQuote,
        flags: QualityFlags,
    ) -> ValuePick:
        market = estimate.market_key
        threshold = self.thresholds.get(market)

        p_implied = quote.p_implied
        # An edge equal to min_edge meets the threshold
        edge = round(estimate.p_model - p_implied, 6)
        confidence = self._confidence(estimate)

        risks = self._risks(market, flags)
        reasons: List[str] = []

        if edge >= threshold.min_edge and confidence >= threshold.min_confidence:
            if self._is_disqualified(market, flags):
                decision = WATCH
                reasons.append('Positive edge but data-quality flags present')
            else:
                decision = BET
                reasons.append(
                    f"Edge {edge * 100:.1f}% meets threshold {threshold.min_edge * 100:.1f}%"
                )
                reasons.append(
                    f"Confidence {confidence} meets minimum {threshold.min_confidence:g}"
                )
        elif edge < self.AVOID_EDGE:
            decision = AVOID
            reasons.append(f"Negative edge {edge * 100:.1f}% - price is against the model")
        else:
            decision = WATCH
            if edge < threshold.min_edge:
                reasons.append(
                    f"Edge {edge * 100:.1f}% below minimum {threshold.min_edge * 100:.1f}%"
                )
            if confidence < threshold.min_confidence:
                reasons.append(
                    f"Confidence {confidence} below minimum {threshold.min_confidence:g}"
                )

        return ValuePick(
            fixture_id=fixture_id,
            market_key=market,
            selection=estimate.selection,
            odds=quote.decimal_odds,
            p_model=estimate.p_model,
            p_implied=p_implied,
            edge=edge,
            decision=decision,
            confidence=confidence,
            risks=risks,
            reasons=reasons,
            data_gaps=flags.small_sample,
            bookmaker=quote.bookmaker,
        )

    @staticmethod
    def _confidence(estimate: MarketProbabilityEstimate) -> int:
        confidence = round(estimate.p_model * 100)
        if estimate.uncertainty is not None:
            confidence = round(confidence * (1 - estimate.uncertainty))
        return int(confidence)

    @staticmethod
    def _risks(market: str, flags: QualityFlags) -> List[str]:
        risks = []
        if flags.high_variance_goals and is_goal_market(market):
            risks.append('High variance in historical goals')
        if flags.low_coverage_corners and market.startswith('corners_'):
            risks.append('Limited corner data coverage')
        if flags.low_coverage_cards and market.startswith('cards_'):
            risks.append('Limited card data coverage')
        if flags.small_sample:
            risks.append('Small sample (< 5 matches)')
        if flags.referee_unknown and market.startswith('cards_'):
            risks.append('Referee unknown')
        return risks

    @staticmethod
    def _is_disqualified(market: str, flags: QualityFlags) -> bool:
        return (flags.high_variance_goals and is_goal_market(market)) or flags.small_sample

    # =========================================================================
    # RANKING
    # =========================================================================

    def rank_picks(self, picks: List[ValuePick], max_bets: int = MAX_BETS) -> List[ValuePick]:
        """
        Rank BET picks by edge and enforce the pick limit.

        The top max_bets BETs get ranks 1..max_bets (rank 1 is the primary
        pick). Remaining BETs are demoted to WATCH.

        Returns:
            The same picks, mutated in place
        """
        bets = sorted(
            (p for p in picks if p.decision == BET),
            key=lambda p: p.edge,
            reverse=True,
        )

        for pick in picks:
            pick.rank = None
            pick.is_primary = False

        for idx, pick in enumerate(bets):
            if idx < max_bets:
                pick.rank = idx + 1
                pick.is_primary = idx == 0
            else:
                pick.decision = WATCH
                pick.reasons.append('Demoted: exceeds pick limit')

        if len(bets) > max_bets:
            logger.debug(f"Demoted {len(bets) - max_bets} BET picks to WATCH (limit {max_bets})")

        return picks

    def rank_opportunities(
        self,
        estimates: List[MarketProbabilityEstimate],
        reference_odds: Mapping[str, float],
    ) -> List[Tuple[MarketProbabilityEstimate, float]]:
        """
        Order markets by model probability over a reference price table.

        Used to preview where value may appear before real prices are
        available. The reference table is passed in explicitly; markets
        absent from it or with invalid odds are ignored.

        Returns:
            List of (estimate, edge_vs_reference), highest edge first
        """
        ranked = []
        for estimate in estimates:
            odds = reference_odds.get(estimate.market_key)
            if not odds or odds <= 1.0:
                continue
            ranked.append((estimate, round(estimate.p_model - 1.0 / odds, 4)))

        ranked.sort(key=lambda item: item[1], reverse=True)
        return ranked


def is_goal_market(market_key: str) -> bool:
    """Markets priced from the goals expectation (totals, team goals, halves)."""
    return (
        market_key.endswith('_goals')
        or market_key.startswith(('home_over_', 'away_over_', '1t_', '2t_'))
    )


# =============================================================================
# CONVENIENCE
# =============================================================================

_judge: Optional[ValueJudge] = None


def get_value_judge() -> ValueJudge:
    """Get singleton value judge instance."""
    global _judge
    if _judge is None:
        _judge = ValueJudge()
    return _judge
