"""
Football Settlement Engine

Settles stored predictions against final fixture results.

Usage:
    from football_value.settlement import SettlementEngine

    engine = SettlementEngine(db_manager, data_provider)
    summary = engine.settle_pending()
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Any

from .errors import FeedUnavailableError
from .grading import FinalResult, GradeResult, grade, WON, LOST, INDETERMINATE

logger = logging.getLogger(__name__)

PENDING = 'PENDING'


@dataclass(frozen=True)
class SettlementVerdict:
    """Graded outcome of one prediction."""
    prediction_id: Any
    fixture_id: int
    market_key: str
    selection_text: str
    actual_score: str
    outcome: str
    matcher: str
    confidence_delta: Optional[float] = None
    actual_outcome: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prediction_id': self.prediction_id,
            'fixture_id': self.fixture_id,
            'market': self.market_key,
            'selection': self.selection_text,
            'actual_score': self.actual_score,
            'outcome': self.outcome,
            'matcher': self.matcher,
            'confidence_delta': self.confidence_delta,
            'actual_outcome': self.actual_outcome,
            'is_manual': False,
        }


def confidence_delta(p_model: Optional[float], outcome: str) -> Optional[float]:
    """
    Distance between the model's confidence and what happened.

    0 means the model was fully confident and right; 100 means fully
    confident and wrong. None for INDETERMINATE or unknown probability.
    """
    if outcome not in (WON, LOST) or p_model is None:
        return None
    actual = 100.0 if outcome == WON else 0.0
    return round(abs(p_model * 100 - actual), 2)


def settle_parlay(outcomes: List[str]) -> str:
    """
    Parlay status from its legs' outcomes.

    LOST if any leg lost, PENDING while any leg is unresolved, else WON.
    """
    if any(o == LOST for o in outcomes):
        return LOST
    if not outcomes or any(o not in (WON, LOST) for o in outcomes):
        return PENDING
    return WON


def grade_prediction(prediction: Dict, result: FinalResult) -> SettlementVerdict:
    """Grade a stored prediction row against its fixture's result."""
    graded: GradeResult = grade(
        prediction.get('market', ''),
        prediction.get('selection', ''),
        result,
    )
    return SettlementVerdict(
        prediction_id=prediction['id'],
        fixture_id=result.fixture_id,
        market_key=prediction.get('market', ''),
        selection_text=prediction.get('selection', ''),
        actual_score=result.score,
        outcome=graded.outcome,
        matcher=graded.matcher,
        confidence_delta=confidence_delta(prediction.get('p_model'), graded.outcome),
        actual_outcome=graded.detail,
    )


class SettlementEngine:
    """
    Settles pending predictions against final results.

    Settlement Logic:
    1. Load pending predictions and group them by fixture
    2. Fetch each fixture's result once (in parallel)
    3. Unfinished fixtures and failed lookups are deferred to the next pass
    4. Grade each prediction and upsert its verdict by prediction id
    5. Roll leg verdicts up into parlay status
    """

    def __init__(self, db_manager=None, data_provider=None, max_workers: int = 4):
        """
        Initialize settlement engine.

        Args:
            db_manager: ValueDBManager instance (lazy loaded if not provided)
            data_provider: FootballDataProvider instance (lazy loaded if not provided)
            max_workers: Parallel result lookups
        """
        self._db = db_manager
        self._provider = data_provider
        self.max_workers = max_workers

    @property
    def db(self):
        """Lazy load database manager."""
        if self._db is None:
            from .db_manager import get_db_manager
            self._db = get_db_manager()
        return self._db

    @property
    def provider(self):
        """Lazy load data provider."""
        if self._provider is None:
            from .data_provider import get_data_provider
            self._provider = get_data_provider()
        return self._provider

    def settle_pending(self, match_date: Optional[date] = None, dry_run: bool = False) -> Dict[str, Any]:
        """
        Settle all pending predictions.

        Args:
            match_date: Optional filter by match date
            dry_run: Grade without writing verdicts

        Returns:
            Settlement summary dict
        """
        summary = {
            'date': str(match_date) if match_date else None,
            'predictions_found': 0,
            'fixtures_checked': 0,
            'verdicts_written': 0,
            'won': 0,
            'lost': 0,
            'indeterminate': 0,
            'deferred_fixtures': [],
            'verdicts': [],
            'errors': [],
        }

        predictions = self.db.get_pending_predictions(match_date)
        summary['predictions_found'] = len(predictions)

        if not predictions:
            logger.info("[Settlement] No pending predictions")
            return summary

        by_fixture: Dict[int, List[Dict]] = defaultdict(list)
        for prediction in predictions:
            by_fixture[prediction['fixture_id']].append(prediction)

        logger.info(f"[Settlement] {len(predictions)} pending predictions across {len(by_fixture)} fixtures")

        results = self._fetch_results(list(by_fixture), summary)
        summary['fixtures_checked'] = len(by_fixture)

        for fixture_id, fixture_predictions in by_fixture.items():
            result = results.get(fixture_id)
            if result is None:
                continue

            for prediction in fixture_predictions:
                try:
                    verdict = grade_prediction(prediction, result)
                    if not dry_run:
                        self.db.upsert_verdict(verdict)
                        summary['verdicts_written'] += 1
                except Exception as e:
                    logger.error(f"[Settlement] Error settling prediction {prediction.get('id')}: {e}")
                    summary['errors'].append(f"Prediction {prediction.get('id')}: {e}")
                    continue

                summary['verdicts'].append(verdict.to_dict())
                if verdict.outcome == WON:
                    summary['won'] += 1
                elif verdict.outcome == LOST:
                    summary['lost'] += 1
                else:
                    summary['indeterminate'] += 1

        logger.info(
            f"[Settlement] {summary['won']} WON, {summary['lost']} LOST, "
            f"{summary['indeterminate']} INDETERMINATE, "
            f"{len(summary['deferred_fixtures'])} fixtures deferred"
        )
        return summary

    def _fetch_results(self, fixture_ids: List[int], summary: Dict[str, Any]) -> Dict[int, FinalResult]:
        """Fetch each result once; failures and unfinished fixtures are deferred."""
        results: Dict[int, FinalResult] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.provider.get_fixture_result, fixture_id): fixture_id
                for fixture_id in fixture_ids
            }
            for future in as_completed(futures):
                fixture_id = futures[future]
                try:
                    result = future.result()
                except FeedUnavailableError as e:
                    logger.warning(f"[Settlement] Deferring fixture {fixture_id}: {e}")
                    summary['deferred_fixtures'].append(fixture_id)
                    continue
                except Exception as e:
                    logger.error(f"[Settlement] Result lookup failed for fixture {fixture_id}: {e}")
                    summary['deferred_fixtures'].append(fixture_id)
                    summary['errors'].append(f"Fixture {fixture_id}: {e}")
                    continue

                if result is None or not result.is_finished:
                    status = result.status if result else 'unknown'
                    logger.info(f"[Settlement] Fixture {fixture_id} not finished ({status}) - deferring")
                    summary['deferred_fixtures'].append(fixture_id)
                    continue

                results[fixture_id] = result

        return results

    def settle_parlays(self, dry_run: bool = False) -> Dict[str, Any]:
        """
        Roll leg verdicts up into parlay status.

        Returns:
            Summary dict with counts per status
        """
        summary = {'parlays_checked': 0, 'won': 0, 'lost': 0, 'pending': 0, 'errors': []}

        for parlay in self.db.get_open_parlays():
            summary['parlays_checked'] += 1
            try:
                leg_ids = parlay.get('prediction_ids') or []
                outcomes_by_id = self.db.get_verdict_outcomes(leg_ids)
                outcomes = [outcomes_by_id.get(pid, INDETERMINATE) for pid in leg_ids]
                status = settle_parlay(outcomes)

                if status != PENDING and not dry_run:
                    self.db.update_parlay_status(parlay['id'], status)
                summary[status.lower()] += 1
            except Exception as e:
                logger.error(f"[Settlement] Error settling parlay {parlay.get('id')}: {e}")
                summary['errors'].append(f"Parlay {parlay.get('id')}: {e}")

        return summary

    def apply_manual_override(self, prediction_id: Any, outcome: str, note: str = '') -> Dict:
        """Set a final verdict by hand (resolves INDETERMINATE predictions)."""
        if outcome not in (WON, LOST, INDETERMINATE):
            raise ValueError(f"Invalid outcome: {outcome}")
        return self.db.apply_manual_override(prediction_id, outcome, note)


# Convenience function
def settle_pending_predictions(match_date: Optional[date] = None, db_manager=None) -> Dict[str, Any]:
    """Settle all pending predictions (optionally for one match date)."""
    engine = SettlementEngine(db_manager)
    return engine.settle_pending(match_date)
