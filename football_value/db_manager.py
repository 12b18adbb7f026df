"""
Football Value Database Manager

Handles Supabase operations for value picks, predictions and settlement
verdicts.

Tables:
    - value_picks: Judged markets, one row per (run_id, market); rows are
      never updated after insert
    - value_runs: Current run pointer per fixture (older runs are superseded)
    - predictions: BET picks awaiting settlement
    - prediction_verdicts: One verdict per prediction (upserted)
    - parlays: Parlay status roll-up
"""

import os
import logging
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from .value_judge import ValueReport
    from .settlement import SettlementVerdict

logger = logging.getLogger(__name__)

_supabase_client = None


def load_environment():
    """Load the first .env file found (.env.local wins over .env)."""
    for env_path in ['.env.local', '.env', '../.env.local', '../.env']:
        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path)
            return env_path
    return None


def _get_supabase_client():
    """Lazy-load Supabase client."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client

    from supabase import create_client

    load_environment()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY required in environment")

    _supabase_client = create_client(url, key)
    return _supabase_client


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ValueDBManager:
    """
    Manages the value engine tables.

    Uses Supabase Python client for simplicity. A client can be injected
    for tests.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, client=None):
        """
        Initialize database manager.

        Args:
            url: Optional Supabase URL (defaults to SUPABASE_URL env var)
            key: Optional Supabase key (defaults to SUPABASE_KEY env var)
            client: Pre-built client (skips connection setup)
        """
        if client is not None:
            self.client = client
        elif url and key:
            from supabase import create_client
            self.client = create_client(url, key)
        else:
            self.client = _get_supabase_client()

        logger.info("[Value DB] Connected to Supabase")

    # =========================================================================
    # Value Pick Operations
    # =========================================================================

    def save_value_picks(self, report: 'ValueReport', fixture_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Store a fixture's judged picks as a new run.

        Picks are inserted under the report's run_id and the fixture's
        run pointer moves to it; rows of earlier runs stay untouched.
        BET picks are also registered as predictions for settlement.

        Args:
            report: ValueReport from the value judge
            fixture_date: Match date (for settlement queries)

        Returns:
            Dict with run_id, picks_saved, predictions_saved
        """
        rows = [p.to_dict() for p in report.picks]
        if rows:
            self.client.table("value_picks").insert(rows).execute()

        self.client.table("value_runs").upsert({
            "fixture_id": report.fixture_id,
            "run_id": report.run_id,
            "threshold_version": report.threshold_version,
            "updated_at": _now(),
        }, on_conflict="fixture_id").execute()

        predictions = [
            {
                "run_id": report.run_id,
                "fixture_id": report.fixture_id,
                "match_date": str(fixture_date) if fixture_date else None,
                "market": pick.market_key,
                "selection": pick.selection,
                "p_model": pick.p_model,
                "odds": pick.odds,
                "rank": pick.rank,
                "is_primary_pick": pick.is_primary,
            }
            for pick in report.bets
        ]
        if predictions:
            self.client.table("predictions").insert(predictions).execute()

        logger.info(
            f"[Value DB] Fixture {report.fixture_id}: saved run {report.run_id[:8]} "
            f"({len(rows)} picks, {len(predictions)} predictions)"
        )
        return {
            "run_id": report.run_id,
            "picks_saved": len(rows),
            "predictions_saved": len(predictions),
        }

    def get_current_run(self, fixture_id: int) -> Optional[str]:
        """Run id whose picks are current for a fixture."""
        result = self.client.table("value_runs").select("run_id").eq(
            "fixture_id", fixture_id
        ).execute()
        return result.data[0]["run_id"] if result.data else None

    def get_value_picks(self, fixture_id: int, run_id: Optional[str] = None) -> List[Dict]:
        """Picks of a run (current run by default)."""
        run_id = run_id or self.get_current_run(fixture_id)
        if not run_id:
            return []
        return self.client.table("value_picks").select("*").eq(
            "fixture_id", fixture_id
        ).eq("run_id", run_id).execute().data

    # =========================================================================
    # Prediction / Verdict Operations
    # =========================================================================

    def get_pending_predictions(self, match_date: Optional[date] = None) -> List[Dict]:
        """
        Predictions without a final verdict.

        A prediction is pending when it has no verdict or only an
        INDETERMINATE one that was not set manually.

        Args:
            match_date: Optional filter by match date

        Returns:
            List of prediction dicts
        """
        query = self.client.table("predictions").select("*")
        if match_date:
            query = query.eq("match_date", str(match_date))

        predictions = self._current_run_only(query.execute().data)
        if not predictions:
            return []

        ids = [p["id"] for p in predictions]
        verdicts = self.client.table("prediction_verdicts").select(
            "prediction_id, outcome, is_manual"
        ).in_("prediction_id", ids).execute().data

        final_ids = {
            v["prediction_id"] for v in verdicts
            if v.get("is_manual") or v.get("outcome") in ("WON", "LOST")
        }
        return [p for p in predictions if p["id"] not in final_ids]

    def _current_run_only(self, predictions: List[Dict]) -> List[Dict]:
        """Drop predictions registered by runs a later run has superseded."""
        if not predictions:
            return []

        fixture_ids = sorted({p["fixture_id"] for p in predictions})
        runs = self.client.table("value_runs").select("fixture_id, run_id").in_(
            "fixture_id", fixture_ids
        ).execute().data
        current = {r["fixture_id"]: r["run_id"] for r in runs}

        kept = [
            p for p in predictions
            if current.get(p["fixture_id"], p.get("run_id")) == p.get("run_id")
        ]
        if len(kept) < len(predictions):
            logger.info(f"[Value DB] Skipping {len(predictions) - len(kept)} predictions from superseded runs")
        return kept

    def upsert_verdict(self, verdict: 'SettlementVerdict') -> Dict:
        """
        Store a verdict, replacing any earlier one for the prediction.

        Args:
            verdict: SettlementVerdict from the settlement engine

        Returns:
            Stored verdict record
        """
        record = verdict.to_dict()
        record["verified_at"] = _now()

        result = self.client.table("prediction_verdicts").upsert(
            record,
            on_conflict="prediction_id"
        ).execute()

        logger.debug(f"[Value DB] Verdict {verdict.prediction_id}: {verdict.outcome}")
        return result.data[0] if result.data else record

    def get_verdict(self, prediction_id: Any) -> Optional[Dict]:
        result = self.client.table("prediction_verdicts").select("*").eq(
            "prediction_id", prediction_id
        ).execute()
        return result.data[0] if result.data else None

    def apply_manual_override(self, prediction_id: Any, outcome: str, note: str = '') -> Dict:
        """
        Force a verdict for a prediction.

        Manual verdicts are final: later settlement passes skip them.
        """
        record = {
            "prediction_id": prediction_id,
            "outcome": outcome,
            "matcher": "manual_override",
            "is_manual": True,
            "notes": note,
            "verified_at": _now(),
        }
        result = self.client.table("prediction_verdicts").upsert(
            record,
            on_conflict="prediction_id"
        ).execute()

        logger.info(f"[Value DB] Manual override {prediction_id}: {outcome}")
        return result.data[0] if result.data else record

    # =========================================================================
    # Parlay Operations
    # =========================================================================

    def get_open_parlays(self) -> List[Dict]:
        """Parlays still PENDING with their leg prediction ids."""
        return self.client.table("parlays").select(
            "id, status, prediction_ids"
        ).eq("status", "PENDING").execute().data

    def get_verdict_outcomes(self, prediction_ids: List[Any]) -> Dict[Any, str]:
        if not prediction_ids:
            return {}
        rows = self.client.table("prediction_verdicts").select(
            "prediction_id, outcome"
        ).in_("prediction_id", prediction_ids).execute().data
        return {r["prediction_id"]: r["outcome"] for r in rows}

    def update_parlay_status(self, parlay_id: Any, status: str) -> None:
        self.client.table("parlays").update({
            "status": status,
            "settled_at": _now() if status != "PENDING" else None,
        }).eq("id", parlay_id).execute()
        logger.debug(f"[Value DB] Parlay {parlay_id}: {status}")

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def test_connection(self) -> bool:
        """Test database connection."""
        try:
            self.client.table("value_runs").select("fixture_id").limit(1).execute()
            return True
        except Exception as e:
            logger.error(f"[Value DB] Connection test failed: {e}")
            return False


# Singleton instance
_db_manager: Optional[ValueDBManager] = None


def get_db_manager() -> ValueDBManager:
    """Get singleton database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = ValueDBManager()
    return _db_manager
