#!/usr/bin/env python3
"""
Football Value Daily Orchestrator

Runs the daily football value workflow:
1. Settlement - Grade pending predictions against final results
2. Analysis - Estimate, price-check and judge today's fixtures

All dates are UTC, matching API-Football fixture dates.

Usage:
    # Full pipeline for today
    python -m scripts.daily_orchestrator

    # Specific date
    python -m scripts.daily_orchestrator --date 2026-01-02

    # Settlement only
    python -m scripts.daily_orchestrator --settle-only

    # Analysis only, limited leagues
    python -m scripts.daily_orchestrator --analyze-only --league 39 --league 140

    # Dry run (don't write to database)
    python -m scripts.daily_orchestrator --dry-run
"""

import sys
import argparse
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from football_value.db_manager import load_environment

logger = logging.getLogger('football_orchestrator')


def get_today_utc() -> date:
    return datetime.now(timezone.utc).date()


def parse_date(date_str: str) -> date:
    return datetime.strptime(date_str, '%Y-%m-%d').date()


class DailyOrchestrator:
    """
    Orchestrates the daily value pipeline.

    Stages:
    1. Settlement - pending predictions, deferred fixtures retried
    2. Analysis - today's fixtures through the fixture pipeline
    """

    def __init__(
        self,
        dry_run: bool = False,
        max_workers: Optional[int] = None,
        league_ids: Optional[List[int]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            dry_run: If True, don't write to database
            max_workers: Parallel fixtures (defaults to PIPELINE_MAX_WORKERS)
            league_ids: Restrict analysis to these leagues
        """
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.league_ids = league_ids
        self.results = {
            'settlement': None,
            'analysis': None,
            'errors': [],
        }

        self._db = None
        self._data_provider = None
        self._odds_client = None
        self._pipeline = None
        self._settlement_engine = None

    @property
    def db(self):
        """Lazy load database manager."""
        if self._db is None:
            from football_value.db_manager import get_db_manager
            self._db = get_db_manager()
        return self._db

    @property
    def data_provider(self):
        """Lazy load data provider."""
        if self._data_provider is None:
            from football_value.data_provider import get_data_provider
            self._data_provider = get_data_provider()
        return self._data_provider

    @property
    def odds_client(self):
        """Lazy load odds client."""
        if self._odds_client is None:
            from football_value.odds_client import get_odds_client
            self._odds_client = get_odds_client()
        return self._odds_client

    @property
    def pipeline(self):
        """Lazy load fixture pipeline."""
        if self._pipeline is None:
            from football_value.pipeline import FixturePipeline
            self._pipeline = FixturePipeline(max_workers=self.max_workers)
        return self._pipeline

    @property
    def settlement_engine(self):
        """Lazy load settlement engine."""
        if self._settlement_engine is None:
            from football_value.settlement import SettlementEngine
            self._settlement_engine = SettlementEngine(self.db, self.data_provider)
        return self._settlement_engine

    def run(
        self,
        target_date: Optional[date] = None,
        settle_only: bool = False,
        analyze_only: bool = False,
    ) -> Dict[str, Any]:
        """
        Run the daily pipeline.

        Args:
            target_date: Fixture date to analyze. Defaults to today (UTC).
            settle_only: Only run settlement stage
            analyze_only: Only run analysis stage

        Returns:
            Results dictionary
        """
        if target_date is None:
            target_date = get_today_utc()

        print("\n" + "=" * 80)
        print("FOOTBALL VALUE DAILY ORCHESTRATOR")
        print("=" * 80)
        print(f"Target Date: {target_date} (UTC)")
        print(f"Dry Run: {self.dry_run}")
        print("=" * 80)

        if not analyze_only:
            print("\n" + "-" * 80)
            print("STAGE 1: SETTLEMENT (Pending Predictions)")
            print("-" * 80)
            self.results['settlement'] = self._run_settlement()

        if not settle_only:
            print("\n" + "-" * 80)
            print(f"STAGE 2: ANALYSIS ({target_date} Fixtures)")
            print("-" * 80)
            self.results['analysis'] = self._run_analysis(target_date)

        self._print_summary()
        return self.results

    def _run_settlement(self) -> Dict[str, Any]:
        try:
            result = self.settlement_engine.settle_pending(dry_run=self.dry_run)
            result['parlays'] = self.settlement_engine.settle_parlays(dry_run=self.dry_run)

            print(f"  Predictions found: {result['predictions_found']}")
            print(f"  Results: {result['won']}W / {result['lost']}L / {result['indeterminate']}I")
            print(f"  Deferred fixtures: {len(result['deferred_fixtures'])}")

            for err in result['errors'][:3]:
                print(f"  [ERROR] {err}")
            self.results['errors'].extend(result['errors'])
            return result

        except Exception as e:
            logger.error(f"Settlement error: {e}")
            self.results['errors'].append(f"Settlement: {e}")
            return {'error': str(e)}

    def _run_analysis(self, target_date: date) -> Dict[str, Any]:
        try:
            fixtures = self.data_provider.get_fixtures(target_date, self.league_ids)
            pending = [
                f for f in fixtures
                if f.get('fixture', {}).get('status', {}).get('short') == 'NS'
            ]
            print(f"  Fixtures found: {len(fixtures)} ({len(pending)} not started)")

            if not pending:
                return {'date': str(target_date), 'fixtures': 0}

            batch = self.pipeline.run_fixtures(
                pending,
                build_context=self.data_provider.build_context,
                fetch_quotes=self.odds_client.get_quotes,
            )
            summary = batch.summary
            summary['date'] = str(target_date)
            summary['picks_saved'] = 0

            for job in batch.completed:
                if self.dry_run:
                    for pick in job.report.bets:
                        print(f"    [DRY RUN] Fixture {job.fixture_id}: BET {pick.market_key} @ {pick.odds} (edge {pick.edge:+.3f})")
                    continue
                try:
                    saved = self.db.save_value_picks(job.report, fixture_date=target_date)
                    summary['picks_saved'] += saved['picks_saved']
                except Exception as e:
                    logger.error(f"Error saving picks for fixture {job.fixture_id}: {e}")
                    summary['errors'].append(f"Save {job.fixture_id}: {e}")

            print(f"  Fixtures analyzed: {summary['completed']} ({summary['failed']} failed)")
            print(f"  Picks: {summary['bet_picks']} BET / {summary['watch_picks']} WATCH / {summary['avoid_picks']} AVOID")

            self.results['errors'].extend(summary['errors'])
            return summary

        except Exception as e:
            logger.error(f"Analysis error: {e}")
            self.results['errors'].append(f"Analysis: {e}")
            return {'date': str(target_date), 'error': str(e)}

    def _print_summary(self):
        """Print pipeline summary."""
        print("\n" + "=" * 80)
        print("PIPELINE SUMMARY")
        print("=" * 80)

        if self.results['settlement']:
            s = self.results['settlement']
            print("\nSettlement:")
            print(f"  Verdicts written: {s.get('verdicts_written', 0)}")
            if s.get('error'):
                print(f"  Error: {s['error']}")

        if self.results['analysis']:
            a = self.results['analysis']
            print(f"\nAnalysis ({a.get('date', 'N/A')}):")
            print(f"  Fixtures: {a.get('fixtures', 0)}")
            print(f"  BET picks: {a.get('bet_picks', 0)}")
            if a.get('error'):
                print(f"  Error: {a['error']}")

        if self.results['errors']:
            print("\nErrors:")
            for err in self.results['errors']:
                print(f"  - {err}")

        print("\n" + "=" * 80)


# =============================================================================
# CLI
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Football Value Daily Orchestrator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scripts.daily_orchestrator
  python -m scripts.daily_orchestrator --settle-only
  python -m scripts.daily_orchestrator --analyze-only --date 2026-01-02
        """
    )
    parser.add_argument('--date', type=str, help='Fixture date in YYYY-MM-DD format (UTC). Default: today')
    stage = parser.add_mutually_exclusive_group()
    stage.add_argument('--settle-only', action='store_true', help='Only run settlement stage')
    stage.add_argument('--analyze-only', action='store_true', help='Only run analysis stage')
    parser.add_argument('--dry-run', action='store_true', help='Don\'t write to database')
    parser.add_argument('--workers', type=int, help='Parallel fixtures (default: PIPELINE_MAX_WORKERS or 4)')
    parser.add_argument('--league', type=int, action='append', dest='leagues', help='League id (repeatable)')
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    load_environment()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    target_date = None
    if args.date:
        try:
            target_date = parse_date(args.date)
        except ValueError:
            print(f"Error: Invalid date format: {args.date}")
            print("Use YYYY-MM-DD format")
            sys.exit(1)

    orchestrator = DailyOrchestrator(
        dry_run=args.dry_run,
        max_workers=args.workers,
        league_ids=args.leagues,
    )

    results = orchestrator.run(
        target_date=target_date,
        settle_only=args.settle_only,
        analyze_only=args.analyze_only,
    )

    if results.get('errors'):
        sys.exit(1)


if __name__ == '__main__':
    main()
