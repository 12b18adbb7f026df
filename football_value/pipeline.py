"""
Fixture Pipeline

Runs Estimator -> Normalizer -> Value Judge for many fixtures in
parallel. Each fixture is an independent job: an exception in one marks
only that job as failed and the batch carries on.
"""

import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Any

from .estimator import FixtureContext
from .market_normalizer import PriceQuote
from .probability_estimator import EstimatorResult, ProbabilityEstimator, get_probability_estimator
from .value_judge import ValueJudge, ValueReport, get_value_judge

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


def default_max_workers() -> int:
    """Worker count from PIPELINE_MAX_WORKERS (falls back to 4)."""
    raw = os.getenv('PIPELINE_MAX_WORKERS')
    try:
        return max(1, int(raw)) if raw else DEFAULT_MAX_WORKERS
    except ValueError:
        logger.warning(f"Invalid PIPELINE_MAX_WORKERS={raw!r} - using {DEFAULT_MAX_WORKERS}")
        return DEFAULT_MAX_WORKERS


@dataclass
class FixtureJob:
    """Outcome of one fixture's analysis."""
    fixture_id: int
    status: str = 'pending'         # 'done' or 'failed'
    estimates: Optional[EstimatorResult] = None
    report: Optional[ValueReport] = None
    error: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fixture_id': self.fixture_id,
            'status': self.status,
            'estimates': self.estimates.to_dict() if self.estimates else None,
            'report': self.report.to_dict() if self.report else None,
            'error': self.error,
        }


@dataclass
class BatchResult:
    """All jobs of a batch run."""
    run_id: str
    jobs: Dict[int, FixtureJob] = field(default_factory=dict)

    @property
    def completed(self) -> List[FixtureJob]:
        return [j for j in self.jobs.values() if j.status == 'done']

    @property
    def failed(self) -> List[FixtureJob]:
        return [j for j in self.jobs.values() if j.status == 'failed']

    @property
    def errors(self) -> List[str]:
        return [f"Fixture {j.fixture_id}: {j.error}" for j in self.failed]

    @property
    def summary(self) -> Dict[str, Any]:
        reports = [j.report for j in self.completed if j.report]
        return {
            'run_id': self.run_id,
            'fixtures': len(self.jobs),
            'completed': len(self.completed),
            'failed': len(self.failed),
            'bet_picks': sum(r.summary['bet_picks'] for r in reports),
            'watch_picks': sum(r.summary['watch_picks'] for r in reports),
            'avoid_picks': sum(r.summary['avoid_picks'] for r in reports),
            'skipped_markets': sum(r.summary['skipped_markets'] for r in reports),
            'errors': self.errors,
        }


class FixturePipeline:
    """
    Parallel fixture analysis.

    Components are injected or lazy-loaded from their singletons.
    """

    def __init__(
        self,
        estimator: Optional[ProbabilityEstimator] = None,
        judge: Optional[ValueJudge] = None,
        max_workers: Optional[int] = None,
    ):
        self._estimator = estimator
        self._judge = judge
        self.max_workers = max_workers or default_max_workers()

    @property
    def estimator(self) -> ProbabilityEstimator:
        if self._estimator is None:
            self._estimator = get_probability_estimator()
        return self._estimator

    @property
    def judge(self) -> ValueJudge:
        if self._judge is None:
            self._judge = get_value_judge()
        return self._judge

    def run_fixture(
        self,
        ctx: FixtureContext,
        quotes: Dict[str, PriceQuote],
        run_id: Optional[str] = None,
    ) -> FixtureJob:
        """Estimate and judge a single fixture."""
        estimates = self.estimator.estimate(ctx)
        report = self.judge.evaluate(
            fixture_id=ctx.fixture_id,
            estimates=estimates.estimates,
            quotes=quotes,
            quality_flags=estimates.metrics.flags if estimates.metrics else None,
            run_id=run_id,
        )
        return FixtureJob(
            fixture_id=ctx.fixture_id,
            status='done',
            estimates=estimates,
            report=report,
        )

    def run_batch(
        self,
        contexts: List[FixtureContext],
        quotes_by_fixture: Dict[int, Dict[str, PriceQuote]],
    ) -> BatchResult:
        """
        Analyze fixtures with known contexts and quotes.

        Args:
            contexts: Fixture contexts
            quotes_by_fixture: Normalized quotes keyed by fixture id

        Returns:
            BatchResult with one job per fixture
        """
        jobs = {
            ctx.fixture_id: (lambda c=ctx: (c, quotes_by_fixture.get(c.fixture_id, {})))
            for ctx in contexts
        }
        return self._run_jobs(jobs)

    def run_fixtures(
        self,
        fixtures: List[Dict],
        build_context: Callable[[Dict], FixtureContext],
        fetch_quotes: Callable[[int], Dict[str, PriceQuote]],
    ) -> BatchResult:
        """
        Analyze raw feed fixtures, loading each one's inputs inside its job.

        A feed failure while building one fixture's context fails only
        that fixture.
        """
        jobs = {}
        for fixture in fixtures:
            fixture_id = fixture.get('fixture', {}).get('id')
            jobs[fixture_id] = (
                lambda f=fixture, fid=fixture_id: (build_context(f), fetch_quotes(fid))
            )
        return self._run_jobs(jobs)

    def _run_jobs(self, loaders: Dict[int, Callable]) -> BatchResult:
        batch = BatchResult(run_id=str(uuid.uuid4()))
        if not loaders:
            return batch

        logger.info(f"[Pipeline] Analyzing {len(loaders)} fixtures with {self.max_workers} workers")

        def work(fixture_id: int, loader: Callable) -> FixtureJob:
            ctx, quotes = loader()
            return self.run_fixture(ctx, quotes, run_id=batch.run_id)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(work, fixture_id, loader): fixture_id
                for fixture_id, loader in loaders.items()
            }
            for future in as_completed(futures):
                fixture_id = futures[future]
                try:
                    batch.jobs[fixture_id] = future.result()
                except Exception as e:
                    logger.error(f"[Pipeline] Fixture {fixture_id} failed: {e}")
                    batch.jobs[fixture_id] = FixtureJob(
                        fixture_id=fixture_id,
                        status='failed',
                        error=str(e),
                    )

        logger.info(
            f"[Pipeline] {len(batch.completed)} fixtures done, {len(batch.failed)} failed"
        )
        return batch
