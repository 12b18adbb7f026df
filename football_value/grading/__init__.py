"""
Settlement grading.

Usage:
    from football_value.grading import grade, FinalResult

    result = FinalResult(1, 'FT', 'Brighton', 'Burnley', 2, 1)
    grade('Goals Over/Under', 'Over 2.5', result).outcome   # 'WON'
"""

import logging

from .base import (
    BaseMatcher,
    FinalResult,
    GradeResult,
    GradingInput,
    WON,
    LOST,
    INDETERMINATE,
    FINISHED_STATUSES,
    resolve_team,
    significant_tokens,
    team_mentioned,
)
from .btts import BttsMatcher
from .clean_sheet import CleanSheetMatcher
from .over_under import OverUnderMatcher
from .result import DoubleChanceMatcher, MatchResultMatcher

logger = logging.getLogger(__name__)

# First matcher that recognizes the text decides
ALL_MATCHERS = [
    BttsMatcher(),
    CleanSheetMatcher(),
    OverUnderMatcher(),
    DoubleChanceMatcher(),
    MatchResultMatcher(),
]

UNMATCHED = 'unmatched'
UNFINISHED = 'unfinished'


def grade(market_name: str, selection: str, result: FinalResult, matchers=None) -> GradeResult:
    """
    Grade one selection against a final result.

    Args:
        market_name: Stored market text
        selection: Stored selection text
        result: Final result of the fixture
        matchers: Override the matcher order (defaults to ALL_MATCHERS)

    Returns:
        GradeResult; INDETERMINATE when the fixture is unfinished or no
        matcher recognizes the text
    """
    if not result.is_finished:
        return GradeResult(
            outcome=INDETERMINATE,
            matcher=UNFINISHED,
            detail=f"Fixture status {result.status}",
        )

    inp = GradingInput.from_raw(market_name, selection)

    for matcher in matchers if matchers is not None else ALL_MATCHERS:
        graded = matcher.grade(inp, result)
        if graded is not None:
            return graded

    logger.warning(
        f"Unmatched selection for fixture {result.fixture_id}: "
        f"market={market_name!r} selection={selection!r}"
    )
    return GradeResult(outcome=INDETERMINATE, matcher=UNMATCHED, detail='Selection not recognized')


__all__ = [
    'BaseMatcher',
    'FinalResult',
    'GradeResult',
    'GradingInput',
    'WON',
    'LOST',
    'INDETERMINATE',
    'FINISHED_STATUSES',
    'ALL_MATCHERS',
    'BttsMatcher',
    'CleanSheetMatcher',
    'OverUnderMatcher',
    'DoubleChanceMatcher',
    'MatchResultMatcher',
    'grade',
    'resolve_team',
    'significant_tokens',
    'team_mentioned',
]
