"""
Settlement grading framework.

A prediction is graded by running its (market, selection) text through
an ordered list of matchers. The first matcher that recognizes the text
decides the outcome. Matchers are pure: the same text and result always
give the same grade.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from ..text import normalize_text, tokenize

logger = logging.getLogger(__name__)

WON = 'WON'
LOST = 'LOST'
INDETERMINATE = 'INDETERMINATE'

FINISHED_STATUSES = ('FT', 'AET', 'PEN')

# Tokens that carry no identity in club names
GENERIC_TEAM_TOKENS = frozenset({
    'fc', 'cf', 'sc', 'ac', 'afc', 'cd', 'ud', 'sd', 'ca', 'club', 'de',
    'del', 'la', 'el', 'al', 'the',
})
MIN_TEAM_TOKEN_LENGTH = 3


@dataclass(frozen=True)
class FinalResult:
    """Final score and statistics of a fixture."""
    fixture_id: int
    status: str
    home_team: str
    away_team: str
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    home_corners: Optional[int] = None
    away_corners: Optional[int] = None
    home_cards: Optional[int] = None
    away_cards: Optional[int] = None
    home_ht_goals: Optional[int] = None
    away_ht_goals: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return (
            self.status in FINISHED_STATUSES
            and self.home_goals is not None
            and self.away_goals is not None
        )

    @property
    def total_goals(self) -> int:
        return self.home_goals + self.away_goals

    def half_goals(self, side: str, half: int) -> Optional[int]:
        """
        Goals one side scored in the first (1) or second (2) half.

        None without a half-time score.
        """
        half_time = self.home_ht_goals if side == 'home' else self.away_ht_goals
        full_time = self.home_goals if side == 'home' else self.away_goals
        if half_time is None or full_time is None:
            return None
        return half_time if half == 1 else full_time - half_time

    @property
    def score(self) -> str:
        if self.home_goals is None or self.away_goals is None:
            return ''
        return f"{self.home_goals}-{self.away_goals}"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one selection."""
    outcome: str
    matcher: str
    actual_value: Optional[float] = None
    detail: str = ''

    @property
    def is_resolved(self) -> bool:
        return self.outcome in (WON, LOST)


@dataclass(frozen=True)
class GradingInput:
    """Normalized market and selection text handed to matchers."""
    market: str
    selection: str

    @property
    def text(self) -> str:
        return f"{self.market} {self.selection}".strip()

    @property
    def market_tokens(self) -> List[str]:
        return tokenize(self.market)

    @property
    def selection_tokens(self) -> List[str]:
        return tokenize(self.selection)

    @property
    def tokens(self) -> List[str]:
        return tokenize(self.text)

    @classmethod
    def from_raw(cls, market_name: str, selection: str) -> 'GradingInput':
        return cls(market=normalize_text(market_name), selection=normalize_text(selection))


class BaseMatcher(ABC):
    """
    Abstract base for grading strategies.

    grade() returns None when the matcher does not recognize the text,
    letting the next matcher try.
    """

    name: str = 'base'

    @abstractmethod
    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        pass

    def _resolved(self, won: bool, actual_value: Optional[float] = None, detail: str = '') -> GradeResult:
        return GradeResult(
            outcome=WON if won else LOST,
            matcher=self.name,
            actual_value=actual_value,
            detail=detail,
        )

    def _indeterminate(self, detail: str, actual_value: Optional[float] = None) -> GradeResult:
        return GradeResult(
            outcome=INDETERMINATE,
            matcher=self.name,
            actual_value=actual_value,
            detail=detail,
        )


# =============================================================================
# TEAM NAME MATCHING
# =============================================================================

def significant_tokens(team_name: str) -> List[str]:
    """Identity-carrying tokens of a team name ('Baniyas SC' -> ['baniyas'])."""
    return [
        t for t in tokenize(team_name)
        if t not in GENERIC_TEAM_TOKENS and len(t) >= MIN_TEAM_TOKEN_LENGTH
    ]


def team_mentioned(team_name: str, tokens: List[str]) -> bool:
    """True when every significant token of the team name is a whole token of the text."""
    sig = significant_tokens(team_name)
    if not sig:
        return False
    token_set = set(tokens)
    return all(t in token_set for t in sig)


def resolve_team(tokens: List[str], result: FinalResult) -> Optional[str]:
    """
    Which side of the fixture the text names.

    Returns 'home', 'away', or None when neither or both names match.
    """
    home = team_mentioned(result.home_team, tokens)
    away = team_mentioned(result.away_team, tokens)
    if home and not away:
        return 'home'
    if away and not home:
        return 'away'
    if home and away:
        logger.debug(f"Both team names matched in {' '.join(tokens)!r} - unresolved")
    return None
