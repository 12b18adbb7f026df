"""Match result and double chance grading."""

import logging
from typing import Optional

from .base import BaseMatcher, FinalResult, GradeResult, GradingInput, resolve_team

logger = logging.getLogger(__name__)

HOME_WORDS = ('local', 'home')
AWAY_WORDS = ('visitante', 'visita', 'away')
DRAW_WORDS = ('empate', 'draw', 'x')

# Tokens naming a statistic other than the full-time result
OTHER_STAT_WORDS = frozenset({
    'clean', 'sheet', 'porteria', 'invicta',
    'corner', 'corners', 'esquina', 'esquinas',
    'card', 'cards', 'tarjeta', 'tarjetas', 'booking', 'bookings',
    '1t', '2t', '1h', '2h', 'half', 'halftime', 'tiempo', 'mitad',
})


def _names_other_stat(inp: GradingInput) -> bool:
    return any(t in OTHER_STAT_WORDS for t in inp.tokens)


def _outcome(result: FinalResult) -> str:
    if result.home_goals > result.away_goals:
        return 'home'
    if result.away_goals > result.home_goals:
        return 'away'
    return 'draw'


def _describe(result: FinalResult) -> str:
    labels = {'home': 'Home win', 'away': 'Away win', 'draw': 'Draw'}
    return f"{labels[_outcome(result)]} ({result.score})"


class DoubleChanceMatcher(BaseMatcher):
    """
    Grades double chance selections.

    Recognizes the codes 1X, X2 and 12 and worded forms such as
    'Local o Empate' or 'Brighton or Draw'.
    """

    name = 'double_chance'

    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        if _names_other_stat(inp):
            return None

        covered = self._covered(inp, result)
        if covered is None:
            return None

        return self._resolved(_outcome(result) in covered, detail=_describe(result))

    @staticmethod
    def _covered(inp: GradingInput, result: FinalResult) -> Optional[set]:
        tokens = set(inp.selection_tokens)

        if '1x' in tokens:
            return {'home', 'draw'}
        if 'x2' in tokens:
            return {'draw', 'away'}
        if '12' in tokens:
            return {'home', 'away'}

        has_home = any(w in tokens for w in HOME_WORDS)
        has_away = any(w in tokens for w in AWAY_WORDS)
        has_draw = any(w in tokens for w in ('empate', 'draw'))

        # 'Brighton or Draw': the team name stands in for the side
        if has_draw and not has_home and not has_away:
            side = resolve_team(inp.selection_tokens, result)
            has_home, has_away = side == 'home', side == 'away'

        covered = set()
        if has_home:
            covered.add('home')
        if has_away:
            covered.add('away')
        if has_draw:
            covered.add('draw')

        if len(covered) != 2:
            return None
        return covered


class MatchResultMatcher(BaseMatcher):
    """
    Grades single-outcome result selections (1X2).

    Short codes and keywords are checked first; otherwise the selection
    must name exactly one of the two teams. Text naming another statistic
    (clean sheet, corners, cards, a half) is left alone.
    """

    name = 'match_result'

    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        if _names_other_stat(inp):
            return None

        picked = self._picked(inp, result)
        if picked is None:
            return None

        return self._resolved(_outcome(result) == picked, detail=_describe(result))

    @staticmethod
    def _picked(inp: GradingInput, result: FinalResult) -> Optional[str]:
        selection = inp.selection
        if selection == '1':
            return 'home'
        if selection == '2':
            return 'away'
        if selection == 'x':
            return 'draw'

        tokens = set(inp.selection_tokens)
        if any(w in tokens for w in HOME_WORDS):
            return 'home'
        if any(w in tokens for w in AWAY_WORDS):
            return 'away'
        if any(w in tokens for w in DRAW_WORDS):
            return 'draw'

        side = resolve_team(inp.selection_tokens, result)
        if side is None:
            logger.debug(f"No team resolved from selection {selection!r}")
        return side
