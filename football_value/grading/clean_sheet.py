"""Clean sheet grading."""

from typing import Optional

from .base import BaseMatcher, FinalResult, GradeResult, GradingInput, resolve_team

CLEAN_SHEET_PHRASES = ('clean sheet', 'porteria a cero', 'porteria invicta', 'valla invicta')

HOME_WORDS = ('home', 'local')
AWAY_WORDS = ('away', 'visitante', 'visita')


class CleanSheetMatcher(BaseMatcher):
    """
    Grades 'Brighton Clean Sheet' and 'Local - Portería a cero'.

    The named side keeps a clean sheet when its opponent does not score.
    A 'no' token in the selection flips it.
    """

    name = 'clean_sheet'

    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        text = inp.text.replace('_', ' ')
        if not any(p in text for p in CLEAN_SHEET_PHRASES):
            return None

        side = self._side(inp, result)
        if side is None:
            return self._indeterminate('Clean sheet side not resolved')

        conceded = result.away_goals if side == 'home' else result.home_goals
        negated = 'no' in inp.selection_tokens
        kept = conceded == 0

        return self._resolved(
            not kept if negated else kept,
            actual_value=conceded,
            detail=f"{side.capitalize()} conceded {conceded} ({result.score})",
        )

    @staticmethod
    def _side(inp: GradingInput, result: FinalResult) -> Optional[str]:
        tokens = set(inp.tokens)
        home = any(w in tokens for w in HOME_WORDS)
        away = any(w in tokens for w in AWAY_WORDS)
        if home != away:
            return 'home' if home else 'away'
        return resolve_team(inp.tokens, result)
