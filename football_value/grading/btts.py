"""Both-teams-to-score grading."""

from typing import Optional

from .base import BaseMatcher, FinalResult, GradeResult, GradingInput

BTTS_KEYWORDS = ('ambos', 'btts', 'marcan', 'both teams')


class BttsMatcher(BaseMatcher):
    """
    Grades 'both teams to score' selections.

    A 'no' token anywhere in the selection flips the selection to
    'both teams do NOT score'.
    """

    name = 'btts'

    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        if not any(k in inp.text for k in BTTS_KEYWORDS):
            return None

        both_scored = result.home_goals > 0 and result.away_goals > 0
        negated = 'no' in inp.selection_tokens

        won = not both_scored if negated else both_scored
        return self._resolved(
            won,
            detail=f"Both teams scored: {'yes' if both_scored else 'no'} ({result.score})",
        )
