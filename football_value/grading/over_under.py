"""
Over/under grading for goals, corners and cards.

Scope is decided in this order:
- corners or cards named in the text use that statistic
- a half named in the text ('1st Half', '1t', 'Segundo Tiempo') restricts
  goals to that half
- a side named by keyword (home/local, away/visitante) or by team name
  restricts the count to that side
- otherwise the match total is used

Missing statistics never resolve a selection: they grade INDETERMINATE
until richer data arrives.
"""

import re
from typing import Optional, Tuple

from .base import BaseMatcher, FinalResult, GradeResult, GradingInput, resolve_team

# +/- between digits belongs to a score ('2-1'), not a line
OVER_UNDER = re.compile(r'(\bmas|\bmenos|\bover|\bunder|(?<!\d)\+|(?<!\d)-)\s*(de)?\s*(\d+(\.\d+)?)')
SCORE = re.compile(r'\b\d+\s*[-:]\s*\d+\b')

OVER_WORDS = ('mas', 'over', '+')

CORNER_WORDS = ('corner', 'esquina')
CARD_WORDS = ('card', 'tarjeta', 'booking', 'amonestacion')

HOME_WORDS = ('home', 'local')
AWAY_WORDS = ('away', 'visitante', 'visita')

HALF_WORDS = ('1t', '2t', '1h', '2h', 'half', 'halftime', 'tiempo', 'mitad')
SECOND_HALF_WORDS = ('2t', '2h', '2nd', 'second', 'segundo', 'segunda')


def _side_by_keyword(inp: GradingInput) -> Optional[str]:
    tokens = set(inp.tokens)
    home = any(w in tokens for w in HOME_WORDS)
    away = any(w in tokens for w in AWAY_WORDS)
    if home and not away:
        return 'home'
    if away and not home:
        return 'away'
    return None


def half_scope(inp: GradingInput) -> Optional[int]:
    """1 or 2 when the text is scoped to a half, None for the full match."""
    tokens = set(inp.tokens)
    if not any(w in tokens for w in HALF_WORDS):
        return None
    return 2 if any(w in tokens for w in SECOND_HALF_WORDS) else 1


class OverUnderMatcher(BaseMatcher):
    """Grades 'Over 2.5', 'Más de 9.5 Corners', 'Baniyas Menos de 1.5 Goles'."""

    name = 'over_under'

    def grade(self, inp: GradingInput, result: FinalResult) -> Optional[GradeResult]:
        # '-1.5' in a handicap is a spread, not an under line
        if 'handicap' in inp.text or 'ventaja' in inp.text:
            return None
        if SCORE.search(inp.selection):
            return None

        match = OVER_UNDER.search(inp.selection) or OVER_UNDER.search(inp.text)
        if not match:
            return None

        is_over = match.group(1) in OVER_WORDS
        line = float(match.group(3))

        stat = self._stat(inp)
        half = half_scope(inp)
        side = _side_by_keyword(inp) or resolve_team(inp.tokens, result)

        if half is not None and stat != 'goals':
            return self._indeterminate(f"No half {stat} data for this fixture")

        if half is not None:
            value, label = self._half_value(half, side, result)
        else:
            value, label = self._value(stat, side, result)
        if value is None:
            return self._indeterminate(f"No {label} data for this fixture")

        detail = f"{label}: {value}"
        if line.is_integer() and value == line:
            return self._indeterminate(f"{detail} (push on {line:g})", actual_value=value)

        won = value > line if is_over else value < line
        return self._resolved(won, actual_value=value, detail=detail)

    @staticmethod
    def _stat(inp: GradingInput) -> str:
        if any(w in inp.text for w in CORNER_WORDS):
            return 'corners'
        if any(w in inp.text for w in CARD_WORDS):
            return 'cards'
        return 'goals'

    @staticmethod
    def _value(stat: str, side: Optional[str], result: FinalResult) -> Tuple[Optional[float], str]:
        home = getattr(result, f"home_{stat}")
        away = getattr(result, f"away_{stat}")

        if side == 'home':
            return home, f"Home {stat}"
        if side == 'away':
            return away, f"Away {stat}"

        if home is None or away is None:
            return None, f"total {stat}"
        return home + away, f"Total {stat}"

    @staticmethod
    def _half_value(half: int, side: Optional[str], result: FinalResult) -> Tuple[Optional[float], str]:
        ordinal = '1st' if half == 1 else '2nd'
        home = result.half_goals('home', half)
        away = result.half_goals('away', half)

        if side == 'home':
            return home, f"Home {ordinal} half goals"
        if side == 'away':
            return away, f"Away {ordinal} half goals"

        if home is None or away is None:
            return None, f"{ordinal} half goals"
        return home + away, f"{ordinal.capitalize()} half goals"
