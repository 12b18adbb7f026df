"""
Market Normalizer

Maps bookmaker market/selection wording onto the canonical market keys
produced by the estimator:

    ('Goals Over/Under', 'Over 2.5')      -> 'over_2.5_goals'
    ('Both Teams Score', 'Yes')           -> 'btts_yes'
    ('Match Winner', 'Home')              -> '1x2_home'
    ('Ambos Marcan', 'Sí')                -> 'btts_yes'

Unrecognized markets map to None. The value judge treats a market with
no priced key as SKIP, so an unknown listing is never an error.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Any

from .text import normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """A decimal price for one canonical market selection."""
    market_key: str
    selection: str
    decimal_odds: float
    bookmaker: str = ''

    @property
    def p_implied(self) -> float:
        """Price-implied probability (1 / decimal odds)."""
        return 1.0 / self.decimal_odds

    def to_dict(self) -> Dict:
        return {
            'market_key': self.market_key,
            'selection': self.selection,
            'decimal_odds': self.decimal_odds,
            'bookmaker': self.bookmaker,
            'p_implied': round(self.p_implied, 4),
        }


_LINE = re.compile(r'(\d+(?:\.\d+)?)')

_OVER_WORDS = ('over', 'mas de', 'mas', '+')
_UNDER_WORDS = ('under', 'menos de', 'menos', '-')

_FIRST_HALF = ('first half', '1st half', '1t', 'primer tiempo', 'primera mitad')
_SECOND_HALF = ('second half', '2nd half', '2t', 'segundo tiempo', 'segunda mitad')

_HOME_WORDS = ('home', 'local', '1')
_DRAW_WORDS = ('draw', 'empate', 'x')
_AWAY_WORDS = ('away', 'visitante', 'visita', '2')


def _has_any(text: str, words: Iterable[str]) -> bool:
    return any(w in text for w in words)


def _direction(selection: str) -> Optional[str]:
    if selection.startswith(('over', 'mas', '+')) or ' over ' in f' {selection} ':
        return 'over'
    if selection.startswith(('under', 'menos', '-')) or ' under ' in f' {selection} ':
        return 'under'
    return None


def _line(selection: str, market: str) -> Optional[str]:
    match = _LINE.search(selection) or _LINE.search(market)
    if not match:
        return None
    return f"{float(match.group(1)):.1f}"


def _half(market: str) -> Optional[str]:
    padded = f' {market} '
    if any(f' {w} ' in padded or w in market for w in _FIRST_HALF if ' ' in w) or ' 1t ' in padded:
        return '1t'
    if any(f' {w} ' in padded or w in market for w in _SECOND_HALF if ' ' in w) or ' 2t ' in padded:
        return '2t'
    return None


def _outcome(selection: str) -> Optional[str]:
    """Single 1X2 outcome from a selection ('Home', 'X', 'Empate')."""
    if selection in _HOME_WORDS or selection.startswith(('home', 'local')):
        return 'home'
    if selection in _DRAW_WORDS or selection.startswith(('draw', 'empate')):
        return 'draw'
    if selection in _AWAY_WORDS or selection.startswith(('away', 'visit')):
        return 'away'
    return None


def _double_chance(selection: str) -> Optional[str]:
    compact = selection.replace(' ', '').replace('/', '').replace('-', '')
    if compact in ('1x', 'homedraw', 'localempate'):
        return '1x'
    if compact in ('x2', 'drawaway', 'empatevisitante'):
        return 'x2'
    if compact in ('12', 'homeaway', 'localvisitante'):
        return '12'
    return None


def normalize_market_key(market_name: str, selection: str) -> Optional[str]:
    """
    Map a raw market/selection pair to a canonical market key.

    Args:
        market_name: Bookmaker market name ('Goals Over/Under')
        selection: Bookmaker selection ('Over 2.5')

    Returns:
        Canonical key, or None when the market is not recognized
    """
    m = normalize_text(market_name)
    s = normalize_text(selection)
    if not m or not s:
        return None

    half = _half(m)

    # Corners and cards before goals: their names also contain 'over/under'
    if 'corner' in m or 'esquina' in m:
        direction, line = _direction(s), _line(s, m)
        if half or not direction or not line:
            return None
        return f"corners_{direction}_{line}"

    if 'card' in m or 'tarjeta' in m or 'booking' in m:
        direction, line = _direction(s), _line(s, m)
        if half or not direction or not line:
            return None
        return f"cards_{direction}_{line}"

    if 'both teams' in m or 'btts' in m or 'ambos' in m:
        if half:
            return None
        if s in ('yes', 'si'):
            return 'btts_yes'
        if s == 'no':
            return 'btts_no'
        return None

    if 'double chance' in m or 'doble oportunidad' in m:
        if half:
            return None
        dc = _double_chance(s)
        return f"double_chance_{dc}" if dc else None

    if 'match winner' in m or '1x2' in m or 'ganador' in m or m in ('winner', 'resultado final'):
        if half:
            return None
        outcome = _outcome(s)
        return f"1x2_{outcome}" if outcome else None

    if 'clean sheet' in m or 'porteria a cero' in m or 'valla invicta' in m:
        side = 'home' if _has_any(m, ('home', 'local')) else 'away' if _has_any(m, ('away', 'visit')) else None
        if side and s in ('yes', 'si'):
            return f"{side}_clean_sheet"
        return None

    direction, line = _direction(s), _line(s, m)
    if not direction or not line:
        return None

    # Team totals: 'Total - Home', 'Home Team Total Goals', 'Goles Equipo Local'
    if 'total' in m or 'goal' in m or 'goles' in m:
        if _has_any(m, ('- home', 'home team', 'total home', 'equipo local')):
            return f"home_{direction}_{line}"
        if _has_any(m, ('- away', 'away team', 'total away', 'equipo visitante')):
            return f"away_{direction}_{line}"

    if 'over' in m or 'under' in m or 'goal' in m or 'goles' in m or 'total' in m:
        if half:
            return f"{half}_{direction}_{line}"
        return f"{direction}_{line}_goals"

    return None


def _parse_odds(raw: Any) -> Optional[float]:
    try:
        odds = float(raw)
    except (TypeError, ValueError):
        return None
    if odds <= 1.0:
        return None
    return odds


def normalize_quotes(raw_markets: List[Dict]) -> Dict[str, PriceQuote]:
    """
    Build the canonical price lookup for a fixture.

    Args:
        raw_markets: List of {'name', 'bookmaker', 'values': [{'value', 'odd'}]}

    Returns:
        Dict of market_key -> best-priced PriceQuote
    """
    quotes: Dict[str, PriceQuote] = {}
    unrecognized = 0

    for market in raw_markets or []:
        market_name = market.get('name', '')
        bookmaker = market.get('bookmaker', '')

        for value in market.get('values', []):
            selection = str(value.get('value', ''))
            key = normalize_market_key(market_name, selection)
            if key is None:
                unrecognized += 1
                continue

            odds = _parse_odds(value.get('odd'))
            if odds is None:
                logger.debug(f"Invalid odds for {market_name}/{selection}: {value.get('odd')!r}")
                continue

            existing = quotes.get(key)
            if existing is None or odds > existing.decimal_odds:
                quotes[key] = PriceQuote(
                    market_key=key,
                    selection=selection,
                    decimal_odds=odds,
                    bookmaker=bookmaker,
                )

    if unrecognized:
        logger.debug(f"Ignored {unrecognized} unrecognized selections")

    return quotes
