"""
Armour layering and encumbrance.
"""
import logging
from typing import Iterable, List

from .models import ArmorPiece, ArmorStackResult

logger = logging.getLogger("chummer_rules.rules.armor_logic")

# Attributes whose tests suffer the encumbrance penalty.
ENCUMBERED_ATTRIBUTES = ("agi", "rea")


def _layered_value(values: List[int]) -> int:
    """Highest value plus half the second highest (rounded down). Further layers add nothing."""
    if not values:
        return 0
    ranked = sorted(values, reverse=True)
    total = ranked[0]
    if len(ranked) > 1:
        total += ranked[1] // 2
    return total


def calculate_armor_stacking(pieces: Iterable[ArmorPiece], body: int) -> ArmorStackResult:
    """
    Stack equipped armour and work out the encumbrance penalty.

    Ballistic and impact are ranked independently, so the primary ballistic
    layer and the primary impact layer may be different pieces.

    Args:
        pieces: All armour the character owns; only equipped pieces count.
        body: Body attribute total.

    Returns:
        ArmorStackResult. encumbrance_penalty = max(0, ballistic - body).
    """
    worn = [piece for piece in pieces if piece.equipped]
    if not worn:
        return ArmorStackResult()

    ballistic = _layered_value([piece.ballistic for piece in worn])
    impact = _layered_value([piece.impact for piece in worn])
    penalty = max(0, ballistic - body)

    if penalty:
        logger.debug(f"Armour ballistic {ballistic} exceeds Body {body}: encumbrance -{penalty}")

    return ArmorStackResult(
        ballistic=ballistic,
        impact=impact,
        encumbrance_penalty=penalty,
        has_armor=True,
    )


def apply_encumbrance(pool: int, attribute: str, penalty: int) -> int:
    """Reduce an Agility or Reaction based pool by the encumbrance penalty. Other pools pass through."""
    if attribute.lower() not in ENCUMBERED_ATTRIBUTES or penalty <= 0:
        return pool
    return max(0, pool - penalty)
