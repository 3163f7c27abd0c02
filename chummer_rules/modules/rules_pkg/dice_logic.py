"""
Dice Resolution Engine

d6 dice-pool rolls: count hits at or above a threshold, detect glitches
from ones, and explode sixes when Edge is spent. Also initiative rolls and
the probability helpers used by the roller UI.

Every function takes an optional `rng` (anything with `randint(a, b)`, e.g.
a seeded random.Random). Without one the module-level random functions are
used.
"""
import logging
import math
import random
from typing import List

from .models import InitiativeResult, RollResult

logger = logging.getLogger("chummer_rules.rules.dice_logic")

DEFAULT_THRESHOLD = 5
MIN_THRESHOLD = 1
MAX_THRESHOLD = 6
DEFAULT_MIN_POOL = 1
DEFAULT_MAX_POOL = 30
DEFAULT_MAX_EXPLOSIONS = 100
MAX_INITIATIVE_PASSES = 4


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def roll_d6(rng=None) -> int:
    """Rolls one six-sided die."""
    rng = rng if rng is not None else random
    return rng.randint(1, 6)


def glitch_ones_needed(pool: int) -> int:
    """Ones needed for a glitch: half the pool rounded down, at least 1."""
    return max(1, pool // 2)


def roll_dice_pool(
    pool: int,
    edge: bool = False,
    threshold: int = DEFAULT_THRESHOLD,
    rng=None,
    min_pool: int = DEFAULT_MIN_POOL,
    max_pool: int = DEFAULT_MAX_POOL,
    max_explosions: int = DEFAULT_MAX_EXPLOSIONS,
) -> RollResult:
    """
    Rolls a dice pool and evaluates hits and glitches.

    Args:
        pool: Number of dice. Clamped to [min_pool, max_pool].
        edge: Edge spent; every 6 is rerolled and the rerolls explode again.
            Edge also rules out glitches.
        threshold: Lowest face counting as a hit. Clamped to 1-6.
        rng: Random source with randint(a, b).
        min_pool, max_pool: Pool clamp range.
        max_explosions: Cap on the number of edge rerolls.

    Returns:
        RollResult. `dice` is the original draw; rerolled sixes land in
        `extra_dice`. Both count towards hits and ones.
    """
    requested_pool, requested_threshold = pool, threshold
    pool = _clamp(pool, min_pool, max_pool)
    threshold = _clamp(threshold, MIN_THRESHOLD, MAX_THRESHOLD)
    if pool != requested_pool or threshold != requested_threshold:
        logger.debug(f"Clamped roll pool {requested_pool}->{pool}, threshold {requested_threshold}->{threshold}")

    dice = [roll_d6(rng) for _ in range(pool)]

    extra_dice: List[int] = []
    if edge:
        pending = dice.count(6)
        while pending > 0 and len(extra_dice) < max_explosions:
            result = roll_d6(rng)
            extra_dice.append(result)
            pending -= 1
            if result == 6:
                pending += 1
        if pending > 0:
            logger.warning(f"Edge explosions stopped at the cap of {max_explosions}")

    all_dice = dice + extra_dice
    hits = sum(1 for die in all_dice if die >= threshold)
    ones = sum(1 for die in all_dice if die == 1)

    is_glitch = False
    is_critical_glitch = False
    if not edge and dice.count(1) >= glitch_ones_needed(pool):
        if hits == 0:
            is_critical_glitch = True
        else:
            is_glitch = True

    return RollResult(
        dice=dice,
        extra_dice=extra_dice,
        hits=hits,
        ones=ones,
        is_glitch=is_glitch,
        is_critical_glitch=is_critical_glitch,
        edge_used=edge,
        pool=pool,
        threshold=threshold,
    )


# ============================================================================
# INITIATIVE
# ============================================================================

def roll_initiative(base: int, dice: int = 1, rng=None) -> InitiativeResult:
    """
    Rolls initiative: base score + dice d6.

    Passes: 1 for every started 10 points of the total, 1 to 4.
    """
    dice = max(1, dice)
    results = [roll_d6(rng) for _ in range(dice)]
    total = base + sum(results)
    passes = min(MAX_INITIATIVE_PASSES, max(1, math.ceil(total / 10)))
    return InitiativeResult(base=base, dice=results, total=total, passes=passes)


def get_initiative_for_pass(total: int, pass_number: int) -> int:
    """Initiative score in a given pass (1-4); each pass after the first costs 10."""
    return max(0, total - (pass_number - 1) * 10)


# ============================================================================
# PROBABILITIES
# ============================================================================

def _hit_chance(threshold: int) -> float:
    return (7 - _clamp(threshold, MIN_THRESHOLD, MAX_THRESHOLD)) / 6


def _binomial_tail(trials: int, minimum: int, chance: float) -> float:
    minimum = max(0, minimum)
    return sum(
        math.comb(trials, k) * chance ** k * (1 - chance) ** (trials - k)
        for k in range(minimum, trials + 1)
    )


def calculate_hit_probability(pool: int, target_hits: int, threshold: int = DEFAULT_THRESHOLD) -> float:
    """Chance (0-1) of rolling at least `target_hits` hits, ignoring Edge."""
    if target_hits > pool:
        return 0.0
    return _binomial_tail(pool, target_hits, _hit_chance(threshold))


def expected_hits(pool: int, threshold: int = DEFAULT_THRESHOLD) -> float:
    return pool * _hit_chance(threshold)


def glitch_probability(pool: int) -> float:
    """Chance (0-1) that a roll without Edge glitches or critically glitches."""
    if pool <= 0:
        return 0.0
    return _binomial_tail(pool, glitch_ones_needed(pool), 1 / 6)
