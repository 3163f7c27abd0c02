import logging
from typing import Any, Dict, List, Union

from ..context import RulesContext
from .rules_pkg import aggregation, core, dice_logic, improvement_logic
from .rules_pkg.models import (
    CharacterSnapshot,
    DerivedStats,
    Improvement,
    ImprovementSummary,
    ImprovementTarget,
    InitiativeResult,
    RollResult,
)

logger = logging.getLogger("chummer_rules.rules")

CharacterInput = Union[CharacterSnapshot, Dict[str, Any]]

# Initiative kinds accepted by roll_character_initiative.
INITIATIVE_MODES = ("physical", "astral", "matrix")


def _as_snapshot(character: CharacterInput) -> CharacterSnapshot:
    """Accepts a snapshot or a plain dict (validated, ValidationError propagates)."""
    if isinstance(character, CharacterSnapshot):
        return character
    return CharacterSnapshot.model_validate(character)


# Character calculations

def resolve_improvements(character: CharacterInput, context: RulesContext) -> List[Improvement]:
    return improvement_logic.resolve(_as_snapshot(character), context.catalog)


def calculate_derived_stats(character: CharacterInput, context: RulesContext) -> DerivedStats:
    """Resolve the character's improvements and compute every derived value."""
    snapshot = _as_snapshot(character)
    improvements = improvement_logic.resolve(snapshot, context.catalog)
    return core.calculate_all(snapshot, improvements)


def get_attribute_total(character: CharacterInput, code: str, context: RulesContext) -> float:
    snapshot = _as_snapshot(character)
    return core.get_attribute_total(snapshot, code, improvement_logic.resolve(snapshot, context.catalog))


def get_improvement_summary(
    character: CharacterInput,
    target: Union[ImprovementTarget, str],
    context: RulesContext,
) -> ImprovementSummary:
    """Total and per-source breakdown for one target, e.g. for a tooltip."""
    improvements = resolve_improvements(character, context)
    return aggregation.summarize(improvements, ImprovementTarget(target))


def get_dice_pool(character: CharacterInput, skill_name: str, attribute: str, context: RulesContext) -> int:
    snapshot = _as_snapshot(character)
    improvements = improvement_logic.resolve(snapshot, context.catalog)
    return core.calculate_dice_pool(snapshot, skill_name, attribute, improvements)


# Dice

def roll_test(context: RulesContext, pool: int, edge: bool = False, threshold: int = dice_logic.DEFAULT_THRESHOLD) -> RollResult:
    """Roll a dice pool with the context's RNG and pool limits."""
    settings = context.settings
    result = dice_logic.roll_dice_pool(
        pool,
        edge=edge,
        threshold=threshold,
        rng=context.rng,
        min_pool=settings.min_pool,
        max_pool=settings.max_pool,
        max_explosions=settings.max_explosions,
    )
    logger.debug(f"Rolled {result.pool} dice (edge={edge}): {result.hits} hits")
    return result


def roll_skill_test(
    character: CharacterInput,
    skill_name: str,
    attribute: str,
    context: RulesContext,
    edge: bool = False,
    threshold: int = dice_logic.DEFAULT_THRESHOLD,
) -> RollResult:
    pool = get_dice_pool(character, skill_name, attribute, context)
    return roll_test(context, pool, edge=edge, threshold=threshold)


def roll_character_initiative(character: CharacterInput, context: RulesContext, mode: str = "physical") -> InitiativeResult:
    """
    Roll initiative for a character.

    Raises:
        ValueError: If `mode` is not one of INITIATIVE_MODES.
    """
    if mode not in INITIATIVE_MODES:
        raise ValueError(f"Unknown initiative mode '{mode}', expected one of {INITIATIVE_MODES}")

    stats = calculate_derived_stats(character, context)
    if mode == "astral":
        base, dice = stats.astral_initiative, stats.astral_initiative_dice
    elif mode == "matrix":
        base, dice = stats.matrix_initiative, stats.matrix_initiative_dice
    else:
        base, dice = stats.initiative, stats.initiative_dice
    return dice_logic.roll_initiative(base, dice, rng=context.rng)


# Catalog

def get_catalog_summary(context: RulesContext) -> Dict[str, int]:
    return context.catalog.get_summary()
