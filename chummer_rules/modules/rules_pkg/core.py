# core.py
import logging
import math
from typing import Dict, Iterable, Optional, Sequence

from .aggregation import aggregate
from .armor_logic import apply_encumbrance, calculate_armor_stacking
from .models import (
    CORE_ATTRIBUTES,
    SPECIAL_ATTRIBUTES,
    ArmorStackResult,
    CharacterSkill,
    CharacterSnapshot,
    DerivedStats,
    Improvement,
    ImprovementTarget,
    format_essence,
)

logger = logging.getLogger("chummer_rules.rules.core")

# Traditions that resist drain with Logic; everything else uses Charisma.
LOGIC_DRAIN_TRADITIONS = ("hermetic", "chaos")

ASTRAL_INITIATIVE_DICE = 2
MATRIX_INITIATIVE_DICE = 3

# Metatypes with a better sprint: extra metres per hit.
SPRINT_BONUS_BY_METATYPE = (
    ("centaur", 2),
    ("elf", 1),
)


# ============================================================================
# ATTRIBUTES
# ============================================================================

def _bonus(improvements: Iterable[Improvement], target: ImprovementTarget, include_conditional: bool = True) -> int:
    """Aggregated improvement total for a target, rounded down to a whole number."""
    return math.floor(aggregate(improvements, target, include_conditional))


def get_essence(character: CharacterSnapshot) -> float:
    return max(0.0, character.attributes.ess)


def get_attribute_total(
    character: CharacterSnapshot,
    code: str,
    improvements: Iterable[Improvement] = (),
) -> float:
    """
    Base + bonus + improvements for one attribute.

    Only unconditional improvements count here; situational bonuses such as
    Combat Sense belong to the specific tests they apply to.

    Args:
        character: The character snapshot.
        code: Attribute code ("bod", "agi", ..., "mag", "res", "ess").
        improvements: Resolved improvements for the character.

    Returns:
        The total. Magic and Resonance are 0 for characters without them.
        Essence is returned as stored (a float).

    Raises:
        ValueError: If `code` is not an attribute code.
    """
    code = code.lower()
    if code == "ess":
        return get_essence(character)
    if code not in CORE_ATTRIBUTES + SPECIAL_ATTRIBUTES:
        raise ValueError(f"Unknown attribute code '{code}'")

    if code in SPECIAL_ATTRIBUTES and getattr(character.attributes, code) is None:
        return 0

    base_total = character.attributes.get_total(code)
    return int(base_total) + _bonus(improvements, ImprovementTarget(code), include_conditional=False)


def get_all_attribute_totals(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> Dict[str, float]:
    improvements = list(improvements)
    totals = {code: get_attribute_total(character, code, improvements) for code in CORE_ATTRIBUTES + SPECIAL_ATTRIBUTES}
    totals["ess"] = get_essence(character)
    return totals


# ============================================================================
# CONDITION MONITORS
# ============================================================================

def calculate_physical_cm(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """
    Physical condition monitor boxes.

    Formula: 8 + ceil(Body / 2) + physical_cm improvements.
    """
    improvements = list(improvements)
    body = get_attribute_total(character, "bod", improvements)
    return 8 + math.ceil(body / 2) + _bonus(improvements, ImprovementTarget.PHYSICAL_CM)


def calculate_stun_cm(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Formula: 8 + ceil(Willpower / 2) + stun_cm improvements."""
    improvements = list(improvements)
    willpower = get_attribute_total(character, "wil", improvements)
    return 8 + math.ceil(willpower / 2) + _bonus(improvements, ImprovementTarget.STUN_CM)


def calculate_overflow(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return int(get_attribute_total(character, "bod", improvements))


def calculate_wound_modifier(character: CharacterSnapshot) -> int:
    """
    Dice-pool penalty from current damage, as a positive number.

    Formula: floor(physical / 3) + floor(stun / 3). Read from the condition
    track on every call, so it always reflects the current damage.
    """
    condition = character.condition
    return condition.physical_damage // 3 + condition.stun_damage // 3


def is_dead(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> bool:
    improvements = list(improvements)
    limit = calculate_physical_cm(character, improvements) + calculate_overflow(character, improvements)
    return character.condition.physical_damage >= limit


def is_unconscious(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> bool:
    return character.condition.stun_damage >= calculate_stun_cm(character, improvements)


def _apply_wounds(pool: int, character: CharacterSnapshot) -> int:
    return max(0, pool - calculate_wound_modifier(character))


# ============================================================================
# INITIATIVE
# ============================================================================

def calculate_initiative_bonus(improvements: Iterable[Improvement] = ()) -> int:
    return _bonus(improvements, ImprovementTarget.INITIATIVE)


def calculate_initiative(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """
    Physical initiative score.

    Formula: Reaction + Intuition + initiative improvements - wound modifier,
    never below 0.
    """
    improvements = list(improvements)
    base = (
        get_attribute_total(character, "rea", improvements)
        + get_attribute_total(character, "int", improvements)
        + calculate_initiative_bonus(improvements)
    )
    return _apply_wounds(int(base), character)


def calculate_initiative_dice(improvements: Iterable[Improvement] = ()) -> int:
    """1 + initiative_dice improvements, minimum 1."""
    return max(1, 1 + _bonus(improvements, ImprovementTarget.INITIATIVE_DICE))


def calculate_astral_initiative(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Intuition x 2. Rolled with ASTRAL_INITIATIVE_DICE."""
    intuition = get_attribute_total(character, "int", improvements)
    return _apply_wounds(int(intuition * 2), character)


def calculate_matrix_initiative(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Hot-sim matrix initiative for technomancers: Intuition + Resonance. Rolled with MATRIX_INITIATIVE_DICE."""
    improvements = list(improvements)
    score = get_attribute_total(character, "int", improvements) + get_attribute_total(character, "res", improvements)
    return _apply_wounds(int(score), character)


# ============================================================================
# MOVEMENT
# ============================================================================

def calculate_walk_speed(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return int(get_attribute_total(character, "agi", improvements)) * 2


def calculate_run_speed(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return int(get_attribute_total(character, "agi", improvements)) * 4


def calculate_swim_speed(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    improvements = list(improvements)
    agility = get_attribute_total(character, "agi", improvements)
    strength = get_attribute_total(character, "str", improvements)
    return math.ceil((agility + strength) / 2)


def calculate_climb_speed(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return math.ceil(get_attribute_total(character, "agi", improvements) / 2)


def calculate_sprint_bonus(character: CharacterSnapshot) -> int:
    """Extra metres per Running hit when sprinting, by metatype."""
    metatype = character.metatype.lower()
    for keyword, bonus in SPRINT_BONUS_BY_METATYPE:
        if keyword in metatype:
            return bonus
    return 0


# ============================================================================
# LIMITS
# ============================================================================

def calculate_physical_limit(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """ceil((STR x 2 + BOD + REA) / 3) + physical_limit improvements."""
    improvements = list(improvements)
    strength = get_attribute_total(character, "str", improvements)
    body = get_attribute_total(character, "bod", improvements)
    reaction = get_attribute_total(character, "rea", improvements)
    return math.ceil((strength * 2 + body + reaction) / 3) + _bonus(improvements, ImprovementTarget.PHYSICAL_LIMIT)


def calculate_mental_limit(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """ceil((LOG x 2 + INT + WIL) / 3) + mental_limit improvements."""
    improvements = list(improvements)
    logic = get_attribute_total(character, "log", improvements)
    intuition = get_attribute_total(character, "int", improvements)
    willpower = get_attribute_total(character, "wil", improvements)
    return math.ceil((logic * 2 + intuition + willpower) / 3) + _bonus(improvements, ImprovementTarget.MENTAL_LIMIT)


def calculate_social_limit(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """ceil((CHA x 2 + WIL + floor(ESS)) / 3) + social_limit improvements."""
    improvements = list(improvements)
    charisma = get_attribute_total(character, "cha", improvements)
    willpower = get_attribute_total(character, "wil", improvements)
    essence = math.floor(get_essence(character))
    return math.ceil((charisma * 2 + willpower + essence) / 3) + _bonus(improvements, ImprovementTarget.SOCIAL_LIMIT)


# ============================================================================
# ARMOUR
# ============================================================================

def calculate_armor(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> ArmorStackResult:
    """
    Worn armour layering plus armour granted by augmentations and powers.

    Encumbrance is judged on the worn armour only; dermal plating and the
    like never encumber.
    """
    improvements = list(improvements)
    body = int(get_attribute_total(character, "bod", improvements))
    worn = calculate_armor_stacking(character.armor, body)
    ballistic_bonus = _bonus(improvements, ImprovementTarget.ARMOR_BALLISTIC)
    impact_bonus = _bonus(improvements, ImprovementTarget.ARMOR_IMPACT)
    return ArmorStackResult(
        ballistic=worn.ballistic + ballistic_bonus,
        impact=worn.impact + impact_bonus,
        encumbrance_penalty=worn.encumbrance_penalty,
        has_armor=worn.has_armor or bool(ballistic_bonus or impact_bonus),
    )


# ============================================================================
# DICE POOLS
# ============================================================================

def find_skill(character: CharacterSnapshot, skill_name: str) -> Optional[CharacterSkill]:
    lower_name = skill_name.lower()
    for skill in character.skills:
        if skill.name.lower() == lower_name:
            return skill
    return None


def calculate_dice_pool(
    character: CharacterSnapshot,
    skill_name: str,
    attribute: str,
    improvements: Iterable[Improvement] = (),
) -> int:
    """
    Dice pool for a skill + attribute test.

    Formula: skill rating + attribute + skill bonus - wound modifier, less the
    armour encumbrance penalty for Agility and Reaction tests. A skill the
    character lacks defaults to attribute - 1.

    Args:
        character: The character snapshot.
        skill_name: Skill name, case-insensitive.
        attribute: Linked attribute code.
        improvements: Resolved improvements for the character.

    Returns:
        The pool, never below 0.
    """
    improvements = list(improvements)
    attribute_total = int(get_attribute_total(character, attribute, improvements))
    skill = find_skill(character, skill_name)

    if skill is None:
        pool = attribute_total - 1
    else:
        pool = skill.rating + attribute_total + skill.bonus

    pool = _apply_wounds(pool, character)
    encumbrance = calculate_armor(character, improvements).encumbrance_penalty
    return apply_encumbrance(pool, attribute, encumbrance)


def _two_attribute_pool(
    character: CharacterSnapshot,
    improvements: Sequence[Improvement],
    first: str,
    second: str,
    target: Optional[ImprovementTarget] = None,
) -> int:
    pool = get_attribute_total(character, first, improvements) + get_attribute_total(character, second, improvements)
    if target is not None:
        pool += _bonus(improvements, target)
    return _apply_wounds(int(pool), character)


def calculate_composure(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return _two_attribute_pool(character, list(improvements), "cha", "wil", ImprovementTarget.COMPOSURE)


def calculate_judge_intentions(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return _two_attribute_pool(character, list(improvements), "cha", "int", ImprovementTarget.JUDGE_INTENTIONS)


def calculate_memory(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return _two_attribute_pool(character, list(improvements), "log", "wil", ImprovementTarget.MEMORY)


def calculate_lift_carry(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    return _two_attribute_pool(character, list(improvements), "bod", "str")


def calculate_defense(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """
    Reaction + Intuition - wound modifier.

    Situational Reaction bonuses (Combat Sense) count here even though the
    Reaction attribute total leaves them out.
    """
    improvements = list(improvements)
    situational = _bonus(improvements, ImprovementTarget.REA) - _bonus(
        improvements, ImprovementTarget.REA, include_conditional=False
    )
    pool = (
        get_attribute_total(character, "rea", improvements)
        + get_attribute_total(character, "int", improvements)
        + situational
    )
    return _apply_wounds(int(pool), character)


def calculate_dodge(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Reaction + Dodge skill."""
    return calculate_dice_pool(character, "Dodge", "rea", improvements)


def calculate_soak(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """
    Damage resistance pool.

    Formula: Body + ballistic armour + damage_resistance improvements - wound modifier.
    """
    improvements = list(improvements)
    body = get_attribute_total(character, "bod", improvements)
    armor = calculate_armor(character, improvements)
    pool = body + armor.ballistic + _bonus(improvements, ImprovementTarget.DAMAGE_RESISTANCE)
    return _apply_wounds(int(pool), character)


# ============================================================================
# MAGIC AND RESONANCE
# ============================================================================

def get_drain_attribute(tradition: Optional[str]) -> str:
    tradition = (tradition or "").lower()
    if any(name in tradition for name in LOGIC_DRAIN_TRADITIONS):
        return "log"
    return "cha"


def calculate_drain_resist(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Willpower + tradition attribute (Logic for hermetic/chaos, Charisma otherwise). 0 without Magic."""
    if character.attributes.mag is None:
        return 0
    return _two_attribute_pool(character, list(improvements), "wil", get_drain_attribute(character.tradition))


def calculate_fading_resist(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Resonance + Willpower. 0 without Resonance."""
    if character.attributes.res is None:
        return 0
    return _two_attribute_pool(character, list(improvements), "res", "wil")


def calculate_spell_resistance(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> int:
    """Willpower + spell_resistance improvements - wound modifier."""
    improvements = list(improvements)
    pool = get_attribute_total(character, "wil", improvements) + _bonus(improvements, ImprovementTarget.SPELL_RESISTANCE)
    return _apply_wounds(int(pool), character)


# ============================================================================
# EVERYTHING AT ONCE
# ============================================================================

def calculate_all(character: CharacterSnapshot, improvements: Iterable[Improvement] = ()) -> DerivedStats:
    """
    Computes every derived value for the character sheet.

    Args:
        character: The character snapshot. Never modified.
        improvements: Output of improvement_logic.resolve for this character.

    Returns:
        DerivedStats with all monitors, initiative, movement, limits, armour
        and pools.
    """
    improvements = list(improvements)
    armor = calculate_armor(character, improvements)
    logger.debug(f"Calculating derived stats for '{character.name or character.id}' with {len(improvements)} improvements")

    return DerivedStats(
        attributes=get_all_attribute_totals(character, improvements),
        essence=format_essence(get_essence(character)),
        physical_cm=calculate_physical_cm(character, improvements),
        stun_cm=calculate_stun_cm(character, improvements),
        overflow=calculate_overflow(character, improvements),
        wound_modifier=calculate_wound_modifier(character),
        is_unconscious=is_unconscious(character, improvements),
        is_dead=is_dead(character, improvements),
        initiative=calculate_initiative(character, improvements),
        initiative_bonus=calculate_initiative_bonus(improvements),
        initiative_dice=calculate_initiative_dice(improvements),
        astral_initiative=calculate_astral_initiative(character, improvements),
        astral_initiative_dice=ASTRAL_INITIATIVE_DICE,
        matrix_initiative=calculate_matrix_initiative(character, improvements),
        matrix_initiative_dice=MATRIX_INITIATIVE_DICE,
        walk_speed=calculate_walk_speed(character, improvements),
        run_speed=calculate_run_speed(character, improvements),
        swim_speed=calculate_swim_speed(character, improvements),
        climb_speed=calculate_climb_speed(character, improvements),
        sprint_bonus=calculate_sprint_bonus(character),
        physical_limit=calculate_physical_limit(character, improvements),
        mental_limit=calculate_mental_limit(character, improvements),
        social_limit=calculate_social_limit(character, improvements),
        armor_ballistic=armor.ballistic,
        armor_impact=armor.impact,
        encumbrance_penalty=armor.encumbrance_penalty,
        defense=calculate_defense(character, improvements),
        dodge=calculate_dodge(character, improvements),
        soak=calculate_soak(character, improvements),
        composure=calculate_composure(character, improvements),
        judge_intentions=calculate_judge_intentions(character, improvements),
        memory=calculate_memory(character, improvements),
        lift_carry=calculate_lift_carry(character, improvements),
        drain_resist=calculate_drain_resist(character, improvements),
        fading_resist=calculate_fading_resist(character, improvements),
        spell_resistance=calculate_spell_resistance(character, improvements),
    )
