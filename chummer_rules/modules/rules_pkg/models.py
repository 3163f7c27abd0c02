"""
Pydantic models for the rules engine.

Everything the engine consumes (the character snapshot) and produces
(improvements, roll results, derived stats) is described here. Catalog
models (EffectDefinition / EffectEntry) are frozen so that the loaded
catalog cannot be edited at runtime.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ESSENCE_MAX = 6.0


class ImprovementTarget(str, Enum):
    """Every stat an improvement can modify."""
    BOD = "bod"
    AGI = "agi"
    REA = "rea"
    STR = "str"
    CHA = "cha"
    INT = "int"
    LOG = "log"
    WIL = "wil"
    EDG = "edg"
    MAG = "mag"
    RES = "res"
    ESS = "ess"
    INITIATIVE = "initiative"
    INITIATIVE_DICE = "initiative_dice"
    ARMOR_BALLISTIC = "armor_ballistic"
    ARMOR_IMPACT = "armor_impact"
    PHYSICAL_CM = "physical_cm"
    STUN_CM = "stun_cm"
    SKILL = "skill"
    SKILL_GROUP = "skill_group"
    PHYSICAL_LIMIT = "physical_limit"
    MENTAL_LIMIT = "mental_limit"
    SOCIAL_LIMIT = "social_limit"
    DAMAGE_RESISTANCE = "damage_resistance"
    SPELL_RESISTANCE = "spell_resistance"
    MEMORY = "memory"
    COMPOSURE = "composure"
    JUDGE_INTENTIONS = "judge_intentions"


class ImprovementSource(str, Enum):
    """The category an improvement comes from. Used as the stacking group."""
    CYBERWARE = "cyberware"
    BIOWARE = "bioware"
    QUALITY = "quality"
    ADEPT_POWER = "adept_power"
    GEAR = "gear"
    SPELL = "spell"
    SPIRIT = "spirit"
    FOCUS = "focus"


class CatalogSection(str, Enum):
    """Which part of the character an effect entry is matched against."""
    AUGMENTATION = "augmentation"
    QUALITY = "quality"
    ADEPT_POWER = "adept_power"
    GEAR = "gear"


class MatchMode(str, Enum):
    CONTAINS = "contains"
    EXACT = "exact"


# Attribute codes that always exist on a character.
CORE_ATTRIBUTES = ("bod", "agi", "rea", "str", "cha", "int", "log", "wil", "edg")
SPECIAL_ATTRIBUTES = ("mag", "res")


# --- Character Snapshot ---

class AttributeValue(BaseModel):
    base: int = 1
    bonus: int = 0

    @property
    def total(self) -> int:
        return self.base + self.bonus


class CharacterAttributes(BaseModel):
    """
    The eight physical/mental attributes plus Edge, Essence and the optional
    special attributes. Magic and Resonance are None for characters that do
    not have them.
    """
    bod: AttributeValue = Field(default_factory=AttributeValue)
    agi: AttributeValue = Field(default_factory=AttributeValue)
    rea: AttributeValue = Field(default_factory=AttributeValue)
    str_: AttributeValue = Field(default_factory=AttributeValue, alias="str")
    cha: AttributeValue = Field(default_factory=AttributeValue)
    int_: AttributeValue = Field(default_factory=AttributeValue, alias="int")
    log: AttributeValue = Field(default_factory=AttributeValue)
    wil: AttributeValue = Field(default_factory=AttributeValue)
    edg: AttributeValue = Field(default_factory=AttributeValue)
    ess: float = Field(default=ESSENCE_MAX, description="Essence, 0.00 - 6.00.")
    mag: Optional[AttributeValue] = None
    res: Optional[AttributeValue] = None

    # "str" and "int" are stored under str_/int_ and accepted under either name.
    model_config = {"populate_by_name": True}

    @field_validator("ess")
    @classmethod
    def clamp_essence(cls, value: float) -> float:
        return round(min(ESSENCE_MAX, max(0.0, value)), 2)

    def get_total(self, code: str) -> float:
        """Base + bonus for an attribute code. Absent attributes count as 0."""
        if code == "ess":
            return self.ess
        attr = getattr(self, _ATTRIBUTE_FIELDS.get(code, code), None)
        if not isinstance(attr, AttributeValue):
            return 0
        return attr.total


_ATTRIBUTE_FIELDS = {"str": "str_", "int": "int_"}


def format_essence(essence: float) -> str:
    """Essence is always shown with two decimal places."""
    return f"{max(0.0, essence):.2f}"


class EquippedItem(BaseModel):
    """
    A cyberware/bioware implant, gear item, quality or adept power owned by
    the character. Unrated items count as rating 1.
    """
    id: str
    name: str
    rating: int = 1
    category: Optional[str] = None
    grade: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_level_alias(cls, data):
        # Adept powers carry "level" rather than "rating".
        if isinstance(data, dict) and "rating" not in data and "level" in data:
            data = dict(data)
            data["rating"] = data.pop("level")
        return data

    @field_validator("rating", mode="before")
    @classmethod
    def default_rating(cls, value):
        return 1 if value is None else value

    @field_validator("rating")
    @classmethod
    def minimum_rating(cls, value: int) -> int:
        return max(1, value)


class CharacterSkill(BaseModel):
    name: str
    rating: int = 0
    bonus: int = 0
    group: Optional[str] = None


class ArmorModification(BaseModel):
    id: str
    name: str
    rating: int = 1
    capacity: int = 0


class ArmorPiece(BaseModel):
    id: str
    name: str
    ballistic: int = 0
    impact: int = 0
    equipped: bool = False
    capacity: int = 0
    modifications: List[ArmorModification] = Field(default_factory=list)


class ConditionTrack(BaseModel):
    physical_damage: int = Field(default=0, ge=0)
    stun_damage: int = Field(default=0, ge=0)


class CharacterSnapshot(BaseModel):
    """
    Read-only view of a character as handed over by the persistence/UI layer.
    The engine never writes to it.
    """
    id: str = ""
    name: str = ""
    metatype: str = "Human"
    attributes: CharacterAttributes = Field(default_factory=CharacterAttributes)
    cyberware: List[EquippedItem] = Field(default_factory=list, description="Cyberware and bioware implants.")
    gear: List[EquippedItem] = Field(default_factory=list)
    qualities: List[EquippedItem] = Field(default_factory=list)
    adept_powers: List[EquippedItem] = Field(default_factory=list)
    skills: List[CharacterSkill] = Field(default_factory=list)
    armor: List[ArmorPiece] = Field(default_factory=list)
    condition: ConditionTrack = Field(default_factory=ConditionTrack)
    tradition: Optional[str] = None


# --- Effect Catalog ---

class EffectDefinition(BaseModel):
    """
    One typed effect on a target. The magnitude is either a fixed value or a
    multiple of the source item's rating.
    """
    target: ImprovementTarget
    id_suffix: str
    multiplier: Optional[float] = None
    fixed_value: Optional[float] = None
    conditional: Optional[str] = None
    stacks: bool = False

    model_config = {"frozen": True}


class EffectEntry(BaseModel):
    """A single row of the effect catalog."""
    key: str
    patterns: List[str]
    match: MatchMode = MatchMode.CONTAINS
    source: ImprovementSource
    applies_to: CatalogSection
    effects: List[EffectDefinition] = Field(default_factory=list)
    handler: Optional[str] = Field(None, description="Name of a registered complex-effect handler.")

    model_config = {"frozen": True}

    @field_validator("key")
    @classmethod
    def normalize_key(cls, value: str) -> str:
        return " ".join(value.lower().split())

    @field_validator("patterns", mode="before")
    @classmethod
    def normalize_patterns(cls, value):
        if isinstance(value, str):
            value = [value]
        return [" ".join(p.lower().split()) for p in value]


# --- Improvements ---

class Improvement(BaseModel):
    id: str
    source: ImprovementSource
    source_name: str
    target: ImprovementTarget
    value: float
    conditional: Optional[str] = None
    stacks: bool = False

    model_config = {"frozen": True}


class ImprovementSourceLine(BaseModel):
    name: str
    value: float
    conditional: Optional[str] = None


class ImprovementSummary(BaseModel):
    target: ImprovementTarget
    total_value: float
    sources: List[ImprovementSourceLine] = Field(default_factory=list)


# --- Dice ---

class RollResult(BaseModel):
    dice: List[int] = Field(..., description="The original draw, one entry per die in the pool.")
    extra_dice: List[int] = Field(default_factory=list, description="Dice added by exploding sixes.")
    hits: int
    ones: int
    is_glitch: bool
    is_critical_glitch: bool
    edge_used: bool
    pool: int
    threshold: int = 5

    model_config = {"frozen": True}


class InitiativeResult(BaseModel):
    base: int
    dice: List[int]
    total: int
    passes: int

    model_config = {"frozen": True}


# --- Derived Values ---

class ArmorStackResult(BaseModel):
    ballistic: int = 0
    impact: int = 0
    encumbrance_penalty: int = 0
    has_armor: bool = False


class DerivedStats(BaseModel):
    """Every computed number the UI displays for a character."""
    attributes: Dict[str, float]
    essence: str

    physical_cm: int
    stun_cm: int
    overflow: int
    wound_modifier: int
    is_unconscious: bool
    is_dead: bool

    initiative: int
    initiative_bonus: int
    initiative_dice: int
    astral_initiative: int
    astral_initiative_dice: int
    matrix_initiative: int
    matrix_initiative_dice: int

    walk_speed: int
    run_speed: int
    swim_speed: int
    climb_speed: int
    sprint_bonus: int = 0

    physical_limit: int
    mental_limit: int
    social_limit: int

    armor_ballistic: int
    armor_impact: int
    encumbrance_penalty: int

    defense: int
    dodge: int
    soak: int
    composure: int
    judge_intentions: int
    memory: int
    lift_carry: int

    drain_resist: int
    fading_resist: int
    spell_resistance: int
