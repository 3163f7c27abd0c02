"""
Complex effect handlers.

Some catalog rows cannot be expressed as a static list of effects because
the magnitude depends on words inside the item name (material grade,
variant). Those rows name a handler registered here; the handler receives
the item name and rating and returns the effect definitions to apply.
"""
import logging
from typing import Callable, Dict, List

from .models import EffectDefinition, ImprovementTarget

logger = logging.getLogger("chummer_rules.rules.complex_effects")

EffectHandler = Callable[[str, int], List[EffectDefinition]]

COMPLEX_EFFECT_HANDLERS: Dict[str, EffectHandler] = {}


def register_handler(name: str) -> Callable[[EffectHandler], EffectHandler]:
    """Decorator adding a handler to the registry under `name`."""
    def decorator(func: EffectHandler) -> EffectHandler:
        if name in COMPLEX_EFFECT_HANDLERS:
            raise ValueError(f"Complex effect handler '{name}' registered twice")
        COMPLEX_EFFECT_HANDLERS[name] = func
        return func
    return decorator


def get_handler(name: str) -> EffectHandler:
    """
    Returns the handler registered under `name`.

    Raises:
        KeyError: If no handler has that name.
    """
    return COMPLEX_EFFECT_HANDLERS[name]


# Bone lacing / bone density: armour depends on the lacing material.
BONE_LACING_GRADES = (
    ("plastic", 1),
    ("aluminum", 2),
    ("titanium", 3),
)


@register_handler("bone_lacing_grade")
def bone_lacing_effects(name: str, rating: int) -> List[EffectDefinition]:
    lower_name = name.lower()
    armor_value = 0
    for keyword, value in BONE_LACING_GRADES:
        if keyword in lower_name:
            armor_value = value
            break

    if armor_value == 0:
        logger.debug(f"No lacing grade found in '{name}', no armor bonus")
        return []

    return [
        EffectDefinition(target=ImprovementTarget.ARMOR_BALLISTIC, id_suffix="armor-b", fixed_value=armor_value),
        EffectDefinition(target=ImprovementTarget.ARMOR_IMPACT, id_suffix="armor-i", fixed_value=armor_value),
    ]
