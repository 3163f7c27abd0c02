"""
Improvement Resolver

Walks a character's augmentations, gear, qualities and adept powers, matches
each one against the effect catalog and emits a flat list of Improvement
records. Nothing here aggregates; see aggregation.py for stacking.
"""
import logging
from typing import Dict, Iterable, List

from .complex_effects import get_handler
from .data_loader import EffectCatalog, calculate_effect_value
from .models import (
    CatalogSection,
    CharacterSnapshot,
    EffectDefinition,
    EffectEntry,
    EquippedItem,
    Improvement,
    ImprovementSource,
    ImprovementTarget,
)

logger = logging.getLogger("chummer_rules.rules.improvement_logic")


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _effects_for_entry(entry: EffectEntry, item: EquippedItem) -> List[EffectDefinition]:
    """Static effects of a row, or whatever its complex handler returns for this item."""
    if entry.handler:
        return get_handler(entry.handler)(item.name, item.rating)
    return list(entry.effects)


def _build_improvements(entry: EffectEntry, item: EquippedItem) -> List[Improvement]:
    improvements = []
    for effect in _effects_for_entry(entry, item):
        improvements.append(Improvement(
            id=f"{item.id}-{effect.id_suffix}",
            source=entry.source,
            source_name=item.name,
            target=effect.target,
            value=calculate_effect_value(effect, item.rating),
            conditional=effect.conditional,
            stacks=effect.stacks,
        ))
    return improvements


def _resolve_items(
    items: Iterable[EquippedItem],
    section: CatalogSection,
    catalog: EffectCatalog,
) -> List[Improvement]:
    improvements = []
    for item in items:
        entry = catalog.find(item.name, section)
        if entry is None:
            logger.debug(f"No {section.value} effects for '{item.name}'")
            continue
        improvements.extend(_build_improvements(entry, item))
    return improvements


# ============================================================================
# RESOLVER
# ============================================================================

def resolve(character: CharacterSnapshot, catalog: EffectCatalog) -> List[Improvement]:
    """Collect every improvement granted by a character's equipped items.

    Each cyberware/bioware implant is resolved exactly once against the
    merged augmentation table, which carries the source tag of its row.
    Gear, qualities and adept powers each use their own section.

    Args:
        character: The character snapshot. Never modified.
        catalog: A loaded EffectCatalog.

    Returns:
        Flat list of Improvement records. Unknown names contribute nothing.
    """
    improvements: List[Improvement] = []
    improvements.extend(_resolve_items(character.cyberware, CatalogSection.AUGMENTATION, catalog))
    improvements.extend(_resolve_items(character.gear, CatalogSection.GEAR, catalog))
    improvements.extend(_resolve_items(character.qualities, CatalogSection.QUALITY, catalog))
    improvements.extend(_resolve_items(character.adept_powers, CatalogSection.ADEPT_POWER, catalog))

    logger.debug(f"Resolved {len(improvements)} improvements for '{character.name or character.id}'")
    return improvements


def get_improvements_for_target(
    improvements: Iterable[Improvement],
    target: ImprovementTarget,
) -> List[Improvement]:
    return [imp for imp in improvements if imp.target == target]


def get_improvements_by_source(improvements: Iterable[Improvement]) -> Dict[ImprovementSource, List[Improvement]]:
    """Groups improvements by source. Every source kind is present as a key."""
    grouped: Dict[ImprovementSource, List[Improvement]] = {source: [] for source in ImprovementSource}
    for imp in improvements:
        grouped[imp.source].append(imp)
    return grouped
