"""
Engine context.

A RulesContext bundles what the calculators need from outside: settings, the
loaded effect catalog and the dice RNG. Host applications build one at
start-up and pass it to every call; nothing in the engine keeps its own copy.
"""
import logging
import random
from dataclasses import dataclass
from typing import Optional

from .modules.rules_pkg.data_loader import EffectCatalog, load_effect_catalog
from .settings import EngineSettings

logger = logging.getLogger("chummer_rules.context")


@dataclass(frozen=True)
class RulesContext:
    settings: EngineSettings
    catalog: EffectCatalog
    rng: random.Random


def create_context(
    settings: Optional[EngineSettings] = None,
    catalog: Optional[EffectCatalog] = None,
    rng: Optional[random.Random] = None,
) -> RulesContext:
    """
    Builds a context, loading whatever was not supplied.

    Args:
        settings: Engine settings. Read from the environment when omitted.
        catalog: A pre-built catalog. Loaded from settings.data_dir when omitted.
        rng: Dice RNG. A random.Random seeded with settings.seed when omitted.

    Raises:
        CatalogError: If the catalog has to be loaded and is malformed.
    """
    settings = settings or EngineSettings.from_env()
    if catalog is None:
        catalog = load_effect_catalog(settings)
    if rng is None:
        rng = random.Random(settings.seed)
        if settings.seed is not None:
            logger.info(f"Dice RNG seeded with {settings.seed}")

    return RulesContext(settings=settings, catalog=catalog, rng=rng)
