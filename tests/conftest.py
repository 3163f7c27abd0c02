import random

import pytest

from chummer_rules.context import create_context
from chummer_rules.modules.rules_pkg.data_loader import EffectCatalog
from chummer_rules.modules.rules_pkg.models import CharacterSnapshot
from chummer_rules.settings import DEFAULT_DATA_DIR, EngineSettings


class ScriptedRandom(random.Random):
    """random.Random whose randint returns a fixed sequence of faces."""

    def __init__(self, faces):
        super().__init__(0)
        self.faces = list(faces)

    def randint(self, a, b):
        if not self.faces:
            raise AssertionError("ScriptedRandom ran out of faces")
        return self.faces.pop(0)


def make_character(attributes=None, **kwargs) -> CharacterSnapshot:
    """Snapshot with every attribute at 3 unless overridden, e.g. make_character({"bod": 5})."""
    attrs = {code: {"base": 3} for code in ("bod", "agi", "rea", "str", "cha", "int", "log", "wil", "edg")}
    for code, value in (attributes or {}).items():
        attrs[code] = {"base": value} if isinstance(value, int) and code != "ess" else value
    return CharacterSnapshot.model_validate({"id": "char-1", "name": "Test Runner", "attributes": attrs, **kwargs})


@pytest.fixture(scope="session")
def catalog():
    return EffectCatalog.from_directory(DEFAULT_DATA_DIR)


@pytest.fixture
def settings():
    return EngineSettings(seed=42)


@pytest.fixture
def context(settings, catalog):
    return create_context(settings, catalog=catalog)
