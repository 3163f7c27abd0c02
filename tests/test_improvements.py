import pytest

from chummer_rules.modules.rules_pkg import improvement_logic
from chummer_rules.modules.rules_pkg.aggregation import aggregate
from chummer_rules.modules.rules_pkg.models import ImprovementSource, ImprovementTarget

from conftest import make_character


def _by_target(improvements):
    return {imp.target: imp for imp in improvements}


def test_wired_reflexes_scales_with_rating(catalog):
    char = make_character(cyberware=[{"id": "cw1", "name": "Wired Reflexes", "rating": 2}])
    imps = _by_target(improvement_logic.resolve(char, catalog))

    assert imps[ImprovementTarget.INITIATIVE].value == 2
    assert imps[ImprovementTarget.INITIATIVE_DICE].value == 2
    assert imps[ImprovementTarget.INITIATIVE].source == ImprovementSource.CYBERWARE
    assert imps[ImprovementTarget.INITIATIVE].id.startswith("cw1-")
    assert imps[ImprovementTarget.INITIATIVE].source_name == "Wired Reflexes"


def test_unrated_item_counts_as_rating_one(catalog):
    char = make_character(cyberware=[{"id": "cw1", "name": "Reaction Enhancers", "rating": None}])
    imps = improvement_logic.resolve(char, catalog)
    assert [imp.value for imp in imps] == [1]


def test_name_matching_is_case_insensitive_substring(catalog):
    char = make_character(cyberware=[{"id": "cw1", "name": "  WIRED   reflexes (alphaware)", "rating": 1}])
    imps = improvement_logic.resolve(char, catalog)
    assert {imp.target for imp in imps} == {ImprovementTarget.INITIATIVE, ImprovementTarget.INITIATIVE_DICE}


def test_unknown_items_produce_nothing(catalog):
    char = make_character(
        cyberware=[{"id": "cw1", "name": "Datajack"}],
        qualities=[{"id": "q1", "name": "Allergy (Pollen)"}],
        adept_powers=[{"id": "ap1", "name": "Killing Hands"}],
        gear=[{"id": "g1", "name": "Commlink"}],
    )
    assert improvement_logic.resolve(char, catalog) == []


def test_bioware_resolved_once_with_bioware_source(catalog):
    char = make_character(cyberware=[{"id": "bw1", "name": "Synaptic Booster", "rating": 2}])
    imps = improvement_logic.resolve(char, catalog)

    assert len(imps) == 2
    assert all(imp.source == ImprovementSource.BIOWARE for imp in imps)
    assert aggregate(imps, ImprovementTarget.INITIATIVE_DICE) == 2


def test_exact_match_quality_does_not_match_longer_name(catalog):
    char = make_character(qualities=[{"id": "q1", "name": "Toughness"}, {"id": "q2", "name": "Mental Toughness"}])
    imps = improvement_logic.resolve(char, catalog)
    assert [imp.id for imp in imps] == ["q1-tough"]


def test_quality_conditional_note_carried(catalog):
    char = make_character(qualities=[{"id": "q1", "name": "High Pain Tolerance", "rating": 2}])
    (imp,) = improvement_logic.resolve(char, catalog)
    assert imp.target == ImprovementTarget.DAMAGE_RESISTANCE
    assert imp.value == 2
    assert imp.conditional


def test_adept_power_level_alias(catalog):
    char = make_character(adept_powers=[{"id": "ap1", "name": "Improved Reflexes", "level": 3}])
    imps = _by_target(improvement_logic.resolve(char, catalog))
    assert imps[ImprovementTarget.INITIATIVE].value == 3
    assert imps[ImprovementTarget.INITIATIVE].source == ImprovementSource.ADEPT_POWER


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Bone Lacing (Plastic)", 1),
        ("Bone Lacing (Aluminum)", 2),
        ("Bone Density Augmentation (Titanium)", 3),
    ],
)
def test_bone_lacing_grade(catalog, name, expected):
    char = make_character(cyberware=[{"id": "cw1", "name": name}])
    imps = _by_target(improvement_logic.resolve(char, catalog))
    assert imps[ImprovementTarget.ARMOR_BALLISTIC].value == expected
    assert imps[ImprovementTarget.ARMOR_IMPACT].value == expected


def test_bone_lacing_without_grade_has_no_effect(catalog):
    char = make_character(cyberware=[{"id": "cw1", "name": "Bone Lacing"}])
    assert improvement_logic.resolve(char, catalog) == []


def test_resolve_is_idempotent(catalog):
    char = make_character(
        cyberware=[{"id": "cw1", "name": "Wired Reflexes", "rating": 1}, {"id": "cw2", "name": "Muscle Toner", "rating": 2}],
        qualities=[{"id": "q1", "name": "Toughness"}],
    )
    first = improvement_logic.resolve(char, catalog)
    second = improvement_logic.resolve(char, catalog)
    assert first == second
    for target in ImprovementTarget:
        assert aggregate(first, target) == aggregate(second, target)


def test_resolve_does_not_modify_snapshot(catalog):
    char = make_character(cyberware=[{"id": "cw1", "name": "Wired Reflexes", "rating": 2}])
    before = char.model_dump()
    improvement_logic.resolve(char, catalog)
    assert char.model_dump() == before


def test_get_improvements_helpers(catalog):
    char = make_character(
        cyberware=[{"id": "cw1", "name": "Dermal Plating", "rating": 2}],
        adept_powers=[{"id": "ap1", "name": "Mystic Armour", "level": 1}],
    )
    imps = improvement_logic.resolve(char, catalog)

    ballistic = improvement_logic.get_improvements_for_target(imps, ImprovementTarget.ARMOR_BALLISTIC)
    assert sorted(imp.value for imp in ballistic) == [1, 2]

    grouped = improvement_logic.get_improvements_by_source(imps)
    assert set(grouped) == set(ImprovementSource)
    assert len(grouped[ImprovementSource.CYBERWARE]) == 2
    assert len(grouped[ImprovementSource.ADEPT_POWER]) == 2
    assert grouped[ImprovementSource.SPIRIT] == []
