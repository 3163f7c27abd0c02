import itertools

import pytest

from chummer_rules.modules.rules_pkg.aggregation import aggregate, aggregate_all, summarize
from chummer_rules.modules.rules_pkg.models import Improvement, ImprovementSource, ImprovementTarget

REA = ImprovementTarget.REA


def imp(value, source=ImprovementSource.CYBERWARE, target=REA, conditional=None, stacks=False, name="Item"):
    return Improvement(
        id=f"{name}-{source.value}-{value}",
        source=source,
        source_name=name,
        target=target,
        value=value,
        conditional=conditional,
        stacks=stacks,
    )


def test_same_source_does_not_stack():
    improvements = [imp(2, name="Reaction Enhancers"), imp(3, name="Move-by-Wire")]
    assert aggregate(improvements, REA) == 3


def test_different_sources_stack():
    improvements = [imp(2), imp(1, ImprovementSource.QUALITY)]
    assert aggregate(improvements, REA) == 3


def test_stacking_effects_add_on_top_of_group_max():
    improvements = [imp(2), imp(3), imp(1, stacks=True), imp(1, stacks=True, name="Other")]
    # max(2, 3) + 1 + 1
    assert aggregate(improvements, REA) == 5


def test_only_stacking_effects_are_summed():
    improvements = [imp(1, stacks=True), imp(2, stacks=True, name="Other")]
    assert aggregate(improvements, REA) == 3


def test_other_targets_ignored():
    improvements = [imp(4, target=ImprovementTarget.AGI), imp(1)]
    assert aggregate(improvements, REA) == 1


def test_empty_is_zero():
    assert aggregate([], REA) == 0


def test_lone_negative_applies():
    assert aggregate([imp(-2, ImprovementSource.QUALITY)], REA) == -2


def test_conditional_improvements_can_be_excluded():
    improvements = [imp(2), imp(1, ImprovementSource.ADEPT_POWER, conditional="Defense tests only")]
    assert aggregate(improvements, REA) == 3
    assert aggregate(improvements, REA, include_conditional=False) == 2


def test_order_independent():
    improvements = [
        imp(2),
        imp(3, name="Other"),
        imp(1, ImprovementSource.QUALITY),
        imp(2, ImprovementSource.ADEPT_POWER),
        imp(1, ImprovementSource.BIOWARE, stacks=True),
    ]
    totals = {aggregate(list(order), REA) for order in itertools.permutations(improvements)}
    assert totals == {7}


def test_aggregate_all():
    improvements = [
        imp(2),
        imp(1, ImprovementSource.QUALITY),
        imp(3, target=ImprovementTarget.INITIATIVE),
    ]
    assert aggregate_all(improvements) == {REA: 3, ImprovementTarget.INITIATIVE: 3}


def test_summarize_lists_every_contributor():
    improvements = [
        imp(2, name="Reaction Enhancers"),
        imp(3, name="Move-by-Wire"),
        imp(1, ImprovementSource.ADEPT_POWER, conditional="Defense tests only", name="Combat Sense"),
    ]
    summary = summarize(improvements, REA)

    assert summary.target == REA
    assert summary.total_value == 4
    assert [line.name for line in summary.sources] == ["Reaction Enhancers", "Move-by-Wire", "Combat Sense"]
    assert summary.sources[2].conditional == "Defense tests only"


@pytest.mark.parametrize("values, expected", [([1], 1), ([1, 1], 1), ([4, 2, 3], 4), ([0.5, 1.5], 1.5)])
def test_group_max(values, expected):
    improvements = [imp(value, name=f"Item{i}") for i, value in enumerate(values)]
    assert aggregate(improvements, REA) == pytest.approx(expected)
