"""
Aggregator: reduces improvements to one number per target.

Stacking discipline: improvements are grouped by (source, target). Inside a
group only the largest non-stacking value counts; values flagged `stacks`
are added on top. Group results are summed across sources.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from .models import (
    Improvement,
    ImprovementSource,
    ImprovementSourceLine,
    ImprovementSummary,
    ImprovementTarget,
)

logger = logging.getLogger("chummer_rules.rules.aggregation")


def _group_total(values: List[Improvement]) -> float:
    exclusive = [imp.value for imp in values if not imp.stacks]
    stacking = sum(imp.value for imp in values if imp.stacks)
    # A lone negative (a penalty) still applies; max() of one value is that value.
    best = max(exclusive) if exclusive else 0
    return best + stacking


def aggregate(
    improvements: Iterable[Improvement],
    target: ImprovementTarget,
    include_conditional: bool = True,
) -> float:
    """Total bonus for a target.

    Args:
        improvements: Output of improvement_logic.resolve.
        target: The stat being totalled.
        include_conditional: When False, improvements carrying a conditional
            note (situational bonuses) are left out.

    Returns:
        The summed per-source maxima. 0 when nothing targets the stat.
    """
    groups: Dict[ImprovementSource, List[Improvement]] = defaultdict(list)
    for imp in improvements:
        if imp.target != target:
            continue
        if not include_conditional and imp.conditional:
            continue
        groups[imp.source].append(imp)

    return sum((_group_total(values) for values in groups.values()), 0.0)


def aggregate_all(improvements: Iterable[Improvement], include_conditional: bool = True) -> Dict[ImprovementTarget, float]:
    """Aggregates every target that has at least one improvement."""
    improvements = list(improvements)
    targets = {imp.target for imp in improvements}
    return {target: aggregate(improvements, target, include_conditional) for target in targets}


def summarize(improvements: Iterable[Improvement], target: ImprovementTarget) -> ImprovementSummary:
    """Total plus the per-item breakdown, for tooltips."""
    improvements = list(improvements)
    lines = [
        ImprovementSourceLine(name=imp.source_name, value=imp.value, conditional=imp.conditional)
        for imp in improvements
        if imp.target == target
    ]
    return ImprovementSummary(
        target=target,
        total_value=aggregate(improvements, target),
        sources=lines,
    )
