"""
Weighted model group selection.
"""

import random
from typing import Optional

from .cache.models import ModelGroup, RuleSet


def select_model_group(rule_set: RuleSet, rng: Optional[random.Random] = None) -> Optional[ModelGroup]:
    """Pick one model group of rule_set with probability proportional to its weight."""
    groups = rule_set.model_groups
    if not groups:
        return None
    if len(groups) == 1:
        return groups[0]

    rng = rng or random
    return rng.choices(groups, weights=[group.weight for group in groups], k=1)[0]
