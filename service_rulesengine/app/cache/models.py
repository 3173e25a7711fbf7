"""
Cache entry data models.
"""

import hashlib
from dataclasses import dataclass, field, replace
from typing import List, Tuple

from ..rules.functions import ResultFunction
from ..rules.tree import Node, Tree


def fingerprint(raw: bytes) -> str:
    """Content digest of raw configuration bytes."""
    return hashlib.sha256(raw).hexdigest()


@dataclass(frozen=True)
class ModelGroup:
    """One weighted tree variant of a rule set."""
    weight: int
    version: str
    analytics_key: str
    tree: Tree = field(compare=False)

    @property
    def root(self) -> Node:
        return self.tree.root

    @property
    def default_result_functions(self) -> List[ResultFunction]:
        return self.tree.default_result_functions


@dataclass(frozen=True)
class RuleSet:
    """Model groups sharing a stage and name."""
    stage: str
    name: str
    model_groups: Tuple[ModelGroup, ...] = ()


@dataclass(frozen=True)
class CacheEntry:
    """Compiled rule sets for one configuration identifier."""
    last_refreshed_at: float
    fingerprint: str
    rule_sets: Tuple[RuleSet, ...] = ()

    def age(self, now: float) -> float:
        return now - self.last_refreshed_at

    def is_stale(self, now: float, ttl_seconds: float) -> bool:
        return self.age(now) >= ttl_seconds

    def refreshed(self, now: float) -> "CacheEntry":
        """Copy with only the timestamp renewed; the rule sets are shared."""
        return replace(self, last_refreshed_at=now)

    def rule_sets_for(self, stage: str) -> List[RuleSet]:
        return [rule_set for rule_set in self.rule_sets if rule_set.stage == stage]
