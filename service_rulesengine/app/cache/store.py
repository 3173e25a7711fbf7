"""
In-memory rule tree cache keyed by configuration identifier.
"""

import asyncio
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from shared.errors import BuildError, ConfigFetchError, TreeValidationError
from shared.logging import get_logger
from ..rules.builder import ModelGroupTreeBuilder, describe, parse_rules_config
from ..rules.functions import ResultFunctionFactory, StepFunctionFactory
from ..rules.tree import new_tree
from .models import CacheEntry, ModelGroup, RuleSet, fingerprint

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..sources.config_source import ConfigSource


def build_rule_sets(
    raw: bytes,
    step_factory: StepFunctionFactory,
    result_factory: ResultFunctionFactory,
) -> Tuple[RuleSet, ...]:
    """Compile a raw JSON rules document into validated rule sets."""
    config = parse_rules_config(raw)
    if not config.enabled:
        return ()

    rule_sets = []
    for rule_set_config in config.rule_sets:
        if not rule_set_config.enabled:
            continue

        model_groups = tuple(
            ModelGroup(
                weight=group.weight,
                version=group.version,
                analytics_key=group.analytics_key,
                tree=new_tree(ModelGroupTreeBuilder(group, step_factory, result_factory)),
            )
            for group in rule_set_config.model_groups
        )
        rule_sets.append(RuleSet(stage=rule_set_config.stage, name=rule_set_config.name, model_groups=model_groups))

    return tuple(rule_sets)


class RuleTreeCache:
    """Concurrency-safe map of configuration identifier to compiled rule sets.

    Reads and writes take a short lock around the dict only. Entries are
    replaced whole, so a reader holding an entry keeps a consistent view
    while a newer one is installed. Fetching and building happen outside
    the lock.
    """

    def __init__(
        self,
        source: "ConfigSource",
        step_factory: StepFunctionFactory,
        result_factory: ResultFunctionFactory,
        *,
        fetch_timeout_seconds: float = 5.0,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.step_factory = step_factory
        self.result_factory = result_factory
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("rulesengine.cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, config_id: str) -> Optional[CacheEntry]:
        """Get the cached entry, or None when absent."""
        with self._lock:
            return self._entries.get(config_id)

    def set(self, config_id: str, entry: CacheEntry) -> None:
        """Install entry, replacing any existing one."""
        with self._lock:
            self._entries[config_id] = entry

    save = set

    def delete(self, config_id: str) -> None:
        """Remove the entry for config_id if present."""
        with self._lock:
            self._entries.pop(config_id, None)

    def compare_and_set(self, config_id: str, expected: CacheEntry, entry: CacheEntry) -> bool:
        """Install entry only if the current one is still expected."""
        with self._lock:
            if self._entries.get(config_id) is not expected:
                return False
            self._entries[config_id] = entry
            return True

    def compare_and_delete(self, config_id: str, expected: CacheEntry) -> bool:
        """Remove the entry only if the current one is still expected."""
        with self._lock:
            if self._entries.get(config_id) is not expected:
                return False
            del self._entries[config_id]
            return True

    def entries(self) -> List[Tuple[str, CacheEntry]]:
        """Snapshot of all cached entries."""
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, config_id: str) -> bool:
        with self._lock:
            return config_id in self._entries

    async def fetch(self, config_id: str) -> bytes:
        """Fetch raw configuration, bounded by the fetch timeout."""
        try:
            return await asyncio.wait_for(self.source.fetch(config_id), timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ConfigFetchError(
                config_id,
                "Configuration fetch timed out",
                details={"timeout_seconds": self.fetch_timeout_seconds}
            ) from e
        except ConfigFetchError:
            raise
        except Exception as e:
            raise ConfigFetchError(config_id, str(e)) from e

    def build_entry(self, raw: bytes) -> CacheEntry:
        """Compile raw configuration into a fresh entry.

        Raises BuildError or TreeValidationError; nothing is installed.
        """
        start = time.perf_counter()
        try:
            rule_sets = build_rule_sets(raw, self.step_factory, self.result_factory)
        except (BuildError, TreeValidationError) as e:
            self._record_build("error", start)
            if self.metrics:
                self.metrics.record_error(e.code)
            raise

        self._record_build("success", start)
        self.logger.debug(
            "Rule sets built",
            rule_sets=[
                {"stage": rs.stage, "name": rs.name, "model_groups": [describe(mg.tree) for mg in rs.model_groups]}
                for rs in rule_sets
            ],
        )
        return CacheEntry(last_refreshed_at=self.clock(), fingerprint=fingerprint(raw), rule_sets=rule_sets)

    async def get_or_build(self, config_id: str) -> CacheEntry:
        """Get the cached entry, building and installing it on a miss."""
        entry = self.get(config_id)
        if self.metrics:
            self.metrics.record_cache_lookup(hit=entry is not None)
        if entry is not None:
            return entry

        raw = await self.fetch(config_id)
        entry = self.build_entry(raw)

        with self._lock:
            # Another caller may have built it while we were fetching
            current = self._entries.get(config_id)
            if current is not None:
                return current
            self._entries[config_id] = entry

        self.logger.info("Rule tree cache entry built", config_id=config_id, rule_sets=len(entry.rule_sets))
        return entry

    def _record_build(self, outcome: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_build(outcome, time.perf_counter() - start)
