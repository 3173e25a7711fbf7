"""
Rules engine service facade.
"""

import random
from typing import Any, List, Optional

from shared.config import RulesEngineConfig, get_config
from shared.logging import configure_logging, get_logger, set_config_context, clear_context
from shared.metrics import MetricsCollector, get_metrics_collector
from .cache.refresher import CacheRefresher
from .cache.store import RuleTreeCache
from .rules.registry import FunctionRegistry
from .selection import select_model_group
from .sources.config_source import ConfigSource, FileConfigSource, HttpConfigSource, InMemoryConfigSource


def create_config_source(config: RulesEngineConfig) -> ConfigSource:
    """Create the configuration source named by config.config_source."""
    if config.config_source == "http":
        return HttpConfigSource.within_budget(config.config_source_url, config.fetch_timeout_seconds)
    if config.config_source == "memory":
        return InMemoryConfigSource()
    return FileConfigSource(config.config_dir)


class RulesEngineService:
    """Wires configuration, logging, metrics, the tree cache and its refresher."""

    def __init__(
        self,
        config: Optional[RulesEngineConfig] = None,
        *,
        source: Optional[ConfigSource] = None,
        registry: Optional[FunctionRegistry] = None,
        metrics: Optional[MetricsCollector] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or get_config()
        configure_logging(self.config.service_name, self.config.log_level)
        self.logger = get_logger("rulesengine.service")

        self.metrics = metrics or get_metrics_collector(self.config.service_name)
        self.registry = registry or FunctionRegistry()
        self.source = source or create_config_source(self.config)
        self.rng = rng or random.Random()

        self.cache = RuleTreeCache(
            self.source,
            self.registry.step_factory,
            self.registry.result_factory,
            fetch_timeout_seconds=self.config.fetch_timeout_seconds,
            metrics=self.metrics,
        )
        self.refresher = CacheRefresher(
            self.cache,
            ttl_seconds=self.config.cache_ttl_seconds,
            interval_seconds=self.config.sweep_interval_seconds,
            concurrency=self.config.refresh_concurrency,
            metrics=self.metrics,
        )

    async def start(self):
        """Start background refresh and, when configured, the metrics exporter."""
        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)
        await self.refresher.start()
        self.logger.info("Rules engine service started", config_source=self.config.config_source)

    async def stop(self):
        """Stop background refresh."""
        await self.refresher.stop()
        self.logger.info("Rules engine service stopped")

    async def evaluate(self, config_id: str, stage: str, payload: Any, result: Any) -> List[str]:
        """Run every rule set of stage in config_id against payload.

        One model group per rule set is chosen by weight. Returns the
        analytics keys of the model groups that ran, in rule set order.
        """
        entry = await self.cache.get_or_build(config_id)

        set_config_context(config_id=config_id, stage=stage)
        try:
            executed = []
            for rule_set in entry.rule_sets_for(stage):
                model_group = select_model_group(rule_set, self.rng)
                if model_group is None:
                    continue
                model_group.tree.run(payload, result)
                executed.append(model_group.analytics_key)

            self.logger.debug("Stage evaluated", rule_sets=len(executed), analytics_keys=executed)
            return executed
        finally:
            clear_context()
