"""
Background TTL sweep for the rule tree cache.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from shared.errors import ConfigFetchError, ConfigNotFoundError, RulesEngineException
from shared.logging import get_logger, config_id_var
from .models import CacheEntry, fingerprint

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from .store import RuleTreeCache

UNCHANGED = "unchanged"
REBUILT = "rebuilt"
FAILED = "failed"
SKIPPED = "skipped"
EVICTED = "evicted"


@dataclass
class SweepSummary:
    """Counts from one sweep."""
    checked: int = 0
    unchanged: int = 0
    rebuilt: int = 0
    failed: int = 0
    skipped: int = 0
    evicted: int = 0


class CacheRefresher:
    """Periodically rechecks stale cache entries against their source.

    An entry older than the TTL has its configuration refetched and
    fingerprinted. A matching fingerprint only renews the timestamp; a
    different one triggers a rebuild. An identifier the source no longer knows
    is evicted. When fetching or rebuilding fails the
    stale entry keeps serving and is retried on the next sweep.
    """

    def __init__(
        self,
        cache: "RuleTreeCache",
        *,
        ttl_seconds: float = 300.0,
        interval_seconds: float = 300.0,
        concurrency: int = 5,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds
        self.metrics = metrics
        self.logger = get_logger("rulesengine.refresher")
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

        self.refresh_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        """Start the background sweep."""
        if self.running:
            return
        self.running = True
        self.refresh_task = asyncio.create_task(self._refresh_loop())
        self.logger.info(
            "Cache refresher started",
            ttl_seconds=self.ttl_seconds,
            interval_seconds=self.interval_seconds
        )

    async def stop(self):
        """Stop the background sweep."""
        self.running = False
        if self.refresh_task:
            self.refresh_task.cancel()
            try:
                await self.refresh_task
            except asyncio.CancelledError:
                pass
            self.refresh_task = None

        self.logger.info("Cache refresher stopped")

    async def _refresh_loop(self):
        """Main sweep loop."""
        while self.running:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Error in refresh loop", error=str(e), exc_info=True)

    async def sweep(self) -> SweepSummary:
        """Reconcile every entry whose age has reached the TTL."""
        summary = SweepSummary()
        now = self.cache.clock()

        stale = []
        for config_id, entry in self.cache.entries():
            if entry.is_stale(now, self.ttl_seconds):
                stale.append((config_id, entry))
            else:
                summary.skipped += 1

        outcomes = await asyncio.gather(
            *(self._bounded_reconcile(config_id, entry) for config_id, entry in stale)
        )

        for outcome in outcomes:
            summary.checked += 1
            if outcome == UNCHANGED:
                summary.unchanged += 1
            elif outcome == REBUILT:
                summary.rebuilt += 1
            elif outcome == FAILED:
                summary.failed += 1
            elif outcome == EVICTED:
                summary.evicted += 1
            else:
                summary.skipped += 1

        self.logger.info(
            "Cache sweep completed",
            checked=summary.checked,
            unchanged=summary.unchanged,
            rebuilt=summary.rebuilt,
            failed=summary.failed,
            skipped=summary.skipped,
            evicted=summary.evicted,
        )
        return summary

    async def _bounded_reconcile(self, config_id: str, entry: CacheEntry) -> str:
        async with self._semaphore:
            return await self.reconcile(config_id, entry)

    async def reconcile(self, config_id: str, entry: CacheEntry) -> str:
        """Bring one stale entry up to date.

        Returns "unchanged", "rebuilt", "failed", "evicted" when the source
        no longer has the identifier, or "skipped" when the entry was
        replaced or deleted while reconciling.
        """
        token = config_id_var.set(config_id)
        try:
            outcome = await self._reconcile(config_id, entry)
        finally:
            config_id_var.reset(token)

        if self.metrics:
            self.metrics.record_refresh(outcome)
        return outcome

    async def _reconcile(self, config_id: str, entry: CacheEntry) -> str:
        try:
            raw = await self.cache.fetch(config_id)
        except ConfigNotFoundError as e:
            if not self.cache.compare_and_delete(config_id, entry):
                return SKIPPED
            self.logger.info("Configuration removed at source, entry evicted", details=e.details)
            return EVICTED
        except RulesEngineException as e:
            self._report_failure("Configuration fetch failed, serving stale entry", e)
            return FAILED

        new_fingerprint = fingerprint(raw)
        if new_fingerprint == entry.fingerprint:
            if not self.cache.compare_and_set(config_id, entry, entry.refreshed(self.cache.clock())):
                return SKIPPED
            self.logger.debug("Configuration unchanged, timestamp refreshed")
            return UNCHANGED

        try:
            rebuilt = self.cache.build_entry(raw)
        except RulesEngineException as e:
            self._report_failure("Rule tree rebuild failed, serving stale entry", e)
            return FAILED

        if not self.cache.compare_and_set(config_id, entry, rebuilt):
            return SKIPPED

        self.logger.info(
            "Rule tree cache entry rebuilt",
            previous_fingerprint=entry.fingerprint,
            fingerprint=rebuilt.fingerprint,
        )
        return REBUILT

    def _report_failure(self, message: str, error: RulesEngineException) -> None:
        self.logger.warning(message, code=error.code, error=error.message, details=error.details)
        # Build failures are already counted by the cache
        if self.metrics and isinstance(error, ConfigFetchError):
            self.metrics.record_error(error.code)
