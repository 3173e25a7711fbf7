"""
Rules engine service package.

Compiles JSON rules configuration into decision trees, caches them per
configuration identifier and keeps the cache in step with its source.

- app.rules: Tree model, traversal, validation and the JSON tree builder.
- app.cache: Entry models, the concurrency-safe store and the TTL refresher.
- app.sources: Configuration sources (memory, file, HTTP).
- app.selection: Weighted model group selection.
- app.main: Service facade wiring settings, logging, metrics and cache.

Guidelines:
- Trees are immutable once installed; runs need no locking.
- Cache entries are replaced whole, never edited in place.
- An unchanged configuration is never rebuilt, only re-stamped.
"""
