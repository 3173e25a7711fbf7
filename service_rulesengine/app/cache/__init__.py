"""
Rule tree caching package.

Holds compiled rule trees per configuration identifier and keeps them in
step with their source:

- models: CacheEntry, RuleSet and ModelGroup plus content fingerprints.
- store: The concurrency-safe entry map with build-on-miss.
- refresher: Background TTL sweep with fingerprint-driven rebuilds.

Entries are only ever replaced whole; readers never see a partial tree.
"""
