"""
Configuration sources.

A source returns the raw JSON bytes of a rules configuration for an
identifier. Sources are fetched repeatedly, once per build and once per
stale-entry check, so they must not cache on their own.
"""
