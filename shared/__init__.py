"""
Shared utilities for the rules engine runtime.

This package aggregates common building blocks consumed by the service:

- config: Runtime configuration via pydantic-settings
- logging: Structured logging with config correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators for configuration fetches

Any cross-cutting logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
