"""
Shared utilities for the production dashboard data layer.

This package aggregates common building blocks consumed by the dashboard
service package:

- config: Settings via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics for the query cache
- errors: Canonical error types for the REST taxonomy
- retry: Retry decorator and backoff configuration
- test_helpers: Factories and fakes shared by the test suites

Do not import from service_dashboard into shared/.
"""
