"""
Shared utilities for the Bicycle Gateway.

This package aggregates common building blocks consumed by the gateway
and the mock upstream services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI bootstrap (middleware, health, metrics, handlers)

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
