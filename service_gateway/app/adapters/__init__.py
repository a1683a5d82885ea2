"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper for upstream resource services. The
adapter encapsulates:

- Base URLs, timeouts and request shapes
- Classification of upstream failures into typed outcomes

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .resource_client import FailureKind, FetchOutcome, ResourceClient

__all__ = [
    "FailureKind",
    "FetchOutcome",
    "ResourceClient",
]
