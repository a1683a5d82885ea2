"""
Gateway service package for the Bicycle Gateway.

The gateway answers ``GET /{key}`` by fetching the bicycle and its brand
from two independent upstreams in parallel and merging them.

Structure:
- app.main: FastAPI app, routes, and endpoint translation.
- app.adapters: HTTP clients for the upstream resource services.
- app.domain: Record models and the aggregation logic.
"""
