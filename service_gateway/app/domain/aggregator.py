"""
Bicycle aggregation for Gateway.

Fetches the bicycle and its brand concurrently and merges them into one
entity. The merge is all-or-nothing: any failed fetch becomes exactly one
GatewayError and no partial entity is ever produced.

When both fetches fail the bicycle outcome is checked first, so a bicycle
failure always decides the error kind.
"""

import asyncio
from typing import Any, Optional, Sequence, Tuple

from shared.errors import BadRequestError, GatewayError, NotFoundError, UpstreamError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_gateway.app.adapters.resource_client import DOT_SEGMENTS, FailureKind, FetchOutcome, ResourceClient
from service_gateway.app.domain.models import BicycleRecord, BrandRecord, MergedEntity


class Aggregator:
    """Merges bicycle and brand upstream records by key."""

    def __init__(self,
                 bicycle_client: ResourceClient[BicycleRecord],
                 brand_client: ResourceClient[BrandRecord],
                 metrics: Optional[MetricsCollector] = None):
        self.bicycle_client = bicycle_client
        self.brand_client = brand_client
        self.metrics = metrics
        self.logger = get_logger("gateway.aggregator")

    async def aggregate(self, key: str) -> MergedEntity:
        """Return the merged entity for ``key`` or raise a GatewayError."""
        try:
            entity = await self._aggregate(key)
        except GatewayError as exc:
            self._record(exc.code.lower())
            raise

        self._record("success")
        return entity

    async def _aggregate(self, key: str) -> MergedEntity:
        if not key:
            raise BadRequestError("Key must not be empty")
        if key in DOT_SEGMENTS:
            raise BadRequestError("Key must not be a dot segment")

        # Both outcomes are observed before anything is decided.
        results = await asyncio.gather(
            self.bicycle_client.fetch(key),
            self.brand_client.fetch(key),
            return_exceptions=True,
        )

        bicycle, brand = self._check_outcomes(
            key,
            ((self.bicycle_client.upstream, results[0]), (self.brand_client.upstream, results[1])),
        )

        merged = MergedEntity(
            id=bicycle.record.id,
            color=bicycle.record.color,
            brand=brand.record.name,
        )
        self.logger.debug("Aggregated entity", key=key, entity_id=merged.id)
        return merged

    def _check_outcomes(self, key: str, results: Sequence[Tuple[str, Any]]) -> Tuple[FetchOutcome, ...]:
        """Raise for the first failed result in order; return outcomes otherwise."""
        outcomes = []
        for upstream, result in results:
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # CancelledError, KeyboardInterrupt and friends
                    raise result
                self.logger.error(
                    "Upstream fetch raised",
                    upstream=upstream,
                    key=key,
                    error=repr(result)
                )
                raise UpstreamError(upstream, details={"upstream": upstream}) from result

            if not result.ok:
                raise self._map_failure(key, result)
            outcomes.append(result)

        return tuple(outcomes)

    def _map_failure(self, key: str, outcome: FetchOutcome) -> GatewayError:
        """Map a classified upstream failure to its gateway error."""
        self.logger.info(
            "Aggregation failed",
            key=key,
            upstream=outcome.upstream,
            classification=outcome.failure.value,
            detail=outcome.detail
        )
        details = {"upstream": outcome.upstream}

        if outcome.failure is FailureKind.NOT_FOUND:
            return NotFoundError(details=details)
        if outcome.failure is FailureKind.BAD_REQUEST:
            return BadRequestError(details=details)
        return UpstreamError(outcome.upstream, details=details)

    def _record(self, result: str):
        if self.metrics is not None:
            self.metrics.record_aggregation(result)
