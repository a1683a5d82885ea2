"""
Aggregation gateway service for the Bicycle Gateway.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple

import httpx
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import GatewayError

from service_gateway.app.adapters.resource_client import ResourceClient
from service_gateway.app.domain.aggregator import Aggregator
from service_gateway.app.domain.models import BicycleRecord, BrandRecord

SERVICE_NAME = "gateway"
DEFAULT_PORT = 3000


class GatewayService(BaseService):
    """Gateway fronting the bicycle and brand upstreams."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 transports: Optional[Dict[str, httpx.AsyncBaseTransport]] = None):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config or get_config(SERVICE_NAME, DEFAULT_PORT))
        transports = transports or {}

        self.bicycle_client = ResourceClient(
            "bicycle",
            self.config.bicycle_service_url,
            BicycleRecord,
            connect_timeout=self.config.upstream_connect_timeout,
            read_timeout=self.config.upstream_read_timeout,
            metrics=self.metrics,
            transport=transports.get("bicycle"),
        )
        self.brand_client = ResourceClient(
            "brand",
            self.config.brand_service_url,
            BrandRecord,
            connect_timeout=self.config.upstream_connect_timeout,
            read_timeout=self.config.upstream_read_timeout,
            metrics=self.metrics,
            transport=transports.get("brand"),
        )
        self.aggregator = Aggregator(self.bicycle_client, self.brand_client, metrics=self.metrics)

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def handle(self, key: str) -> Tuple[int, Dict[str, Any]]:
        """Translate an aggregation into a status code and response body."""
        try:
            entity = await self.aggregator.aggregate(key)
        except GatewayError as exc:
            self.metrics.record_error(exc.code)
            return exc.status_code, exc.to_response().model_dump()

        return 200, entity.model_dump()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Probe both upstreams; an unhealthy upstream never fails the gateway itself."""
        clients = (self.bicycle_client, self.brand_client)
        states = await asyncio.gather(*(self._probe(client) for client in clients))
        return {client.upstream: state for client, state in zip(clients, states)}

    async def _probe(self, client: ResourceClient) -> str:
        try:
            async with httpx.AsyncClient(timeout=client.timeout, transport=client.transport) as http:
                response = await http.get(client.base_url + "/")
        except httpx.HTTPError as e:
            self.logger.warning("Upstream unreachable", upstream=client.upstream, error=str(e))
            return "unreachable"

        if response.status_code < 500:
            return "ok"
        return "degraded"

    def _setup_gateway_routes(self):
        """Set up gateway routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Bicycle Gateway - aggregation of bicycle and brand services",
                "version": "1.0.0",
                "upstreams": {
                    "bicycle": self.config.bicycle_service_url,
                    "brand": self.config.brand_service_url,
                }
            }

        @self.app.get("/{key}")
        async def get_bicycle(key: str):
            """Return the bicycle addressed by ``key`` merged with its brand."""
            status_code, body = await self.handle(key)
            return JSONResponse(status_code=status_code, content=body)


def create_app():
    """Create FastAPI application."""
    service = GatewayService()
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
