"""
Mock resource store serving one entity type over HTTP.

Used as the bicycle and brand upstreams during local development and
integration tests. Entities live in memory only.
"""

import re
import sys
import uuid
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Response
from pydantic import BaseModel, Field

from shared.logging import get_logger

KEY_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")

BICYCLE_SEED = {
    "42": {"color": "red"},
    "7": {"color": "blue"},
    "b-101": {"color": "green"},
}

BRAND_SEED = {
    "42": {"name": "Acme"},
    "7": {"name": "Velocity"},
    "b-101": {"name": "Pedalworks"},
}


class EntityPayload(BaseModel):
    """Request body for writes."""
    data: Dict[str, Any] = Field(default_factory=dict, description="Entity attributes")


class MockResourceServer:
    """Mock upstream resource service implementation."""

    def __init__(self, resource: str, seed: Optional[Dict[str, Dict[str, Any]]] = None, port: int = 4000):
        self.resource = resource
        self.port = port
        self.logger = get_logger(f"mock.{resource}")
        self.app = FastAPI(title=f"Mock {resource.title()} Service", version="1.0.0")
        self.store: Dict[str, Dict[str, Any]] = {key: dict(value) for key, value in (seed or {}).items()}

        self._setup_routes()

    def _validate_key(self, key: str) -> str:
        if not KEY_PATTERN.fullmatch(key):
            self.logger.info("Rejected malformed key", key=key)
            raise HTTPException(status_code=400, detail="Malformed key")
        return key

    def _require(self, key: str) -> Dict[str, Any]:
        entity = self.store.get(self._validate_key(key))
        if entity is None:
            raise HTTPException(status_code=404, detail=f"{self.resource} not found")
        return entity

    def _setup_routes(self):
        """Set up mock resource routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": f"mock-{self.resource}",
                "message": f"Mock {self.resource} service for the Bicycle Gateway",
                "version": "1.0.0",
                "count": len(self.store)
            }

        @self.app.get("/{key}")
        async def read_entity(key: str):
            """Read one entity."""
            entity = self._require(key)
            return {"id": key, **entity}

        @self.app.post("/", status_code=201)
        async def create_entity(payload: EntityPayload = Body(...)):
            """Create an entity under a generated key."""
            key = uuid.uuid4().hex
            self.store[key] = dict(payload.data)
            self.logger.info("Entity created", key=key)
            return {"id": key}

        @self.app.post("/{key}/update", status_code=204)
        async def update_entity(key: str, payload: EntityPayload = Body(...)):
            """Update an existing entity."""
            self._require(key)
            self.store[key] = dict(payload.data)
            self.logger.info("Entity updated", key=key)
            return Response(status_code=204)

        @self.app.put("/{key}")
        async def upsert_entity(key: str, payload: EntityPayload = Body(...)):
            """Create the entity, or update it when it already exists."""
            self._validate_key(key)
            existed = key in self.store
            self.store[key] = dict(payload.data)
            if existed:
                self.logger.info("Entity updated", key=key)
                return Response(status_code=204)
            self.logger.info("Entity created", key=key)
            return Response(status_code=201)

        @self.app.delete("/{key}", status_code=204)
        async def delete_entity(key: str):
            """Delete an entity."""
            self._require(key)
            del self.store[key]
            self.logger.info("Entity deleted", key=key)
            return Response(status_code=204)


def create_bicycle_app(seed: Optional[Dict[str, Dict[str, Any]]] = None) -> FastAPI:
    """Create the mock bicycle service application."""
    return MockResourceServer("bicycle", BICYCLE_SEED if seed is None else seed, port=4000).app


def create_brand_app(seed: Optional[Dict[str, Dict[str, Any]]] = None) -> FastAPI:
    """Create the mock brand service application."""
    return MockResourceServer("brand", BRAND_SEED if seed is None else seed, port=5000).app


if __name__ == "__main__":
    import uvicorn

    factories = {"bicycle": (create_bicycle_app, 4000), "brand": (create_brand_app, 5000)}
    name = sys.argv[1] if len(sys.argv) > 1 else "bicycle"
    if name not in factories:
        raise SystemExit(f"usage: python -m mocks.resource_store.server [{'|'.join(factories)}]")

    factory, port = factories[name]
    uvicorn.run(factory(), host="0.0.0.0", port=port)
