"""
Upstream resource client for Gateway.

A ResourceClient performs one fetch-by-key against a single upstream and
classifies the answer into a FetchOutcome. It never raises for anything the
upstream or the transport can do; only programming errors escape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Type, TypeVar
from urllib.parse import quote
import time

import httpx
from pydantic import BaseModel, ValidationError

from shared.logging import get_logger
from shared.metrics import MetricsCollector

RecordT = TypeVar("RecordT", bound=BaseModel)


class FailureKind(str, Enum):
    """Classification of a failed upstream fetch."""
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    OTHER = "other"


@dataclass(frozen=True)
class FetchOutcome(Generic[RecordT]):
    """Tagged result of one upstream fetch.

    Exactly one of ``record`` and ``failure`` is set. ``detail`` and
    ``status_code`` are diagnostics for logs and never reach callers.
    """

    upstream: str
    record: Optional[RecordT] = None
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, upstream: str, record: RecordT) -> "FetchOutcome[RecordT]":
        return cls(upstream=upstream, record=record)

    @classmethod
    def failed(cls, upstream: str, failure: FailureKind, detail: str,
               status_code: Optional[int] = None) -> "FetchOutcome[RecordT]":
        return cls(upstream=upstream, failure=failure, detail=detail, status_code=status_code)


_STATUS_CLASSIFICATION = {
    404: FailureKind.NOT_FOUND,
    400: FailureKind.BAD_REQUEST,
}

# Keys httpx would collapse into the parent or current path.
DOT_SEGMENTS = frozenset({".", ".."})


class ResourceClient(Generic[RecordT]):
    """Client for fetching a single entity by key from one upstream."""

    def __init__(self,
                 upstream: str,
                 base_url: str,
                 record_type: Type[RecordT],
                 connect_timeout: float = 2.0,
                 read_timeout: float = 5.0,
                 metrics: Optional[MetricsCollector] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.upstream = upstream
        self.base_url = base_url.rstrip('/')
        self.record_type = record_type
        self.timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self.metrics = metrics
        self.transport = transport
        self.logger = get_logger(f"gateway.{upstream}_client")

    def url_for(self, key: str) -> str:
        """Build the entity URL, keeping the key a single path segment."""
        return f"{self.base_url}/{quote(key, safe='')}"

    async def fetch(self, key: str) -> FetchOutcome[RecordT]:
        """Fetch the entity addressed by ``key`` and classify the result."""
        start_time = time.monotonic()
        outcome = await self._fetch(key)
        duration = time.monotonic() - start_time

        if self.metrics is not None:
            outcome_label = "success" if outcome.ok else outcome.failure.value
            self.metrics.record_upstream_fetch(self.upstream, outcome_label, duration)

        return outcome

    async def _fetch(self, key: str) -> FetchOutcome[RecordT]:
        if key in DOT_SEGMENTS:
            self.logger.info("Rejected dot-segment key", upstream=self.upstream, key=key)
            return FetchOutcome.failed(self.upstream, FailureKind.BAD_REQUEST, "dot-segment key")

        url = self.url_for(key)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            self.logger.error("Upstream request timed out", upstream=self.upstream, url=url, error=str(e))
            return FetchOutcome.failed(self.upstream, FailureKind.OTHER, f"timeout: {e}")
        except httpx.HTTPError as e:
            self.logger.error("Upstream transport error", upstream=self.upstream, url=url, error=str(e))
            return FetchOutcome.failed(self.upstream, FailureKind.OTHER, f"transport: {e}")

        if response.is_success:
            return self._parse(url, response)

        failure = _STATUS_CLASSIFICATION.get(response.status_code, FailureKind.OTHER)
        log = self.logger.info if failure is not FailureKind.OTHER else self.logger.error
        log(
            "Upstream request failed",
            upstream=self.upstream,
            url=url,
            status_code=response.status_code,
            classification=failure.value
        )
        return FetchOutcome.failed(
            self.upstream,
            failure,
            f"status {response.status_code}",
            status_code=response.status_code
        )

    def _parse(self, url: str, response: httpx.Response) -> FetchOutcome[RecordT]:
        try:
            record = self.record_type.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            # json decode errors are ValueErrors too
            self.logger.error(
                "Upstream returned malformed body",
                upstream=self.upstream,
                url=url,
                status_code=response.status_code,
                error=str(e)
            )
            return FetchOutcome.failed(
                self.upstream,
                FailureKind.OTHER,
                f"malformed body: {e}",
                status_code=response.status_code
            )

        self.logger.debug("Upstream entity retrieved", upstream=self.upstream, url=url)
        return FetchOutcome.success(self.upstream, record)
