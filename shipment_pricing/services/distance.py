"""Driving distance between two points via an OSRM-compatible routing service"""
import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional

import httpx

from shipment_pricing.core.config import settings
from shipment_pricing.core.enums import DistanceStatus
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.core.metrics import distance_lookups, track_collaborator
from shipment_pricing.schemas.geo import GeoPoint
from shipment_pricing.schemas.quote import DistanceResult
from shipment_pricing.services.pricing import DISTANCE_UNAVAILABLE_MESSAGE

logger = logging.getLogger(__name__)

ROUTE_PARAMS = {"overview": "false", "alternatives": "false", "steps": "false"}


class DistanceResolver:

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        profile: Optional[str] = None,
    ):
        self._client = client
        self._base_url = (base_url or settings.ROUTING_BASE_URL).rstrip("/")
        self._profile = profile or settings.ROUTING_PROFILE

    def route_url(self, origin: GeoPoint, destination: GeoPoint) -> str:
        return (
            f"{self._base_url}/route/v1/{self._profile}/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )

    @track_collaborator("distance")
    async def _fetch_route_meters(self, origin: GeoPoint, destination: GeoPoint) -> float:
        try:
            response = await self._client.get(self.route_url(origin, destination), params=ROUTE_PARAMS)
        except httpx.TimeoutException as e:
            raise LookupUnavailable("distance", f"Routing service timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LookupUnavailable("distance", f"Routing service request failed: {e}") from e

        if response.status_code != 200:
            raise LookupUnavailable("distance", f"Routing service returned HTTP {response.status_code}")

        try:
            data = response.json()
            meters = data["routes"][0]["distance"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LookupUnavailable("distance", "Routing response is missing the route distance") from e

        if isinstance(meters, bool) or not isinstance(meters, (int, float)):
            raise LookupUnavailable("distance", "Routing response is missing the route distance")
        if not math.isfinite(meters) or meters < 0:
            raise LookupUnavailable("distance", f"Routing response has an invalid distance: {meters}")
        return float(meters)

    async def resolve_distance_km(self, origin: GeoPoint, destination: GeoPoint) -> DistanceResult:
        if not origin.is_complete() or not destination.is_complete():
            distance_lookups.labels(status=DistanceStatus.INCOMPLETE.value).inc()
            return DistanceResult(status=DistanceStatus.INCOMPLETE)

        try:
            meters = await self._fetch_route_meters(origin, destination)
        except LookupUnavailable as e:
            logger.warning(f"Distance lookup failed: {e.message}")
            distance_lookups.labels(status=DistanceStatus.UNAVAILABLE.value).inc()
            return DistanceResult(status=DistanceStatus.UNAVAILABLE, error=DISTANCE_UNAVAILABLE_MESSAGE)

        distance_lookups.labels(status=DistanceStatus.OK.value).inc()
        return DistanceResult(status=DistanceStatus.OK, distance_km=meters / 1000)


class DistanceTracker:
    """Last-write-wins coordinator for distance lookups.

    Every ``request`` bumps a generation counter and cancels the lookup in
    flight. A result is published only if its generation is still current,
    so a late answer for superseded coordinates can never overwrite the
    distance of newer ones.
    """

    def __init__(
        self,
        resolver: DistanceResolver,
        on_result: Optional[Callable[[DistanceResult], Awaitable[None]]] = None,
    ):
        self._resolver = resolver
        self._on_result = on_result
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._result = DistanceResult()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def result(self) -> DistanceResult:
        return self._result

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug(f"Cancelling superseded distance lookup before generation {self._generation}")
            self._task.cancel()

    async def _publish(self, generation: int, result: DistanceResult) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding stale distance for generation {generation}")
            return False
        self._result = result
        if self._on_result is not None:
            await self._on_result(result)
        return True

    async def _run(self, generation: int, origin: GeoPoint, destination: GeoPoint) -> bool:
        result = await self._resolver.resolve_distance_km(origin, destination)
        return await self._publish(generation, result)

    async def request(self, origin: GeoPoint, destination: GeoPoint) -> Optional[asyncio.Task]:
        self._generation += 1
        generation = self._generation
        self._cancel_in_flight()

        if not origin.is_complete() or not destination.is_complete():
            self._task = None
            await self._publish(generation, DistanceResult(status=DistanceStatus.INCOMPLETE))
            return None

        # the previous pair's distance must not price the new coordinates
        self._result = DistanceResult(status=DistanceStatus.PENDING)
        self._task = asyncio.create_task(self._run(generation, origin, destination))
        return self._task

    async def wait(self) -> DistanceResult:
        """Wait for the most recent lookup, following any that supersede it."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.cancelled() and task is not self._task:
                    continue
                raise
        return self._result

    async def close(self) -> None:
        self._generation += 1
        self._cancel_in_flight()
        self._task = None
