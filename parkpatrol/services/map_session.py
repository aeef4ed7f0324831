"""Map screen session: turns taps into pins, pins into named reports."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from parkpatrol.config import get_settings
from parkpatrol.schemas.map import LocationAuthorization, MapRegion, MapSnapshot, MapState
from parkpatrol.schemas.report import Coordinates, ReportOut
from parkpatrol.services.report_store import ReportStore

logger = logging.getLogger(__name__)
settings = get_settings()

SnapshotCallback = Callable[[MapSnapshot], Awaitable[None]]

_TRACKING_STATUSES = {
    LocationAuthorization.AUTHORIZED_WHEN_IN_USE,
    LocationAuthorization.AUTHORIZED_ALWAYS,
}


class PlaceNameResolver(Protocol):
    async def reverse_geocode(self, latitude: float, longitude: float) -> str | None: ...


def default_region() -> MapRegion:
    """Initial map region before any device location arrives."""
    return MapRegion(
        center=Coordinates(
            latitude=settings.default_latitude,
            longitude=settings.default_longitude,
        ),
        latitude_delta=settings.default_span_degrees,
        longitude_delta=settings.default_span_degrees,
    )


class MapSession:
    """
    State of one map screen.

    idle -> pin_placed (tap) -> name_resolved (lookup done) -> submitted
    (submit) -> idle (confirmation elapsed). A tap from any state places a
    new pin. Lookups are tagged with a token; only the latest tap's result
    is applied.
    """

    def __init__(
        self,
        store: ReportStore,
        geocoder: PlaceNameResolver,
        region: MapRegion | None = None,
        confirmation_seconds: float = settings.confirmation_seconds,
        lookup_timeout: float = settings.geocode_timeout_seconds,
        on_change: SnapshotCallback | None = None,
    ):
        self._store = store
        self._geocoder = geocoder
        self._confirmation_seconds = confirmation_seconds
        self._lookup_timeout = lookup_timeout
        self._on_change = on_change

        self.region = region or default_region()
        self.state = MapState.IDLE
        self.pin: Coordinates | None = None
        self.nearest_location: str | None = None
        self.authorization = LocationAuthorization.NOT_DETERMINED
        self.tracking_location = False

        self._lookup_token = 0
        self._lookup_task: asyncio.Task | None = None
        self._confirmation_task: asyncio.Task | None = None
        self._closed = False

    @property
    def can_submit(self) -> bool:
        return self.pin is not None and self.state is not MapState.SUBMITTED

    def snapshot(self) -> MapSnapshot:
        return MapSnapshot(
            state=self.state,
            pin=self.pin,
            nearest_location=self.nearest_location,
            coordinates_text=str(self.pin) if self.pin else "",
            region=self.region,
            can_submit=self.can_submit,
            alert_sent=self.state is MapState.SUBMITTED,
            tracking_location=self.tracking_location,
        )

    async def _publish(self) -> None:
        if self._on_change is None or self._closed:
            return
        try:
            await self._on_change(self.snapshot())
        except Exception as e:
            logger.warning(f"Failed to publish map state: {e}")

    def _cancel_confirmation(self) -> None:
        if self._confirmation_task and not self._confirmation_task.done():
            self._confirmation_task.cancel()
        self._confirmation_task = None

    async def tap(self, latitude: float, longitude: float) -> Coordinates:
        """Drop the pin at a coordinate and start resolving its name."""
        self._cancel_confirmation()

        self._lookup_token += 1
        token = self._lookup_token

        self.pin = Coordinates(latitude=latitude, longitude=longitude)
        self.region = self.region.recentered(latitude, longitude)
        self.nearest_location = None
        self.state = MapState.PIN_PLACED

        self._lookup_task = asyncio.create_task(self._resolve(token, self.pin))
        await self._publish()
        return self.pin

    async def tap_at_point(self, x: float, y: float, width: float, height: float) -> Coordinates:
        """Drop the pin at a screen point of the current map region."""
        coordinate = self.region.coordinate_at(x, y, width, height)
        return await self.tap(coordinate.latitude, coordinate.longitude)

    async def _resolve(self, token: int, coordinate: Coordinates) -> None:
        try:
            name = await self._geocoder.reverse_geocode(
                coordinate.latitude, coordinate.longitude
            )
        except Exception as e:
            logger.warning(f"Place lookup failed for {coordinate}: {e}")
            name = None

        if token != self._lookup_token or self._closed:
            logger.debug(f"Discarding stale place lookup for {coordinate}")
            return

        self.nearest_location = name or settings.unknown_location
        if self.state is MapState.PIN_PLACED:
            self.state = MapState.NAME_RESOLVED
        await self._publish()

    async def submit(self) -> ReportOut | None:
        """
        Create a report for the current pin.

        Returns:
            The created report, or None when there was nothing to submit or
            the store rejected the write
        """
        if not self.can_submit:
            logger.info(f"Submit ignored in state {self.state.value}")
            return None

        pin = self.pin
        token = self._lookup_token

        lookup = self._lookup_task
        if self.state is MapState.PIN_PLACED and lookup is not None:
            try:
                await asyncio.wait_for(asyncio.shield(lookup), self._lookup_timeout)
            except TimeoutError:
                if token == self._lookup_token:
                    logger.warning(f"Place lookup for {pin} timed out, submitting without a name")
                    # A late result must not rename a pin stored as unknown
                    lookup.cancel()
                    self._lookup_token += 1
                    token = self._lookup_token

        if token != self._lookup_token:
            # A newer tap replaced the pin while we waited
            logger.info("Pin moved during submit, submit dropped")
            return None

        location = self.nearest_location or settings.unknown_location
        report = await self._store.create(pin.latitude, pin.longitude, location)
        if report is None:
            logger.warning(f"Alert at {pin} was not recorded")
            return None

        if token != self._lookup_token or self._closed:
            # The report is stored, but the screen has moved on to a newer pin
            logger.info(f"Pin moved while saving alert {report.id}, keeping the new pin")
            return report

        self.nearest_location = location
        self.state = MapState.SUBMITTED
        self._confirmation_task = asyncio.create_task(self._dismiss_confirmation())
        await self._publish()
        return report

    async def _dismiss_confirmation(self) -> None:
        await asyncio.sleep(self._confirmation_seconds)
        self._lookup_token += 1
        self.state = MapState.IDLE
        self.pin = None
        self.nearest_location = None
        self._confirmation_task = None
        await self._publish()

    async def set_authorization(self, status: LocationAuthorization) -> None:
        """Apply a location permission change reported by the device."""
        self.authorization = status

        if status in _TRACKING_STATUSES:
            self.tracking_location = True
        elif status in (LocationAuthorization.DENIED, LocationAuthorization.RESTRICTED):
            logger.warning("Location services denied or restricted")
            self.tracking_location = False
        else:
            return

        await self._publish()

    async def update_location(self, latitude: float, longitude: float) -> None:
        """Recentre the map on a new device position."""
        if not self.tracking_location:
            logger.debug("Ignoring location update, tracking not authorized")
            return

        self.region = self.region.recentered(latitude, longitude)
        await self._publish()

    async def close(self) -> None:
        """Tear down timers and lookups; the screen is gone."""
        self._closed = True
        self._lookup_token += 1
        self._cancel_confirmation()
        if self._lookup_task and not self._lookup_task.done():
            self._lookup_task.cancel()
        self._lookup_task = None
