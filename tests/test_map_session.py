"""Tests for the map screen session."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from parkpatrol.schemas.map import LocationAuthorization, MapRegion, MapState
from parkpatrol.schemas.report import Coordinates
from parkpatrol.services.map_session import MapSession, default_region


async def _settle() -> None:
    """Let pending lookup tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)


class _GatedStore:
    """Report store wrapper whose writes wait until the gate opens."""

    def __init__(self, store):
        self._store = store
        self.gate = asyncio.Event()

    async def create(self, *args, **kwargs):
        await self.gate.wait()
        return await self._store.create(*args, **kwargs)


@pytest.fixture
def region() -> MapRegion:
    return MapRegion(
        center=Coordinates(latitude=33.88, longitude=-117.88),
        latitude_delta=0.02,
        longitude_delta=0.04,
    )


class TestMapRegion:
    """Tests for screen point to coordinate conversion."""

    def test_center_point(self, region):
        coordinate = region.coordinate_at(200, 300, 400, 600)

        assert coordinate.latitude == pytest.approx(33.88)
        assert coordinate.longitude == pytest.approx(-117.88)

    def test_top_left_corner(self, region):
        """Screen y grows downwards, latitude grows upwards."""
        coordinate = region.coordinate_at(0, 0, 400, 600)

        assert coordinate.latitude == pytest.approx(33.89)
        assert coordinate.longitude == pytest.approx(-117.90)

    def test_bottom_right_corner(self, region):
        coordinate = region.coordinate_at(400, 600, 400, 600)

        assert coordinate.latitude == pytest.approx(33.87)
        assert coordinate.longitude == pytest.approx(-117.86)

    def test_invalid_view_size(self, region):
        with pytest.raises(ValueError):
            region.coordinate_at(10, 10, 0, 600)

    def test_recentered_keeps_span(self, region):
        moved = region.recentered(34.0, -118.0)

        assert moved.center == Coordinates(latitude=34.0, longitude=-118.0)
        assert moved.latitude_delta == region.latitude_delta
        assert region.center.latitude == 33.88

    def test_viewport(self, region):
        viewport = region.viewport()

        assert viewport.contains(33.88, -117.88) is True
        assert viewport.contains(33.90, -117.88) is False

    def test_default_region(self):
        region = default_region()

        assert region.center.latitude == 33.8818
        assert region.center.longitude == -117.8855
        assert region.latitude_delta == 0.01


class TestPinWorkflow:
    """Tests for tap, lookup and submit."""

    @pytest.mark.asyncio
    async def test_starts_idle(self, store, geocoder):
        session = MapSession(store, geocoder)
        snapshot = session.snapshot()

        assert snapshot.state is MapState.IDLE
        assert snapshot.pin is None
        assert snapshot.can_submit is False
        assert snapshot.alert_sent is False

    @pytest.mark.asyncio
    async def test_tap_places_pin_and_resolves_name(self, store, geocoder):
        session = MapSession(store, geocoder)

        await session.tap(33.88, -117.88)
        assert session.state is MapState.PIN_PLACED
        assert session.pin == Coordinates(latitude=33.88, longitude=-117.88)
        assert session.region.center == session.pin

        await _settle()
        assert session.state is MapState.NAME_RESOLVED
        assert session.nearest_location == "CSUF Lot A"
        assert session.snapshot().coordinates_text == "33.88, -117.88"

    @pytest.mark.asyncio
    async def test_tap_at_point(self, store, geocoder, region):
        session = MapSession(store, geocoder, region=region)

        pin = await session.tap_at_point(0, 0, 400, 600)

        assert pin.latitude == pytest.approx(33.89)
        assert pin.longitude == pytest.approx(-117.90)
        await _settle()
        assert geocoder.calls == [(pin.latitude, pin.longitude)]

    @pytest.mark.asyncio
    async def test_tap_then_submit_creates_one_report(self, store, geocoder):
        session = MapSession(store, geocoder)
        await session.tap(33.88, -117.88)
        await _settle()

        before = datetime.now(UTC)
        report = await session.submit()
        after = datetime.now(UTC)

        assert report is not None
        assert report.latitude == 33.88
        assert report.longitude == -117.88
        assert report.location == "CSUF Lot A"
        assert before <= report.timestamp <= after
        assert await store.count() == 1
        assert session.state is MapState.SUBMITTED
        assert session.snapshot().alert_sent is True
        await session.close()

    @pytest.mark.asyncio
    async def test_submit_without_pin_is_noop(self, store, geocoder):
        session = MapSession(store, geocoder)

        assert await session.submit() is None
        assert await store.count() == 0
        assert session.state is MapState.IDLE

    @pytest.mark.asyncio
    async def test_no_geocode_result_uses_placeholder(self, store, geocoder):
        geocoder.name = None
        session = MapSession(store, geocoder)
        await session.tap(33.88, -117.88)
        await _settle()

        report = await session.submit()

        assert session.nearest_location == "Unknown Location"
        assert report.location == "Unknown Location"
        await session.close()

    @pytest.mark.asyncio
    async def test_geocoder_exception_uses_placeholder(self, store):
        broken = AsyncMock()
        broken.reverse_geocode.side_effect = RuntimeError("service down")
        session = MapSession(store, broken)
        await session.tap(33.88, -117.88)
        await _settle()

        assert session.state is MapState.NAME_RESOLVED
        assert session.nearest_location == "Unknown Location"

    @pytest.mark.asyncio
    async def test_submit_waits_for_pending_lookup(self, store, geocoder):
        geocoder.hold = True
        session = MapSession(store, geocoder, lookup_timeout=1.0)
        await session.tap(33.88, -117.88)
        await _settle()

        submit = asyncio.create_task(session.submit())
        await _settle()
        geocoder.gates[0].set()
        report = await submit

        assert report.location == "CSUF Lot A"
        await session.close()

    @pytest.mark.asyncio
    async def test_submit_does_not_wait_forever(self, store, geocoder):
        """A lookup that never returns still lets the alert through."""
        geocoder.hold = True
        session = MapSession(store, geocoder, lookup_timeout=0.05)
        await session.tap(33.88, -117.88)

        report = await session.submit()

        assert report is not None
        assert report.location == "Unknown Location"
        await session.close()

    @pytest.mark.asyncio
    async def test_stale_lookup_is_discarded(self, store, geocoder):
        """Only the latest tap's lookup result is applied."""
        geocoder.hold = True
        session = MapSession(store, geocoder)

        await session.tap(33.88, -117.88)
        await session.tap(33.89, -117.89)
        await _settle()
        assert len(geocoder.gates) == 2

        # Latest lookup completes first
        geocoder.name = "Lot B"
        geocoder.gates[1].set()
        await _settle()
        assert session.nearest_location == "Lot B"

        # The superseded one arrives late and is ignored
        geocoder.name = "Lot A"
        geocoder.gates[0].set()
        await _settle()
        assert session.nearest_location == "Lot B"
        assert session.pin == Coordinates(latitude=33.89, longitude=-117.89)

    @pytest.mark.asyncio
    async def test_store_failure_keeps_pin(self, geocoder):
        failing_store = AsyncMock()
        failing_store.create.return_value = None
        session = MapSession(failing_store, geocoder)
        await session.tap(33.88, -117.88)
        await _settle()

        assert await session.submit() is None
        assert session.state is MapState.NAME_RESOLVED
        assert session.snapshot().alert_sent is False
        assert session.can_submit is True


class TestConfirmation:
    """Tests for the transient alert-sent state."""

    @pytest.mark.asyncio
    async def test_confirmation_reverts_to_idle(self, store, geocoder):
        session = MapSession(store, geocoder, confirmation_seconds=0.05)
        await session.tap(33.88, -117.88)
        await _settle()
        await session.submit()

        await asyncio.sleep(0.1)

        assert session.state is MapState.IDLE
        assert session.pin is None
        assert session.can_submit is False

    @pytest.mark.asyncio
    async def test_second_submit_during_confirmation_is_noop(self, store, geocoder):
        session = MapSession(store, geocoder, confirmation_seconds=10)
        await session.tap(33.88, -117.88)
        await _settle()
        await session.submit()

        assert await session.submit() is None
        assert await store.count() == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_tap_during_confirmation_cancels_it(self, store, geocoder):
        session = MapSession(store, geocoder, confirmation_seconds=0.05)
        await session.tap(33.88, -117.88)
        await _settle()
        await session.submit()

        await session.tap(33.90, -117.90)
        await asyncio.sleep(0.1)

        assert session.pin == Coordinates(latitude=33.90, longitude=-117.90)
        assert session.state is MapState.NAME_RESOLVED

    @pytest.mark.asyncio
    async def test_tap_while_saving_keeps_new_pin(self, store, geocoder):
        """A pin placed while the alert is being written is not marked as sent."""
        slow_store = _GatedStore(store)
        session = MapSession(slow_store, geocoder, confirmation_seconds=0.05)
        await session.tap(33.88, -117.88)
        await _settle()

        submit = asyncio.create_task(session.submit())
        await _settle()
        geocoder.name = "Lot B"
        await session.tap(40.0, -100.0)
        await _settle()
        slow_store.gate.set()
        report = await submit

        assert report.latitude == 33.88
        assert report.location == "CSUF Lot A"
        assert session.state is MapState.NAME_RESOLVED
        assert session.pin == Coordinates(latitude=40.0, longitude=-100.0)
        assert session.nearest_location == "Lot B"

        await asyncio.sleep(0.1)
        assert session.state is MapState.NAME_RESOLVED
        assert session.pin == Coordinates(latitude=40.0, longitude=-100.0)
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_late_lookup_after_timeout_is_ignored(self, store, geocoder):
        """A lookup finishing after submit gave up does not rename anything."""
        geocoder.hold = True
        session = MapSession(
            store, geocoder, confirmation_seconds=0.05, lookup_timeout=0.01
        )
        await session.tap(33.88, -117.88)
        await _settle()

        report = await session.submit()
        assert report.location == "Unknown Location"
        assert session.nearest_location == "Unknown Location"

        await asyncio.sleep(0.1)
        geocoder.gates[0].set()
        await _settle()

        snapshot = session.snapshot()
        assert snapshot.state is MapState.IDLE
        assert snapshot.pin is None
        assert snapshot.nearest_location is None

    @pytest.mark.asyncio
    async def test_close_cancels_confirmation(self, store, geocoder):
        on_change = AsyncMock()
        session = MapSession(store, geocoder, confirmation_seconds=0.05, on_change=on_change)
        await session.tap(33.88, -117.88)
        await _settle()
        await session.submit()
        published = on_change.await_count

        await session.close()
        await asyncio.sleep(0.1)

        assert session.state is MapState.SUBMITTED
        assert on_change.await_count == published


class TestLocationTracking:
    """Tests for device location handling."""

    @pytest.mark.asyncio
    async def test_location_ignored_until_authorized(self, store, geocoder):
        session = MapSession(store, geocoder)
        start = session.region

        await session.update_location(34.0, -118.0)

        assert session.region == start
        assert session.tracking_location is False

    @pytest.mark.asyncio
    async def test_authorized_location_recenters(self, store, geocoder):
        session = MapSession(store, geocoder)
        await session.set_authorization(LocationAuthorization.AUTHORIZED_WHEN_IN_USE)

        await session.update_location(34.0, -118.0)

        assert session.tracking_location is True
        assert session.region.center == Coordinates(latitude=34.0, longitude=-118.0)
        assert session.pin is None

    @pytest.mark.asyncio
    async def test_location_does_not_touch_pin(self, store, geocoder):
        session = MapSession(store, geocoder)
        await session.set_authorization(LocationAuthorization.AUTHORIZED_ALWAYS)
        await session.tap(33.88, -117.88)

        await session.update_location(34.0, -118.0)

        assert session.pin == Coordinates(latitude=33.88, longitude=-117.88)

    @pytest.mark.asyncio
    async def test_denied_stops_tracking(self, store, geocoder, caplog):
        session = MapSession(store, geocoder)
        await session.set_authorization(LocationAuthorization.AUTHORIZED_WHEN_IN_USE)

        await session.set_authorization(LocationAuthorization.DENIED)

        assert session.tracking_location is False
        assert "denied or restricted" in caplog.text

    @pytest.mark.asyncio
    async def test_not_determined_changes_nothing(self, store, geocoder):
        on_change = AsyncMock()
        session = MapSession(store, geocoder, on_change=on_change)

        await session.set_authorization(LocationAuthorization.NOT_DETERMINED)

        assert session.tracking_location is False
        on_change.assert_not_called()


class TestPublishing:
    """Tests for snapshot pushes."""

    @pytest.mark.asyncio
    async def test_every_transition_published(self, store, geocoder):
        on_change = AsyncMock()
        session = MapSession(store, geocoder, on_change=on_change)

        await session.tap(33.88, -117.88)
        await _settle()
        await session.submit()

        states = [call.args[0].state for call in on_change.await_args_list]
        assert states == [MapState.PIN_PLACED, MapState.NAME_RESOLVED, MapState.SUBMITTED]
        await session.close()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_break_session(self, store, geocoder):
        on_change = AsyncMock(side_effect=RuntimeError("socket closed"))
        session = MapSession(store, geocoder, on_change=on_change)

        await session.tap(33.88, -117.88)
        await _settle()

        assert session.state is MapState.NAME_RESOLVED
