from __future__ import annotations

import asyncio

import pytest

from pybustrack.config import BusTrackConfig
from pybustrack.exceptions import BusTrackTransportError
from pybustrack.models.fleet import FleetEntry
from pybustrack.models.operator import OperatorSession
from pybustrack.models.vehicle import Vehicle
from pybustrack.storage import InMemoryStorage
from pybustrack.viewer import FleetPoller

_CONFIG = BusTrackConfig(fleet_interval=3600)


class _FlakyStorage(InMemoryStorage):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    async def fetch_on_duty_fleet(self) -> list[FleetEntry]:
        if self.fail:
            raise BusTrackTransportError("storage unreachable")
        return await super().fetch_on_duty_fleet()


def _storage() -> _FlakyStorage:
    storage = _FlakyStorage()
    storage.add_operator(OperatorSession(operator_id="D1", operator_name="Asha"))
    storage.add_operator(OperatorSession(operator_id="D2", operator_name="Ravi"))
    storage.add_vehicle(Vehicle(vehicle_id="BUS-1", name="Bus 1", active=True))
    storage.add_vehicle(Vehicle(vehicle_id="BUS-2", name="Bus 2", active=True))
    return storage


async def _tick(poller: FleetPoller) -> None:
    poller.start()
    await asyncio.sleep(0)
    await poller.drain()
    poller.stop()


@pytest.mark.asyncio
async def test_empty_fleet() -> None:
    poller = FleetPoller(_storage(), config=_CONFIG)
    await _tick(poller)
    assert poller.entries == ()


@pytest.mark.asyncio
async def test_snapshot_uses_placeholders_for_missing_route() -> None:
    storage = _storage()
    await storage.validate_and_claim_vehicle("D1", "BUS-1")
    updates: list[tuple[FleetEntry, ...]] = []
    poller = FleetPoller(storage, config=_CONFIG, on_update=updates.append)

    await _tick(poller)

    assert len(poller.entries) == 1
    entry = poller.entries[0]
    assert entry.operator_name == "Asha"
    assert entry.route_name == "Unknown Route"
    assert entry.source == "Unknown"
    assert entry.destination == "Unknown"
    assert updates == [poller.entries]
    assert poller.find("BUS-1") is entry
    assert poller.find("BUS-2") is None


@pytest.mark.asyncio
async def test_refresh_replaces_snapshot_wholesale() -> None:
    storage = _storage()
    await storage.validate_and_claim_vehicle("D1", "BUS-1")
    await storage.validate_and_claim_vehicle("D2", "BUS-2")
    poller = FleetPoller(storage, config=_CONFIG)

    assert {entry.vehicle_id for entry in await poller.refresh()} == {"BUS-1", "BUS-2"}

    await storage.set_operator_duty("D1", False, None)
    assert [entry.vehicle_id for entry in await poller.refresh()] == ["BUS-2"]


@pytest.mark.asyncio
async def test_failed_tick_keeps_previous_snapshot() -> None:
    storage = _storage()
    await storage.validate_and_claim_vehicle("D1", "BUS-1")
    poller = FleetPoller(storage, config=_CONFIG)
    await poller.refresh()

    storage.fail = True
    await _tick(poller)

    assert [entry.vehicle_id for entry in poller.entries] == ["BUS-1"]


@pytest.mark.asyncio
async def test_explicit_refresh_propagates_errors() -> None:
    storage = _storage()
    storage.fail = True
    poller = FleetPoller(storage, config=_CONFIG)
    with pytest.raises(BusTrackTransportError):
        await poller.refresh()
