"""Tests for the inventory REST client."""

import pytest

from netsync.services.errors import InventoryError
from netsync.services.inventory_client import PORT_COLUMNS, InventoryClient

BASE = "http://librenms.test/api/v0"


def _client(transport) -> InventoryClient:
    return InventoryClient(base_url=BASE, token="secret", transport=transport)


async def test_get_devices_sends_token(inventory_transport) -> None:
    transport = inventory_transport({
        "/api/v0/devices": (200, {"status": "ok", "devices": [
            {"device_id": 1, "hostname": "r1.example.net", "sysName": "r1", "ip": "10.0.0.1",
             "community": "public", "os": "routeros", "status": 1, "location": "POP-A"},
        ]}),
    })

    devices = await _client(transport).get_devices()

    assert devices[0].display_name == "r1"
    assert devices[0].is_up
    assert transport.calls[0].headers["X-Auth-Token"] == "secret"


async def test_non_2xx_raises_inventory_error(inventory_transport) -> None:
    transport = inventory_transport({"/api/v0/devices": (500, {"message": "boom"})})

    with pytest.raises(InventoryError) as exc_info:
        await _client(transport).get_devices()

    assert exc_info.value.status_code == 500


async def test_get_ports_requests_columns(inventory_transport) -> None:
    transport = inventory_transport({
        "/api/v0/devices/7/ports": (200, {"ports": [
            {"port_id": 70, "ifIndex": 1, "ifName": "ether1", "ifOperStatus": "up"},
            {"port_id": 71, "ifName": "ghost"},
        ]}),
    })

    ports = await _client(transport).get_ports(7)

    assert [p.ifName for p in ports] == ["ether1"]
    assert transport.calls[0].url.params["columns"] == PORT_COLUMNS


async def test_get_sensors_classifies_optical_readings(inventory_transport) -> None:
    transport = inventory_transport({
        "/api/v0/resources/sensors": (200, {"sensors": [
            {"device_id": 1, "sensor_class": "dbm", "entPhysicalIndex_measured": "ports",
             "sensor_index": "tx-sfp-sfpplus1", "sensor_descr": "sfp-sfpplus1 Tx", "sensor_current": -2.1},
            {"device_id": 1, "sensor_class": "temperature", "sensor_index": "1",
             "sensor_descr": "CPU", "sensor_current": 45},
        ]}),
    })

    sensors = await _client(transport).get_sensors()

    assert sensors[0].is_optical and sensors[0].is_tx and not sensors[0].is_rx
    assert sensors[0].port_name == "sfp-sfpplus1"
    assert not sensors[1].is_optical


async def test_get_fdb_keeps_entries_without_vlan(inventory_transport) -> None:
    transport = inventory_transport({
        "/api/v0/resources/fdb": (200, {"status": "ok", "ports_fdb": [
            {"ports_fdb_id": 5, "port_id": 70, "device_id": 7, "mac_address": "4c5e0c010203",
             "vlan_id": 10, "created_at": "2024-05-01T10:00:00Z"},
            {"ports_fdb_id": 6, "port_id": 71, "device_id": 7, "mac_address": "aabbccddeeff", "vlan_id": None},
        ]}),
    })

    entries = await _client(transport).get_fdb()

    assert [(e.ports_fdb_id, e.vlan_id) for e in entries] == [(5, 10), (6, None)]
    assert entries[0].created_at.year == 2024
