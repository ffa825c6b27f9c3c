"""Tests for LLDP neighbor discovery."""

import pytest

from netsync.services.errors import SnmpTransportError
from netsync.services.lldp_discovery import (
    OID_LLDP_REM_TABLE,
    chassis_id_subtype_name,
    discover_lldp_neighbors,
    port_id_subtype_name,
)

REM_ENTRY = f"{OID_LLDP_REM_TABLE}.1"


def _row(time_mark, local_port, rem_index, columns):
    return {f"{REM_ENTRY}.{col}.{time_mark}.{local_port}.{rem_index}": value for col, value in columns.items()}


def test_subtype_names() -> None:
    assert chassis_id_subtype_name(4) == "macAddress"
    assert port_id_subtype_name(5) == "interfaceName"
    assert port_id_subtype_name(42) == "unknown (42)"


async def test_discover_lldp_neighbors_parses_rows(fake_agent) -> None:
    values = {}
    values.update(_row(0, 12, 1, {
        4: 4, 5: b"\x4c\x5e\x0c\x01\x02\x03", 6: 5, 7: b"ether1",
        8: b"uplink", 9: b"core-sw", 10: b"RouterOS CCR2004",
    }))
    values.update(_row(0, 3, 2, {
        4: 7, 5: b"edge-01", 6: 3, 7: b"\x00\x11\x22\x33\x44\x55", 9: b"edge-sw\x00",
    }))
    agent = fake_agent(values)

    neighbors = await discover_lldp_neighbors("10.0.0.1", "public", session_factory=agent)

    assert [n.composite_index for n in neighbors] == ["0.3.2", "0.12.1"]
    edge, core = neighbors
    assert core.local_port_if_index == 12
    assert core.remote_chassis_id == "4c:5e:0c:01:02:03"
    assert core.remote_chassis_id_subtype_name == "macAddress"
    assert core.remote_port_id == "ether1"
    assert core.remote_port_id_subtype_name == "interfaceName"
    assert core.remote_system_name == "core-sw"
    assert core.remote_system_description == "RouterOS CCR2004"
    assert edge.remote_chassis_id == "edge-01"
    assert edge.remote_port_id == "00:11:22:33:44:55"
    assert edge.remote_system_name == "edge-sw"
    assert edge.remote_port_description is None
    assert agent.sessions[0].close_calls == 1


async def test_discover_lldp_neighbors_empty_table(fake_agent) -> None:
    assert await discover_lldp_neighbors("10.0.0.1", "public", session_factory=fake_agent({})) == []


async def test_discover_lldp_neighbors_walk_failure_propagates(fake_agent) -> None:
    agent = fake_agent({}, fail_walks={REM_ENTRY})

    with pytest.raises(SnmpTransportError):
        await discover_lldp_neighbors("10.0.0.1", "public", session_factory=agent)
