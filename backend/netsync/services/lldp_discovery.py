"""
LLDP neighbor discovery.
Walks LLDP-MIB lldpRemTable. Rows are indexed <timeMark>.<localPortNum>.<remIndex>;
localPortNum is taken as the local ifIndex.
"""
import logging
from typing import Dict, List, Optional

from netsync.config import settings
from netsync.schemas.lldp import DiscoveredNeighbor
from netsync.services.snmp_session import SnmpSession, VarBind

logger = logging.getLogger(__name__)

OID_LLDP_REM_TABLE = "1.0.8802.1.1.2.1.4.1"

COL_CHASSIS_ID_SUBTYPE = 4
COL_CHASSIS_ID = 5
COL_PORT_ID_SUBTYPE = 6
COL_PORT_ID = 7
COL_PORT_DESC = 8
COL_SYS_NAME = 9
COL_SYS_DESC = 10

CHASSIS_SUBTYPE_MAC = 4
PORT_SUBTYPE_MAC = 3

CHASSIS_ID_SUBTYPES = {
    1: "chassisComponent",
    2: "interfaceAlias",
    3: "portComponent",
    4: "macAddress",
    5: "networkAddress",
    6: "interfaceName",
    7: "local",
}

PORT_ID_SUBTYPES = {
    1: "interfaceAlias",
    2: "portComponent",
    3: "macAddress",
    4: "networkAddress",
    5: "interfaceName",
    6: "agentCircuitId",
    7: "local",
}


def chassis_id_subtype_name(code: int) -> str:
    return CHASSIS_ID_SUBTYPES.get(code, f"unknown ({code})")


def port_id_subtype_name(code: int) -> str:
    return PORT_ID_SUBTYPES.get(code, f"unknown ({code})")


def _int(vb: Optional[VarBind]) -> Optional[int]:
    if vb is None or vb.is_error or vb.value is None:
        return None
    try:
        return int(vb.value)
    except (TypeError, ValueError):
        return None


def _text(vb: Optional[VarBind]) -> Optional[str]:
    if vb is None or vb.is_error or vb.value is None:
        return None
    if isinstance(vb.value, bytes):
        return vb.value.decode("utf-8", errors="replace").strip("\x00").strip()
    return str(vb.value)


def _hex(vb: Optional[VarBind]) -> Optional[str]:
    if vb is None or vb.is_error or not vb.value:
        return None
    if isinstance(vb.value, bytes):
        return ":".join(f"{b:02x}" for b in vb.value)
    return str(vb.value)


def parse_neighbor(index: str, columns: Dict[int, VarBind]) -> DiscoveredNeighbor:
    parts = index.split(".")
    local_port = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else None

    chassis_subtype = _int(columns.get(COL_CHASSIS_ID_SUBTYPE))
    port_subtype = _int(columns.get(COL_PORT_ID_SUBTYPE))
    chassis_vb = columns.get(COL_CHASSIS_ID)
    port_vb = columns.get(COL_PORT_ID)

    return DiscoveredNeighbor(
        composite_index=index,
        local_port_if_index=local_port,
        remote_chassis_id_subtype_code=chassis_subtype,
        remote_chassis_id_subtype_name=(
            chassis_id_subtype_name(chassis_subtype) if chassis_subtype is not None else None
        ),
        remote_chassis_id=_hex(chassis_vb) if chassis_subtype == CHASSIS_SUBTYPE_MAC else _text(chassis_vb),
        remote_port_id_subtype_code=port_subtype,
        remote_port_id_subtype_name=port_id_subtype_name(port_subtype) if port_subtype is not None else None,
        remote_port_id=_hex(port_vb) if port_subtype == PORT_SUBTYPE_MAC else _text(port_vb),
        remote_port_description=_text(columns.get(COL_PORT_DESC)),
        remote_system_name=_text(columns.get(COL_SYS_NAME)),
        remote_system_description=_text(columns.get(COL_SYS_DESC)),
    )


def _index_key(index: str):
    return [int(part) for part in index.split(".") if part.isdigit()]


async def discover_lldp_neighbors(
    ip: str,
    community: str,
    *,
    session_factory=SnmpSession,
) -> List[DiscoveredNeighbor]:
    """
    Read the LLDP neighbor table of one device.
    Transport failures raise SnmpError; a device without LLDP data returns [].
    """
    async with session_factory(
        ip, community, timeout=settings.SNMP_TIMEOUT, retries=settings.SNMP_RETRIES,
    ) as session:
        rows = await session.table(OID_LLDP_REM_TABLE)

    ordered = sorted(rows.items(), key=lambda row: _index_key(row[0]))
    neighbors = [parse_neighbor(index, columns) for index, columns in ordered]
    logger.info(f"[LLDP] {ip}: {len(neighbors)} neighbors")
    return neighbors
