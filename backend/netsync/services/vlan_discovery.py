"""
VLAN discovery.
Reads VLAN membership (tagged / untagged ports per VLAN ID) from a device.
RouterOS is read through its PVID and Q-BRIDGE FDB tables, Huawei VRP through
HUAWEI-L2IF-MIB, everything else through the static Q-BRIDGE VLAN table.
When the FDB is empty RouterOS falls back to its bridge VLAN rows; Huawei
falls back to the static table. VLAN 1 and 99 are never reported.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from netsync.config import settings
from netsync.schemas.vlan import DiscoveredVlan, KnownInterface
from netsync.services.errors import SnmpError
from netsync.services.interface_enum import enumerate_interfaces
from netsync.services.port_resolver import resolve_interface_name
from netsync.services.snmp_session import SnmpSession, VarBind, oid_suffix, with_deadline
from netsync.services.vendor import (
    VLAN_STRATEGY_BRIDGE, VLAN_STRATEGY_HUAWEI, VLAN_STRATEGY_MIKROTIK, get_profile,
)

logger = logging.getLogger(__name__)

EXCLUDED_VLANS = frozenset({1, 99})
MAX_VLAN_ID = 4094

# BRIDGE-MIB
OID_DOT1D_BASE_PORT_IFINDEX = "1.3.6.1.2.1.17.1.4.1.2"

# Q-BRIDGE-MIB
OID_DOT1Q_TP_FDB_ENTRY      = "1.3.6.1.2.1.17.7.1.2.2.1"
OID_DOT1Q_VLAN_STATIC_TABLE = "1.3.6.1.2.1.17.7.1.4.3"
OID_DOT1Q_PVID              = "1.3.6.1.2.1.17.7.1.4.5.1.1"
OID_DOT1Q_PORT_VLAN_TABLE   = "1.3.6.1.2.1.17.7.1.4.5.1"

STATIC_COL_NAME = 1
STATIC_COL_EGRESS = 2
STATIC_COL_UNTAGGED = 4
STATIC_COL_ROW_STATUS = 5
ROW_STATUS_ACTIVE = 1

# RouterOS bridge VLAN rows: <column>.<row index>, port = row index - 1
PORT_ROW_COL_VLAN = 1
PORT_ROW_COL_TYPE = 2
PORT_ROW_COL_STATUS = 3
PORT_TYPE_UNTAGGED = 1
PORT_TYPE_TAGGED = 2

# HUAWEI-L2IF-MIB
OID_HW_L2IF_PORT_TABLE   = "1.3.6.1.4.1.2011.5.25.42.1.1.1.3"
OID_HW_L2IF_TRUNK_TABLE  = "1.3.6.1.4.1.2011.5.25.42.1.1.1.4"
OID_HW_L2IF_HYBRID_TABLE = "1.3.6.1.4.1.2011.5.25.42.1.1.1.5"

HW_COL_IFINDEX = 2
HW_COL_PORT_TYPE = 3
HW_COL_PVID = 4
HW_TRUNK_COL_ALLOW_LOW = 2
HW_TRUNK_COL_ALLOW_HIGH = 3
HW_HYBRID_COL_TAGGED_LOW = 2
HW_HYBRID_COL_TAGGED_HIGH = 3
HW_HYBRID_COL_UNTAGGED_LOW = 4
HW_HYBRID_COL_UNTAGGED_HIGH = 5

HW_PORT_TRUNK = 2
HW_PORT_ACCESS = 3
HW_PORT_HYBRID = 4

HIGH_VLAN_LIST_OFFSET = 2048

PHYSICAL_NAME_HINTS = ("sfp", "ether", "bridge")

_HEX_ONLY = re.compile(r"[^0-9a-f]")


def is_excluded_vlan(vlan_id: int) -> bool:
    return vlan_id in EXCLUDED_VLANS or vlan_id < 1 or vlan_id > MAX_VLAN_ID


def normalize_mac(value) -> Optional[str]:
    """aa:bb:cc:dd:ee:ff from raw octets or any common text notation."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)) and len(value) == 6:
        return ":".join(f"{b:02x}" for b in value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("ascii", errors="ignore")
    digits = _HEX_ONLY.sub("", str(value).lower().replace("0x", ""))
    if len(digits) != 12:
        return None
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def decode_port_list(value, offset: int = 0) -> List[int]:
    """PortList / VLAN list bitmap: most significant bit of octet 0 is member 1 (+offset)."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.encode("latin-1")
    members = []
    for octet_index, octet in enumerate(value):
        for bit in range(8):
            if octet & (0x80 >> bit):
                members.append(offset + octet_index * 8 + bit + 1)
    return members


def decode_vlan_list(value, offset: int = 0) -> List[int]:
    """Huawei VLAN lists start at VLAN 0 rather than 1."""
    return [member - 1 for member in decode_port_list(value, offset)]


def _as_int(vb: Optional[VarBind]) -> Optional[int]:
    if vb is None or vb.is_error or vb.value is None:
        return None
    try:
        return int(vb.value)
    except (TypeError, ValueError):
        return None


def _as_text(vb: Optional[VarBind]) -> str:
    if vb is None or vb.is_error or vb.value is None:
        return ""
    if isinstance(vb.value, bytes):
        return vb.value.decode("utf-8", errors="replace").strip("\x00").strip()
    return str(vb.value).strip()


def _as_bytes(vb: Optional[VarBind]) -> bytes:
    if vb is None or vb.is_error or vb.value is None:
        return b""
    if isinstance(vb.value, bytes):
        return vb.value
    return str(vb.value).encode("latin-1")


class VlanCollector:
    """Accumulates membership; untagged wins over tagged for the same port."""

    def __init__(self):
        self._tagged: Dict[int, List[str]] = {}
        self._untagged: Dict[int, List[str]] = {}
        self._names: Dict[int, str] = {}

    def __len__(self) -> int:
        return len(self.vlan_ids)

    @property
    def vlan_ids(self) -> Set[int]:
        return set(self._tagged) | set(self._untagged)

    def add(self, vlan_id: int, port: str, tagged: bool) -> bool:
        if is_excluded_vlan(vlan_id):
            return False
        bucket = self._tagged if tagged else self._untagged
        ports = bucket.setdefault(vlan_id, [])
        if port not in ports:
            ports.append(port)
        return True

    def name(self, vlan_id: int, name: str) -> None:
        if name and not is_excluded_vlan(vlan_id):
            self._names[vlan_id] = name

    def merge(self, other: "VlanCollector") -> None:
        for vlan_id, ports in other._untagged.items():
            for port in ports:
                self.add(vlan_id, port, tagged=False)
        for vlan_id, ports in other._tagged.items():
            for port in ports:
                self.add(vlan_id, port, tagged=True)
        for vlan_id, name in other._names.items():
            self._names.setdefault(vlan_id, name)

    def result(self) -> List[DiscoveredVlan]:
        vlans = []
        for vlan_id in sorted(self.vlan_ids):
            untagged = list(self._untagged.get(vlan_id, []))
            tagged = [p for p in self._tagged.get(vlan_id, []) if p not in untagged]
            vlans.append(DiscoveredVlan(
                vlan_id=vlan_id,
                name=self._names.get(vlan_id) or f"VLAN-{vlan_id}",
                tagged_ports=tagged,
                untagged_ports=untagged,
            ))
        return vlans


async def _step(label: str, session: SnmpSession, coro, default):
    """Run one discovery step; a failing step finds nothing."""
    try:
        return await coro
    except SnmpError as e:
        logger.warning(f"[VLAN] {label} failed on {session.ip}: {e}")
        return default


async def interface_map(session: SnmpSession, known: Iterable[KnownInterface]) -> Dict[int, str]:
    interfaces = await enumerate_interfaces(session)
    for iface in known:
        if iface.name:
            interfaces[iface.if_index] = iface.name
    return interfaces


# --- RouterOS ----------------------------------------------------------------

async def read_pvid_slots(session: SnmpSession, slots: int) -> Dict[int, int]:
    """GET dot1qPvid.<port> for port 1..slots; drops 'no override' (<= 1) and excluded VLANs."""
    oids = [f"{OID_DOT1Q_PVID}.{port}" for port in range(1, slots + 1)]
    pvids: Dict[int, int] = {}
    for vb in await session.get(oids):
        vlan_id = _as_int(vb)
        suffix = oid_suffix(vb.oid, OID_DOT1Q_PVID)
        if vlan_id is None or not suffix or not suffix.isdigit():
            continue
        if vlan_id <= 1 or is_excluded_vlan(vlan_id):
            continue
        pvids[int(suffix)] = vlan_id
    return pvids


async def read_fdb_cells(session: SnmpSession) -> List[Tuple[str, int]]:
    """(MAC, VLAN) pairs learned in dot1qTpFdbTable, in walk order."""
    cells: List[Tuple[str, int]] = []
    seen = set()
    for vb in await session.subtree(OID_DOT1Q_TP_FDB_ENTRY):
        suffix = oid_suffix(vb.oid, OID_DOT1Q_TP_FDB_ENTRY)
        parts = suffix.split(".") if suffix else []
        # <column>.<vlan>.<6 mac octets>
        if len(parts) != 8 or not all(p.isdigit() for p in parts):
            continue
        vlan_id = int(parts[1])
        mac = ":".join(f"{int(octet):02x}" for octet in parts[2:])
        if (mac, vlan_id) not in seen:
            seen.add((mac, vlan_id))
            cells.append((mac, vlan_id))
    return cells


def physical_interfaces(interfaces: Dict[int, str]) -> List[str]:
    return [
        name for _, name in sorted(interfaces.items())
        if any(hint in name for hint in PHYSICAL_NAME_HINTS)
    ]


async def discover_mikrotik(session: SnmpSession, known: List[KnownInterface]) -> List[DiscoveredVlan]:
    interfaces = await interface_map(session, known)
    collector = VlanCollector()

    pvids = await _step("PVID read", session, read_pvid_slots(session, settings.MIKROTIK_PVID_PORT_SLOTS), {})
    for port, vlan_id in sorted(pvids.items()):
        collector.add(vlan_id, resolve_interface_name(port, interfaces), tagged=False)
    logger.info(f"[VLAN] {session.ip}: {len(pvids)} untagged PVID mappings")

    mac_to_name = {}
    for iface in known:
        mac = normalize_mac(iface.phys_address)
        if mac:
            mac_to_name[mac] = iface.name
    physical = physical_interfaces(interfaces)

    fdb_vlans: Set[int] = set()
    for mac, vlan_id in await _step("FDB walk", session, read_fdb_cells(session), []):
        if is_excluded_vlan(vlan_id):
            continue
        fdb_vlans.add(vlan_id)
        owner = mac_to_name.get(mac)
        if owner:
            collector.add(vlan_id, owner, tagged=True)
            continue
        # No exact owner: every physical-looking interface is reported as a member.
        for name in physical:
            collector.add(vlan_id, name, tagged=True)

    if not fdb_vlans:
        logger.info(f"[VLAN] {session.ip}: FDB table empty, reading bridge VLAN rows")
        rows = await _step(
            "bridge VLAN rows", session, read_port_vlan_rows(session, interfaces), VlanCollector(),
        )
        collector.merge(rows)

    return collector.result()


async def read_port_vlan_rows(session: SnmpSession, interfaces: Dict[int, str]) -> VlanCollector:
    """Bridge VLAN rows (vlan id, port type, status); only active rows, type 1 untagged, 2 tagged."""
    collector = VlanCollector()
    rows = await session.table(OID_DOT1Q_PORT_VLAN_TABLE)
    for index, columns in rows.items():
        if not index.isdigit():
            continue
        vlan_id = _as_int(columns.get(PORT_ROW_COL_VLAN)) or 0
        if vlan_id <= 0 or _as_int(columns.get(PORT_ROW_COL_STATUS)) != ROW_STATUS_ACTIVE:
            continue
        port_type = _as_int(columns.get(PORT_ROW_COL_TYPE))
        if port_type not in (PORT_TYPE_UNTAGGED, PORT_TYPE_TAGGED):
            continue
        name = resolve_interface_name(int(index) - 1, interfaces)
        collector.add(vlan_id, name, tagged=port_type == PORT_TYPE_TAGGED)
    return collector


# --- Q-BRIDGE static table -----------------------------------------------------

async def read_static_table(
    session: SnmpSession,
    interfaces: Dict[int, str],
    base_ports: Dict[int, int],
) -> VlanCollector:
    """dot1qVlanStaticTable: untagged bitmap -> untagged, egress minus untagged -> tagged."""
    collector = VlanCollector()
    rows = await session.table(OID_DOT1Q_VLAN_STATIC_TABLE)
    for index, columns in rows.items():
        if not index.isdigit():
            continue
        vlan_id = int(index)
        if is_excluded_vlan(vlan_id):
            continue
        if _as_int(columns.get(STATIC_COL_ROW_STATUS)) != ROW_STATUS_ACTIVE:
            continue
        untagged = set(decode_port_list(_as_bytes(columns.get(STATIC_COL_UNTAGGED))))
        egress = set(decode_port_list(_as_bytes(columns.get(STATIC_COL_EGRESS))))
        for port in sorted(untagged):
            collector.add(vlan_id, _port_name(port, interfaces, base_ports), tagged=False)
        for port in sorted(egress - untagged):
            collector.add(vlan_id, _port_name(port, interfaces, base_ports), tagged=True)
        collector.name(vlan_id, _as_text(columns.get(STATIC_COL_NAME)))
    return collector


def _port_name(port: int, interfaces: Dict[int, str], base_ports: Dict[int, int]) -> str:
    if_index = base_ports.get(port)
    if if_index is not None and interfaces.get(if_index):
        return interfaces[if_index]
    return resolve_interface_name(port, interfaces)


async def read_base_ports(session: SnmpSession) -> Dict[int, int]:
    """dot1dBasePortIfIndex: bridge port -> ifIndex."""
    mapping: Dict[int, int] = {}
    for vb in await session.subtree(OID_DOT1D_BASE_PORT_IFINDEX):
        suffix = oid_suffix(vb.oid, OID_DOT1D_BASE_PORT_IFINDEX)
        if_index = _as_int(vb)
        if suffix and suffix.isdigit() and if_index:
            mapping[int(suffix)] = if_index
    return mapping


async def read_pvid_walk(session: SnmpSession) -> Dict[int, int]:
    pvids: Dict[int, int] = {}
    for vb in await session.subtree(OID_DOT1Q_PVID):
        suffix = oid_suffix(vb.oid, OID_DOT1Q_PVID)
        vlan_id = _as_int(vb)
        if suffix and suffix.isdigit() and vlan_id and not is_excluded_vlan(vlan_id):
            pvids[int(suffix)] = vlan_id
    return pvids


async def discover_bridge(session: SnmpSession, known: List[KnownInterface]) -> List[DiscoveredVlan]:
    interfaces = await interface_map(session, known)
    base_ports = await _step("dot1dBasePortIfIndex walk", session, read_base_ports(session), {})

    collector = await _step(
        "static VLAN table", session, read_static_table(session, interfaces, base_ports), VlanCollector(),
    )
    pvids = await _step("PVID walk", session, read_pvid_walk(session), {})
    for port, vlan_id in sorted(pvids.items()):
        collector.add(vlan_id, _port_name(port, interfaces, base_ports), tagged=False)
    return collector.result()


# --- Huawei VRP ------------------------------------------------------------------

def _vlan_lists(columns, low_col: int, high_col: int) -> List[int]:
    return (
        decode_vlan_list(_as_bytes(columns.get(low_col)))
        + decode_vlan_list(_as_bytes(columns.get(high_col)), HIGH_VLAN_LIST_OFFSET)
    )


async def read_huawei_ports(session: SnmpSession, interfaces: Dict[int, str]) -> VlanCollector:
    collector = VlanCollector()
    ports = await session.table(OID_HW_L2IF_PORT_TABLE)
    if not ports:
        return collector
    trunks = await _step("hwL2IfTrunkPortTable walk", session, session.table(OID_HW_L2IF_TRUNK_TABLE), {})
    hybrids = await _step("hwL2IfHybridPortTable walk", session, session.table(OID_HW_L2IF_HYBRID_TABLE), {})

    for index, columns in ports.items():
        if not index.isdigit():
            continue
        port = int(index)
        if_index = _as_int(columns.get(HW_COL_IFINDEX))
        if if_index and interfaces.get(if_index):
            name = interfaces[if_index]
        else:
            name = resolve_interface_name(port, interfaces)
        port_type = _as_int(columns.get(HW_COL_PORT_TYPE))
        pvid = _as_int(columns.get(HW_COL_PVID)) or 0

        if port_type == HW_PORT_ACCESS:
            collector.add(pvid, name, tagged=False)
        elif port_type == HW_PORT_TRUNK:
            for vlan_id in _vlan_lists(trunks.get(index, {}), HW_TRUNK_COL_ALLOW_LOW, HW_TRUNK_COL_ALLOW_HIGH):
                collector.add(vlan_id, name, tagged=vlan_id != pvid)
            collector.add(pvid, name, tagged=False)
        elif port_type == HW_PORT_HYBRID:
            hybrid = hybrids.get(index, {})
            for vlan_id in _vlan_lists(hybrid, HW_HYBRID_COL_UNTAGGED_LOW, HW_HYBRID_COL_UNTAGGED_HIGH):
                collector.add(vlan_id, name, tagged=False)
            for vlan_id in _vlan_lists(hybrid, HW_HYBRID_COL_TAGGED_LOW, HW_HYBRID_COL_TAGGED_HIGH):
                collector.add(vlan_id, name, tagged=True)
            collector.add(pvid, name, tagged=False)
    return collector


async def discover_huawei(session: SnmpSession, known: List[KnownInterface]) -> List[DiscoveredVlan]:
    interfaces = await interface_map(session, known)
    collector = await _step("hwL2IfPortTable walk", session, read_huawei_ports(session, interfaces), VlanCollector())
    if len(collector):
        return collector.result()

    logger.info(f"[VLAN] {session.ip}: no HUAWEI-L2IF data, reading static VLAN table")
    base_ports = await _step("dot1dBasePortIfIndex walk", session, read_base_ports(session), {})
    static = await _step(
        "static VLAN table", session, read_static_table(session, interfaces, base_ports), VlanCollector(),
    )
    return static.result()


STRATEGIES = {
    VLAN_STRATEGY_MIKROTIK: discover_mikrotik,
    VLAN_STRATEGY_HUAWEI: discover_huawei,
    VLAN_STRATEGY_BRIDGE: discover_bridge,
}


async def discover_vlans(
    ip: str,
    community: str,
    vendor: str,
    known_interfaces: Optional[Iterable[KnownInterface]] = None,
    *,
    session_factory=SnmpSession,
    deadline: Optional[float] = None,
) -> List[DiscoveredVlan]:
    """
    Discover VLAN membership for one device.
    The whole sequence runs on one session under a single deadline; on expiry
    the session is closed and an empty list is returned.
    """
    profile = get_profile(vendor)
    strategy = STRATEGIES.get(profile.vlan_strategy, discover_bridge)
    known = list(known_interfaces or [])
    deadline = settings.VLAN_DISCOVERY_DEADLINE if deadline is None else deadline

    logger.info(f"[VLAN] Discovering VLANs on {ip} (vendor: {profile.tag}, {len(known)} known interfaces)")
    session = session_factory(ip, community, timeout=settings.SNMP_TIMEOUT, retries=settings.VLAN_SNMP_RETRIES)
    try:
        vlans = await with_deadline(strategy(session, known), deadline, default=[], label=f"VLAN discovery {ip}")
    finally:
        session.close()

    logger.info(f"[VLAN] {ip}: {len(vlans)} VLANs discovered")
    return vlans
