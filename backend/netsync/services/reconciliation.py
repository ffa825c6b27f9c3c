"""
Reconciliation engine.
Five passes, each re-runnable against unchanged state without producing
changes or duplicate rows:
  nodes       inventory devices + SNMP usage  -> nodes
  interfaces  inventory ports + optical dBm   -> interfaces
  vlans       SNMP VLAN discovery             -> vlan_memberships
  lldp        SNMP lldpRemTable               -> lldp_neighbors
  fdb         inventory forwarding database   -> fdb_entries
run_sync_cycle() runs them in that order, isolates their failures and
forwards node / interface transitions to the notifier.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from netsync.config import settings
from netsync.models.fdb import FdbEntry
from netsync.models.interface import Interface
from netsync.models.lldp import LldpNeighbor
from netsync.models.node import Node
from netsync.models.vlan import VlanMembership
from netsync.schemas.inventory import InventoryDevice, InventoryPort, InventorySensor
from netsync.schemas.sync import (
    FdbSyncResult, InterfaceSyncResult, LldpSyncResult, MonitoringStats, NodeSyncResult,
    StatusChange, SyncCycleResult, VlanMembershipChange, VlanSyncResult,
)
from netsync.schemas.vlan import KnownInterface
from netsync.services.errors import InventoryError, NetsyncError
from netsync.services.inventory_client import InventoryClient
from netsync.services.lldp_discovery import discover_lldp_neighbors
from netsync.services.notification import send_change_notification
from netsync.services.snmp_session import validate_timeout, with_deadline
from netsync.services.usage_poller import fetch_system_usage
from netsync.services.vendor import classify_vendor
from netsync.services.vlan_discovery import discover_vlans, is_excluded_vlan

logger = logging.getLogger(__name__)

MONITOR_SUCCESSFUL = "successful"
MONITOR_FAILED = "failed"
MONITOR_SKIPPED = "skipped"

EXCLUDED_PORT_NAMES = ("vlan.mgmt",)


def _updown(status) -> str:
    return "UP" if status else "DOWN"


# ── Node pass ──────────────────────────────────────────────────────────────────

async def _poll_device(device: InventoryDevice, vendor: str, deadline: float, usage_fetcher) -> Tuple[Optional[float], Optional[float], str]:
    name = device.display_name
    if not device.is_up:
        return None, None, MONITOR_SKIPPED

    logger.info(f"[MONITORING] Fetching system usage for {name} ({device.ip}) - vendor: {vendor}")
    try:
        usage = await with_deadline(
            usage_fetcher(device.management_ip, device.community, vendor),
            deadline,
            label=f"usage poll {device.management_ip}",
        )
    except NetsyncError as e:
        logger.warning(f"[MONITORING] Failed to fetch system usage for {name} ({device.ip}): {e}")
        return None, None, MONITOR_FAILED
    except Exception as e:
        logger.error(f"[MONITORING] Unexpected error polling {name} ({device.ip}): {e}")
        return None, None, MONITOR_FAILED

    if usage is None:
        logger.warning(f"[MONITORING] Usage poll timed out for {name} ({device.ip})")
        return None, None, MONITOR_FAILED

    cpu, ram = usage
    if cpu is None and ram is None:
        logger.warning(f"[MONITORING] No usage data retrieved for {name} ({device.ip})")
        return None, None, MONITOR_SKIPPED
    return cpu, ram, MONITOR_SUCCESSFUL


async def sync_nodes(
    db: AsyncSession,
    inventory: InventoryClient,
    *,
    usage_fetcher=fetch_system_usage,
    poll_deadline: Optional[float] = None,
) -> NodeSyncResult:
    requested = settings.USAGE_POLL_DEADLINE if poll_deadline is None else poll_deadline
    deadline = validate_timeout(requested, 1.0, 30.0)
    if deadline != requested:
        logger.info(f"[SYNC] Usage poll deadline adjusted from {requested}s to {deadline}s")

    prior_nodes = {n.ip_mgmt: n for n in (await db.execute(select(Node))).scalars().all()}
    prior_status = {ip: n.status for ip, n in prior_nodes.items()}

    devices = await inventory.get_devices()
    if not devices:
        return NodeSyncResult(message="Sync finished. No devices found in inventory.")

    try:
        locations = {loc.location: loc for loc in await inventory.get_locations()}
    except InventoryError as e:
        logger.warning(f"[SYNC] Locations unavailable, continuing without coordinates: {e}")
        locations = {}

    candidates = [d for d in devices if d.community and d.management_ip]
    semaphore = asyncio.Semaphore(max(1, settings.SYNC_CONCURRENCY))

    async def process(device: InventoryDevice):
        vendor = classify_vendor(device.os_string)
        async with semaphore:
            cpu, ram, outcome = await _poll_device(device, vendor, deadline, usage_fetcher)
        return device, vendor, cpu, ram, outcome

    results = await asyncio.gather(*[process(d) for d in candidates])

    stats = MonitoringStats(total_devices=len(candidates))
    changes: List[StatusChange] = []
    synced: Dict[str, Node] = {}

    for device, vendor, cpu, ram, outcome in results:
        ip = device.management_ip
        status = device.is_up
        if status:
            stats.up_devices += 1
        if outcome == MONITOR_SUCCESSFUL:
            stats.successful += 1
        elif outcome == MONITOR_FAILED:
            stats.failed += 1
        else:
            stats.skipped += 1

        location = locations.get(device.location) if device.location else None
        node = synced.get(ip) or prior_nodes.get(ip)
        if node is None:
            node = Node(ip_mgmt=ip)
            db.add(node)
        node.name = device.display_name
        node.inventory_device_id = device.device_id
        node.snmp_community = device.community
        node.status = status
        node.os = device.os_string
        node.vendor = vendor
        node.cpu_usage = cpu
        node.ram_usage = ram
        node.pop_location = device.location
        node.lat = str(location.lat) if location and location.lat is not None else None
        node.lng = str(location.lng) if location and location.lng is not None else None
        synced[ip] = node

        previous = prior_status.get(ip)
        if previous is not None and previous != status:
            changes.append(StatusChange(
                name=node.name,
                ip_mgmt=ip,
                previous_status=_updown(previous),
                current_status=_updown(status),
            ))

    await db.commit()

    logger.info(
        f"[MONITORING] Total devices: {stats.total_devices}, up: {stats.up_devices}, "
        f"successful: {stats.successful} ({stats.success_rate}%), failed: {stats.failed}, "
        f"skipped: {stats.skipped}"
    )
    return NodeSyncResult(
        message="Node sync completed successfully.",
        synced_count=len(synced),
        changes=changes,
        monitoring=stats,
    )


# ── Interface pass ─────────────────────────────────────────────────────────────

def build_optical_map(sensors: List[InventorySensor]) -> Dict[Tuple[int, str], Dict[str, str]]:
    """{(device_id, port name): {"tx": dBm, "rx": dBm}} from port-level dBm sensors."""
    optical: Dict[Tuple[int, str], Dict[str, str]] = {}
    for sensor in sensors:
        if not sensor.is_optical or not sensor.port_name or sensor.sensor_current is None:
            continue
        entry = optical.setdefault((sensor.device_id, sensor.port_name), {})
        if sensor.is_tx:
            entry["tx"] = str(sensor.sensor_current)
        if sensor.is_rx:
            entry["rx"] = str(sensor.sensor_current)
    return optical


def _is_excluded_port(name: str) -> bool:
    return name in EXCLUDED_PORT_NAMES or "bridge" in name


def _apply_port(iface: Interface, port: InventoryPort, optical: Dict[str, str]) -> None:
    iface.inventory_port_id = port.port_id
    iface.if_name = port.ifName
    iface.if_descr = port.ifAlias or port.ifDescr
    iface.if_type = port.ifType
    iface.if_phys_address = port.ifPhysAddress
    iface.oper_status = "up" if port.ifOperStatus == "up" else "down"
    iface.last_change = (
        datetime.fromtimestamp(port.ifLastChange, tz=timezone.utc) if port.ifLastChange else None
    )
    iface.optical_tx = optical.get("tx")
    iface.optical_rx = optical.get("rx")


async def sync_interfaces(db: AsyncSession, inventory: InventoryClient) -> InterfaceSyncResult:
    nodes = (await db.execute(select(Node).order_by(Node.id))).scalars().all()
    if not nodes:
        return InterfaceSyncResult(message="No nodes found in local store.")
    node_names = {n.id: n.name for n in nodes}

    prior = {
        iface.id: iface.oper_status
        for iface in (await db.execute(select(Interface))).scalars().all()
    }

    try:
        optical = build_optical_map(await inventory.get_sensors())
    except InventoryError as e:
        logger.warning(f"[SYNC] Sensors unavailable, optical levels not updated: {e}")
        optical = {}

    result = InterfaceSyncResult(message="Interface sync completed successfully.")
    for node in nodes:
        existing = {
            iface.if_index: iface
            for iface in (await db.execute(
                select(Interface).where(Interface.node_id == node.id)
            )).scalars().all()
        }

        if not node.status:
            for iface in existing.values():
                iface.oper_status = "down"
            result.forced_down_nodes += 1
            continue

        if node.inventory_device_id is None:
            logger.warning(f"[SYNC] Node {node.name} has no inventory device id, skipping ports")
            continue

        try:
            ports = await inventory.get_ports(node.inventory_device_id)
        except InventoryError as e:
            logger.error(f"[SYNC] Failed to fetch interfaces for up device {node.name}: {e}")
            result.failed_nodes.append(node.name)
            continue

        for port in ports:
            name = port.ifName or ""
            if _is_excluded_port(name):
                continue
            iface = existing.get(port.ifIndex)
            if iface is None:
                iface = Interface(node_id=node.id, if_index=port.ifIndex)
                db.add(iface)
                existing[port.ifIndex] = iface
            _apply_port(iface, port, optical.get((node.inventory_device_id, name), {}))
            result.synced_count += 1

    await db.flush()

    for iface in (await db.execute(select(Interface))).scalars().all():
        previous = prior.get(iface.id)
        if previous is not None and previous != iface.oper_status:
            result.changes.append(StatusChange(
                name=iface.if_name or f"ifIndex {iface.if_index}",
                description=iface.if_descr,
                node_name=node_names.get(iface.node_id),
                previous_status=_updown(previous == "up"),
                current_status=_updown(iface.oper_status == "up"),
            ))

    await db.commit()
    logger.info(
        f"[SYNC] Interfaces: {result.synced_count} upserted, {result.forced_down_nodes} nodes down, "
        f"{len(result.changes)} changes"
    )
    return result


# ── VLAN pass ──────────────────────────────────────────────────────────────────

async def _sync_node_vlans(db: AsyncSession, node: Node, discover, prune: bool, result: VlanSyncResult) -> None:
    interfaces = (await db.execute(
        select(Interface).where(Interface.node_id == node.id)
    )).scalars().all()
    by_name = {iface.if_name: iface for iface in interfaces if iface.if_name}
    known = [
        KnownInterface(if_index=iface.if_index, name=iface.if_name, phys_address=iface.if_phys_address)
        for iface in interfaces if iface.if_name
    ]

    vlans = await discover(node.ip_mgmt, node.snmp_community, node.vendor or classify_vendor(node.os), known)
    if not vlans:
        logger.info(f"[VLAN] No VLAN data for {node.name}; no bridge VLANs configured or unreachable")
        result.skipped_devices.append(f"{node.name} ({node.ip_mgmt}) - no VLAN data")
        return

    existing = {
        (m.vlan_id, m.interface_id): m
        for m in (await db.execute(
            select(VlanMembership).where(VlanMembership.node_id == node.id)
        )).scalars().all()
    }
    seen = set()

    for vlan in vlans:
        if is_excluded_vlan(vlan.vlan_id):
            continue
        members = [(p, False) for p in vlan.untagged_ports] + [(p, True) for p in vlan.tagged_ports]
        for port_name, tagged in members:
            iface = by_name.get(port_name)
            if iface is None:
                logger.debug(f"[VLAN] Interface {port_name} not found for node {node.name}")
                result.skipped_count += 1
                continue
            key = (vlan.vlan_id, iface.id)
            if key in seen:
                continue
            seen.add(key)

            mode = "Tagged" if tagged else "Untagged"
            membership = existing.get(key)
            if membership is None:
                membership = VlanMembership(node_id=node.id, vlan_id=vlan.vlan_id, interface_id=iface.id)
                db.add(membership)
                result.changes.append(VlanMembershipChange(
                    node_name=node.name, vlan_id=vlan.vlan_id, interface_name=port_name, is_tagged=tagged,
                ))
            elif membership.is_tagged != tagged:
                result.changes.append(VlanMembershipChange(
                    node_name=node.name, vlan_id=vlan.vlan_id, interface_name=port_name,
                    is_tagged=tagged, previous_tagged=membership.is_tagged,
                ))
            membership.is_tagged = tagged
            membership.name = vlan.name
            membership.description = f"{mode} VLAN {vlan.vlan_id} on {port_name}"
            result.synced_count += 1

    if prune:
        stale = [m.id for key, m in existing.items() if key not in seen]
        if stale:
            await db.execute(delete(VlanMembership).where(VlanMembership.id.in_(stale)))
            result.pruned_count += len(stale)


async def sync_vlans(
    db: AsyncSession,
    *,
    discover=discover_vlans,
    prune: Optional[bool] = None,
) -> VlanSyncResult:
    prune = settings.VLAN_PRUNE_STALE if prune is None else prune
    nodes = (await db.execute(
        select(Node).where(Node.status.is_(True)).order_by(Node.id)
    )).scalars().all()
    nodes = [n for n in nodes if n.snmp_community]

    result = VlanSyncResult(message="VLAN sync completed.", total_nodes=len(nodes))
    if not nodes:
        result.message = "No active devices with an SNMP community found."
        return result

    # rollback expires loaded rows, so each node is re-fetched by id
    for node_id in [n.id for n in nodes]:
        node = await db.get(Node, node_id)
        label = f"{node.name} ({node.ip_mgmt})"
        try:
            await _sync_node_vlans(db, node, discover, prune, result)
            await db.commit()
            result.successful_devices += 1
        except Exception as e:
            await db.rollback()
            logger.warning(f"[VLAN] Failed to sync VLAN data for {label}: {e}")
            result.failed_devices += 1
            result.errors[label] = str(e)

    logger.info(
        f"[VLAN] Sync completed. Success: {result.successful_devices}, Failed: {result.failed_devices}, "
        f"synced: {result.synced_count}, skipped ports: {result.skipped_count}"
    )
    return result


# ── LLDP pass ──────────────────────────────────────────────────────────────────

async def sync_lldp(db: AsyncSession, *, discover=discover_lldp_neighbors) -> LldpSyncResult:
    nodes = (await db.execute(select(Node).order_by(Node.id))).scalars().all()
    nodes = [n for n in nodes if n.snmp_community]
    if not nodes:
        return LldpSyncResult(message="No nodes found in local store.")

    port_descriptions = {
        (iface.node_id, iface.if_index): iface.if_descr
        for iface in (await db.execute(select(Interface))).scalars().all()
    }
    semaphore = asyncio.Semaphore(max(1, settings.SYNC_CONCURRENCY))

    async def fetch(node: Node):
        async with semaphore:
            try:
                return node, await discover(node.ip_mgmt, node.snmp_community), None
            except Exception as e:
                return node, [], e

    fetched = await asyncio.gather(*[fetch(n) for n in nodes])

    result = LldpSyncResult(message="LLDP sync completed successfully.")
    for node, neighbors, error in fetched:
        label = f"{node.name} ({node.ip_mgmt})"
        if error is not None:
            logger.warning(f"[LLDP] Failed to fetch LLDP data for {label}: {error}")
            result.failed_devices += 1
            result.errors[label] = str(error)
            continue
        result.successful_devices += 1

        existing = {
            row.local_port_if_index: row
            for row in (await db.execute(
                select(LldpNeighbor).where(LldpNeighbor.node_id == node.id)
            )).scalars().all()
        }
        for neighbor in neighbors:
            port = neighbor.local_port_if_index
            if port is None:
                logger.debug(f"[LLDP] {label}: no local port in row {neighbor.composite_index}")
                continue
            row = existing.get(port)
            if row is None:
                row = LldpNeighbor(node_id=node.id, local_port_if_index=port)
                db.add(row)
                existing[port] = row
            row.local_device_name = node.name
            row.local_port_description = port_descriptions.get((node.id, port))
            for field, value in neighbor.model_dump(exclude={"composite_index", "local_port_if_index"}).items():
                setattr(row, field, value)
            result.synced_count += 1

    await db.commit()
    logger.info(
        f"[LLDP] Sync completed. Success: {result.successful_devices}, Failed: {result.failed_devices}, "
        f"neighbors: {result.synced_count}"
    )
    return result


# ── FDB pass ───────────────────────────────────────────────────────────────────

async def sync_fdb(db: AsyncSession, inventory: InventoryClient) -> FdbSyncResult:
    entries = await inventory.get_fdb()
    if not entries:
        return FdbSyncResult(message="Sync finished. No FDB entries found in inventory.")

    existing = {row.inventory_fdb_id: row for row in (await db.execute(select(FdbEntry))).scalars().all()}
    result = FdbSyncResult(message="FDB sync completed successfully.")
    now = datetime.now(timezone.utc)

    for entry in entries:
        if entry.vlan_id is None:
            result.skipped_count += 1
            continue
        row = existing.get(entry.ports_fdb_id)
        if row is None:
            row = FdbEntry(inventory_fdb_id=entry.ports_fdb_id)
            if entry.created_at is not None:
                row.created_at = entry.created_at
            db.add(row)
            existing[entry.ports_fdb_id] = row
        row.inventory_port_id = entry.port_id
        row.inventory_device_id = entry.device_id
        row.mac_address = entry.mac_address
        row.vlan_id = entry.vlan_id
        row.updated_at = now
        result.synced_count += 1

    await db.commit()
    logger.info(f"[SYNC] FDB: {result.synced_count} upserted, {result.skipped_count} without VLAN")
    return result


# ── Full cycle ─────────────────────────────────────────────────────────────────

async def run_sync_cycle(
    sessionmaker: Optional[async_sessionmaker] = None,
    inventory: Optional[InventoryClient] = None,
    *,
    notifier=send_change_notification,
    usage_fetcher=fetch_system_usage,
    discover=discover_vlans,
    lldp_discover=discover_lldp_neighbors,
) -> SyncCycleResult:
    if sessionmaker is None:
        from netsync.database import AsyncSessionLocal
        sessionmaker = AsyncSessionLocal
    inventory = inventory or InventoryClient()
    result = SyncCycleResult()

    passes = (
        ("nodes", lambda db: sync_nodes(db, inventory, usage_fetcher=usage_fetcher)),
        ("interfaces", lambda db: sync_interfaces(db, inventory)),
        ("vlans", lambda db: sync_vlans(db, discover=discover)),
        ("lldp", lambda db: sync_lldp(db, discover=lldp_discover)),
        ("fdb", lambda db: sync_fdb(db, inventory)),
    )
    for name, run in passes:
        async with sessionmaker() as db:
            try:
                setattr(result, name, await run(db))
            except Exception as e:
                await db.rollback()
                logger.error(f"[SYNC] {name} pass failed: {e}")
                result.errors[name] = str(e)

    node_changes = result.nodes.changes if result.nodes else []
    interface_changes = result.interfaces.changes if result.interfaces else []
    try:
        result.notified = await notifier(node_changes, interface_changes)
    except Exception as e:
        logger.error(f"[SYNC] Change notification failed: {e}")
        result.errors["notification"] = str(e)
    return result
