"""
Device usage poller.
Fetches CPU and RAM utilisation over SNMP using the candidate OID lists of
the device's vendor profile. "No data" resolves to None; only transport
failures raise.
"""
import logging
from typing import Dict, List, Optional, Tuple

from netsync.config import settings
from netsync.services.errors import SnmpError
from netsync.services.snmp_session import SnmpSession, VarBind, oid_suffix
from netsync.services.vendor import (
    GENERIC, OID_HR_STORAGE_SIZE, OID_HR_STORAGE_TYPE, OID_HR_STORAGE_USED,
    STATIC_STORAGE_INDICES, VendorProfile, get_profile,
)

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


def _clamp(value: float) -> float:
    return min(100, max(0, value))


def _numeric(vb: VarBind) -> Optional[int]:
    if vb.is_error or vb.value is None:
        return None
    value = vb.value
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def normalize_cpu(profile: VendorProfile, oid: str, raw: int) -> float:
    if profile.is_byte_scale_cpu(oid):
        return _clamp(round(raw * 100 / 255))
    if profile.is_centipercent_cpu(oid) and raw > 100:
        return _clamp(raw / 100)
    return _clamp(raw)


async def fetch_cpu_usage(
    ip: str,
    community: str,
    vendor: str,
    *,
    session_factory=SnmpSession,
) -> Optional[float]:
    profile = get_profile(vendor)
    oids = list(profile.cpu_oids)
    if not oids:
        return None

    logger.debug(f"[CPU] Batch testing {len(oids)} OIDs for {ip} (vendor: {profile.tag})")
    async with session_factory(ip, community, timeout=settings.SNMP_TIMEOUT, retries=0) as session:
        varbinds = await session.get(oids)

    for vb in varbinds:
        raw = _numeric(vb)
        if raw is None:
            continue
        usage = normalize_cpu(profile, vb.oid, raw)
        logger.debug(f"[CPU] {vb.oid} answered for {ip}: raw={raw} -> {usage}%")
        return usage

    logger.info(f"[CPU] No CPU OID answered for {ip} (vendor: {profile.tag})")
    return None


async def discover_storage_indices(ip: str, community: str, *, session_factory=SnmpSession) -> List[int]:
    """Indices of hrStorageTable rows; static [1..5] when the walk fails or is empty."""
    indices: List[int] = []
    try:
        async with session_factory(
            ip, community, timeout=settings.STORAGE_DISCOVERY_TIMEOUT, retries=0,
        ) as session:
            for vb in await session.subtree(OID_HR_STORAGE_TYPE):
                suffix = oid_suffix(vb.oid, OID_HR_STORAGE_TYPE)
                if suffix and suffix.isdigit():
                    indices.append(int(suffix))
    except SnmpError as e:
        logger.warning(f"Storage discovery failed for {ip}: {e}")
        return list(STATIC_STORAGE_INDICES)
    return indices or list(STATIC_STORAGE_INDICES)


def _ram_candidates(profile: VendorProfile, storage_indices: List[int]) -> Tuple[List[str], List[str]]:
    totals = list(profile.ram_total_oids)
    used = list(profile.ram_used_oids)
    for i in storage_indices:
        totals.append(f"{OID_HR_STORAGE_SIZE}.{i}")
        used.append(f"{OID_HR_STORAGE_USED}.{i}")
    return totals, used


def compute_ram_usage(
    profile: VendorProfile,
    total_oids: List[str],
    used_oids: List[str],
    values: Dict[str, int],
) -> Optional[float]:
    """First (total, used) pair, in declared order, with both values and total > 0."""
    for total_oid in total_oids:
        if total_oid not in values:
            continue
        for used_oid in used_oids:
            if used_oid not in values:
                continue
            total = values[total_oid]
            used = values[used_oid]
            if profile.is_available_memory(used_oid):
                used = total - used
            if profile.ram_megabyte_heuristic and total < 1024:
                total *= MEGABYTE
                used *= MEGABYTE
            if total > 0:
                return _clamp(round(used / total * 100, 2))
    return None


async def fetch_ram_usage(
    ip: str,
    community: str,
    vendor: str,
    *,
    session_factory=SnmpSession,
) -> Optional[float]:
    profile = get_profile(vendor)
    storage_indices: List[int] = []
    if profile.discover_storage:
        storage_indices = await discover_storage_indices(ip, community, session_factory=session_factory)

    total_oids, used_oids = _ram_candidates(profile, storage_indices)
    # dict.fromkeys keeps request order while dropping duplicates
    all_oids = list(dict.fromkeys(total_oids + used_oids))
    if not all_oids:
        return None

    logger.debug(f"[RAM] Batch testing {len(all_oids)} OIDs for {ip} (vendor: {profile.tag})")
    async with session_factory(ip, community, timeout=settings.SNMP_TIMEOUT, retries=0) as session:
        varbinds = await session.get(all_oids)

    values: Dict[str, int] = {}
    for vb in varbinds:
        raw = _numeric(vb)
        if raw is not None:
            values[vb.oid] = raw

    if not values:
        logger.info(f"[RAM] No RAM OID answered for {ip}")
        return None

    usage = compute_ram_usage(profile, total_oids, used_oids, values)
    if usage is None:
        logger.info(f"[RAM] No usable total/used pair for {ip} (vendor: {profile.tag})")
    return usage


async def fetch_system_usage(
    ip: str,
    community: str,
    vendor: str = GENERIC,
    *,
    session_factory=SnmpSession,
) -> Tuple[Optional[float], Optional[float]]:
    """CPU then RAM, one after the other, to keep load on small agents down."""
    cpu = await fetch_cpu_usage(ip, community, vendor, session_factory=session_factory)
    ram = await fetch_ram_usage(ip, community, vendor, session_factory=session_factory)
    logger.info(f"[USAGE] {ip} (vendor: {vendor}) CPU={cpu}% RAM={ram}%")
    return cpu, ram
