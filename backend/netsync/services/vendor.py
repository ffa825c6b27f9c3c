"""
Vendor dispatch.
Classifies a device by its reported OS / sysDescr string and exposes the
per-vendor OID candidate lists used by the usage poller and the VLAN walker.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

GENERIC = "generic"

# HOST-RESOURCES-MIB
OID_HR_PROCESSOR_LOAD = "1.3.6.1.2.1.25.3.3.1.2"
OID_HR_STORAGE_TYPE   = "1.3.6.1.2.1.25.2.3.1.2"
OID_HR_STORAGE_SIZE   = "1.3.6.1.2.1.25.2.3.1.5"
OID_HR_STORAGE_USED   = "1.3.6.1.2.1.25.2.3.1.6"

# UCD-SNMP-MIB
OID_UCD_CPU_SYSTEM    = "1.3.6.1.4.1.2021.11.9.0"

# MIKROTIK-MIB
OID_MTXR_CPU_LOAD     = "1.3.6.1.4.1.14988.1.1.3.14.0"
OID_MTXR_FREE_MEMORY  = "1.3.6.1.4.1.14988.1.1.1.1.0"
OID_MTXR_TOTAL_MEMORY = "1.3.6.1.4.1.14988.1.1.1.2.0"

# JUNIPER-MIB jnxOperatingTable, routing engine row
OID_JNX_OPERATING_CPU = "1.3.6.1.4.1.2636.3.1.13.1.8.9.1.0.0"

# HUAWEI-ENTITY-EXTENT-MIB, main board entity
OID_HW_ENTITY_CPU_USAGE = "1.3.6.1.4.1.2011.5.25.31.1.1.1.1.5.67108867"

# HUAWEI-MEMORY-MIB hwMemoryDevTable, slot 0
OID_HW_MEMORY_DEV_SIZE = "1.3.6.1.4.1.2011.6.3.5.1.1.2.0"
OID_HW_MEMORY_DEV_FREE = "1.3.6.1.4.1.2011.6.3.5.1.1.3.0"

# OLD-CISCO-CPU-MIB avgBusy5
OID_CISCO_CPU_5MIN = "1.3.6.1.4.1.9.2.1.58.0"

STATIC_STORAGE_INDICES = (1, 2, 3, 4, 5)

VLAN_STRATEGY_MIKROTIK = "mikrotik"
VLAN_STRATEGY_HUAWEI = "huawei"
VLAN_STRATEGY_BRIDGE = "bridge"


@dataclass(frozen=True)
class VendorProfile:
    tag: str
    cpu_oids: Tuple[str, ...]
    ram_total_oids: Tuple[str, ...]
    ram_used_oids: Tuple[str, ...]
    cpu_byte_scale_prefixes: Tuple[str, ...] = ()
    cpu_centipercent_prefixes: Tuple[str, ...] = ()
    ram_available_prefixes: Tuple[str, ...] = ()
    ram_megabyte_heuristic: bool = False
    discover_storage: bool = False
    vlan_strategy: str = VLAN_STRATEGY_BRIDGE

    def is_byte_scale_cpu(self, oid: str) -> bool:
        return _in_family(oid, self.cpu_byte_scale_prefixes)

    def is_centipercent_cpu(self, oid: str) -> bool:
        return _in_family(oid, self.cpu_centipercent_prefixes)

    def is_available_memory(self, oid: str) -> bool:
        return _in_family(oid, self.ram_available_prefixes)


def _in_family(oid: str, prefixes: Tuple[str, ...]) -> bool:
    return any(prefix in oid for prefix in prefixes)


def _storage_oids(column: str, indices=STATIC_STORAGE_INDICES) -> Tuple[str, ...]:
    return tuple(f"{column}.{i}" for i in indices)


GENERIC_PROFILE = VendorProfile(
    tag=GENERIC,
    cpu_oids=(
        f"{OID_HR_PROCESSOR_LOAD}.1",
        f"{OID_HR_PROCESSOR_LOAD}.196608",
        f"{OID_HR_PROCESSOR_LOAD}.768",
        OID_UCD_CPU_SYSTEM,
    ),
    ram_total_oids=_storage_oids(OID_HR_STORAGE_SIZE),
    ram_used_oids=_storage_oids(OID_HR_STORAGE_USED),
    discover_storage=True,
)

MIKROTIK_PROFILE = VendorProfile(
    tag="mikrotik",
    cpu_oids=(
        OID_MTXR_CPU_LOAD,
        f"{OID_HR_PROCESSOR_LOAD}.1",
        f"{OID_HR_PROCESSOR_LOAD}.2",
    ),
    ram_total_oids=(
        OID_MTXR_TOTAL_MEMORY,
        f"{OID_HR_STORAGE_SIZE}.65536",
    ),
    ram_used_oids=(
        f"{OID_HR_STORAGE_USED}.65536",
        OID_MTXR_FREE_MEMORY,
    ),
    cpu_byte_scale_prefixes=("14988.1.1.3.14",),
    cpu_centipercent_prefixes=(OID_HR_PROCESSOR_LOAD,),
    ram_available_prefixes=("14988.1.1.1.1",),
    ram_megabyte_heuristic=True,
    vlan_strategy=VLAN_STRATEGY_MIKROTIK,
)

JUNIPER_PROFILE = VendorProfile(
    tag="juniper",
    cpu_oids=(
        OID_JNX_OPERATING_CPU,
        f"{OID_HR_PROCESSOR_LOAD}.1",
    ),
    ram_total_oids=GENERIC_PROFILE.ram_total_oids,
    ram_used_oids=GENERIC_PROFILE.ram_used_oids,
)

HUAWEI_PROFILE = VendorProfile(
    tag="huawei",
    cpu_oids=(
        OID_HW_ENTITY_CPU_USAGE,
        f"{OID_HR_PROCESSOR_LOAD}.1",
    ),
    ram_total_oids=(OID_HW_MEMORY_DEV_SIZE, f"{OID_HR_STORAGE_SIZE}.1"),
    ram_used_oids=(OID_HW_MEMORY_DEV_FREE, f"{OID_HR_STORAGE_USED}.1"),
    ram_available_prefixes=("2011.6.3.5.1.1.3",),
    vlan_strategy=VLAN_STRATEGY_HUAWEI,
)

CISCO_PROFILE = VendorProfile(
    tag="cisco",
    cpu_oids=(OID_CISCO_CPU_5MIN,) + GENERIC_PROFILE.cpu_oids,
    ram_total_oids=GENERIC_PROFILE.ram_total_oids,
    ram_used_oids=GENERIC_PROFILE.ram_used_oids,
)

HP_PROFILE = VendorProfile(
    tag="hp",
    cpu_oids=GENERIC_PROFILE.cpu_oids,
    ram_total_oids=GENERIC_PROFILE.ram_total_oids,
    ram_used_oids=GENERIC_PROFILE.ram_used_oids,
)

# First match wins.
VENDOR_SIGNATURES = (
    (("mikrotik", "routeros", "router os"), MIKROTIK_PROFILE),
    (("junos", "juniper", "srx", "ex", "mx"), JUNIPER_PROFILE),
    (("huawei", "vrp", "versatile routing platform", "cloudengine", "ce"), HUAWEI_PROFILE),
    (("cisco", "ios", "nexus", "catalyst"), CISCO_PROFILE),
    (("hp ", "hpe", "procurve", "aruba"), HP_PROFILE),
)

PROFILES = {GENERIC: GENERIC_PROFILE}
PROFILES.update({profile.tag: profile for _, profile in VENDOR_SIGNATURES})


def classify_vendor(os_string: Optional[str]) -> str:
    """Map a free-text OS / sysDescr string to a vendor tag."""
    if not os_string:
        return GENERIC
    lowered = os_string.lower()
    for signatures, profile in VENDOR_SIGNATURES:
        if any(sig in lowered for sig in signatures):
            return profile.tag
    return GENERIC


def get_profile(vendor: Optional[str]) -> VendorProfile:
    return PROFILES.get((vendor or GENERIC).lower(), GENERIC_PROFILE)
