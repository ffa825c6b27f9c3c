from netsync.schemas.inventory import (
    InventoryDevice, InventoryLocation, InventoryPort, InventorySensor, InventoryFdbEntry,
)
from netsync.schemas.vlan import KnownInterface, DiscoveredVlan
from netsync.schemas.lldp import DiscoveredNeighbor
from netsync.schemas.sync import (
    StatusChange, MonitoringStats, NodeSyncResult, InterfaceSyncResult,
    VlanMembershipChange, VlanSyncResult, LldpSyncResult, FdbSyncResult, SyncCycleResult,
)

__all__ = [
    "InventoryDevice", "InventoryLocation", "InventoryPort", "InventorySensor", "InventoryFdbEntry",
    "KnownInterface", "DiscoveredVlan", "DiscoveredNeighbor",
    "StatusChange", "MonitoringStats", "NodeSyncResult", "InterfaceSyncResult",
    "VlanMembershipChange", "VlanSyncResult", "LldpSyncResult", "FdbSyncResult", "SyncCycleResult",
]
