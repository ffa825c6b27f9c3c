from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class StatusChange(BaseModel):
    """An up/down transition of a node or an interface."""
    name: str
    previous_status: str   # UP / DOWN
    current_status: str
    ip_mgmt: Optional[str] = None
    node_name: Optional[str] = None
    description: Optional[str] = None


class MonitoringStats(BaseModel):
    total_devices: int = 0
    up_devices: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def success_rate(self) -> float:
        if not self.up_devices:
            return 0.0
        return round(self.successful / self.up_devices * 100, 1)


class NodeSyncResult(BaseModel):
    message: str
    synced_count: int = 0
    changes: List[StatusChange] = Field(default_factory=list)
    monitoring: MonitoringStats = Field(default_factory=MonitoringStats)


class InterfaceSyncResult(BaseModel):
    message: str
    synced_count: int = 0
    forced_down_nodes: int = 0
    failed_nodes: List[str] = Field(default_factory=list)
    changes: List[StatusChange] = Field(default_factory=list)


class VlanMembershipChange(BaseModel):
    node_name: str
    vlan_id: int
    interface_name: str
    is_tagged: bool
    previous_tagged: Optional[bool] = None   # None = new membership


class VlanSyncResult(BaseModel):
    message: str
    total_nodes: int = 0
    successful_devices: int = 0
    failed_devices: int = 0
    synced_count: int = 0
    skipped_count: int = 0
    pruned_count: int = 0
    skipped_devices: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)
    changes: List[VlanMembershipChange] = Field(default_factory=list)


class LldpSyncResult(BaseModel):
    message: str
    successful_devices: int = 0
    failed_devices: int = 0
    synced_count: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)


class FdbSyncResult(BaseModel):
    message: str
    synced_count: int = 0
    skipped_count: int = 0   # entries without a VLAN


class SyncCycleResult(BaseModel):
    nodes: Optional[NodeSyncResult] = None
    interfaces: Optional[InterfaceSyncResult] = None
    vlans: Optional[VlanSyncResult] = None
    lldp: Optional[LldpSyncResult] = None
    fdb: Optional[FdbSyncResult] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    notified: bool = False
