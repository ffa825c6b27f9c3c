"""Payloads returned by the inventory source (LibreNMS-style API)."""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, Union


class InventoryDevice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    device_id: int
    hostname: Optional[str] = None
    sysName: Optional[str] = None
    ip: Optional[str] = None
    community: Optional[str] = None
    os: Optional[str] = None
    sysDescr: Optional[str] = None
    status: Union[int, bool, None] = None
    location: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.sysName or self.hostname or self.ip or str(self.device_id)

    @property
    def os_string(self) -> Optional[str]:
        return self.os or self.sysDescr or None

    @property
    def is_up(self) -> bool:
        return self.status == 1

    @property
    def management_ip(self) -> Optional[str]:
        return self.ip or self.hostname


class InventoryLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    location: str
    lat: Optional[Union[float, str]] = None
    lng: Optional[Union[float, str]] = None


class InventoryPort(BaseModel):
    model_config = ConfigDict(extra="ignore")

    port_id: Optional[int] = None
    ifIndex: int
    ifName: Optional[str] = None
    ifDescr: Optional[str] = None
    ifAlias: Optional[str] = None
    ifOperStatus: Optional[str] = None
    ifLastChange: Optional[int] = None
    ifType: Optional[str] = None
    ifPhysAddress: Optional[str] = None


class InventorySensor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    device_id: int
    sensor_class: Optional[str] = None
    sensor_index: str = ""
    sensor_descr: str = ""
    sensor_current: Optional[float] = None
    entPhysicalIndex_measured: Optional[str] = None

    @property
    def is_optical(self) -> bool:
        return self.entPhysicalIndex_measured == "ports" and self.sensor_class == "dbm"

    @property
    def is_tx(self) -> bool:
        return (
            "OpticalTxPower" in self.sensor_index
            or self.sensor_index.startswith("tx-")
            or self.sensor_descr.endswith(" Tx")
        )

    @property
    def is_rx(self) -> bool:
        return (
            "OpticalRxPower" in self.sensor_index
            or self.sensor_index.startswith("rx-")
            or "lane-rx-" in self.sensor_index
            or self.sensor_descr.endswith(" Rx")
        )

    @property
    def port_name(self) -> Optional[str]:
        parts = self.sensor_descr.split()
        return parts[0] if parts else None


class InventoryFdbEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ports_fdb_id: int
    port_id: int
    device_id: int
    mac_address: str
    vlan_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
