from pydantic import BaseModel, Field
from typing import List, Optional


class KnownInterface(BaseModel):
    """An interface already known for a node (from the store or an SNMP walk)."""
    if_index: int
    name: str
    phys_address: Optional[str] = None

    model_config = {"from_attributes": True}


class DiscoveredVlan(BaseModel):
    vlan_id: int
    name: str
    tagged_ports: List[str] = Field(default_factory=list)
    untagged_ports: List[str] = Field(default_factory=list)
