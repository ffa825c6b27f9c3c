from pydantic import BaseModel
from typing import Optional


class DiscoveredNeighbor(BaseModel):
    """One lldpRemTable row, keyed by <timeMark>.<localPortNum>.<remIndex>."""
    composite_index: str
    local_port_if_index: Optional[int] = None
    remote_chassis_id_subtype_code: Optional[int] = None
    remote_chassis_id_subtype_name: Optional[str] = None
    remote_chassis_id: Optional[str] = None
    remote_port_id_subtype_code: Optional[int] = None
    remote_port_id_subtype_name: Optional[str] = None
    remote_port_id: Optional[str] = None
    remote_port_description: Optional[str] = None
    remote_system_name: Optional[str] = None
    remote_system_description: Optional[str] = None
