from netsync.models.node import Node
from netsync.models.interface import Interface
from netsync.models.vlan import VlanMembership
from netsync.models.lldp import LldpNeighbor
from netsync.models.fdb import FdbEntry

__all__ = [
    "Node",
    "Interface",
    "VlanMembership",
    "LldpNeighbor",
    "FdbEntry",
]
