"""Maps raw bridge/PVID port indices to interface names."""
from typing import Mapping


def resolve_interface_name(port_index: int, interfaces: Mapping[int, str]) -> str:
    """
    RouterOS numbers bridge ports one below the ifIndex of the backing
    interface, so try port+1 first, then the index itself.
    """
    name = interfaces.get(port_index + 1)
    if name:
        return name
    name = interfaces.get(port_index)
    if name:
        return name
    return f"port-{port_index}"


def is_placeholder(name: str) -> bool:
    return name.startswith("port-")
