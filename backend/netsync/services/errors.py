"""Exception types raised by the netsync services."""
from typing import Optional


class NetsyncError(Exception):
    """Base class for netsync errors."""


class SnmpError(NetsyncError):
    pass


class SnmpTransportError(SnmpError):
    """Session-level failure: timeout, socket error or an error-status PDU."""

    def __init__(self, ip: str, message: str):
        super().__init__(f"SNMP session error for {ip}: {message}")
        self.ip = ip


class InventoryError(NetsyncError):
    """The inventory source answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
