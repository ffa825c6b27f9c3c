"""Forwarding database (MAC -> port) rows mirrored from the inventory source."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from netsync.database import Base


class FdbEntry(Base):
    __tablename__ = "fdb_entries"

    id = Column(Integer, primary_key=True, index=True)
    inventory_fdb_id = Column(Integer, nullable=False, unique=True)   # ports_fdb_id on the inventory source
    inventory_port_id = Column(Integer, nullable=False)
    inventory_device_id = Column(Integer, nullable=False, index=True)
    mac_address = Column(String(20), nullable=False, index=True)
    vlan_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
