from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from netsync.database import Base


class Node(Base):
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True, index=True)
    inventory_device_id = Column(Integer, nullable=True)   # device_id on the inventory source
    name = Column(String(255), nullable=False)
    ip_mgmt = Column(String(50), nullable=False, unique=True, index=True)
    snmp_community = Column(String(100), nullable=False)
    os = Column(String(200))
    vendor = Column(String(20), default="generic")   # mikrotik, juniper, huawei, cisco, hp, generic
    status = Column(Boolean, nullable=True)           # True = up
    cpu_usage = Column(Float, nullable=True)
    ram_usage = Column(Float, nullable=True)
    pop_location = Column(String(255))
    lat = Column(String(32))
    lng = Column(String(32))
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    interfaces = relationship("Interface", back_populates="node", cascade="all, delete-orphan")
    vlan_memberships = relationship("VlanMembership", back_populates="node", cascade="all, delete-orphan")
    lldp_neighbors = relationship("LldpNeighbor", back_populates="node", cascade="all, delete-orphan")
