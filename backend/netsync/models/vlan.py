"""VLAN membership per node interface."""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from netsync.database import Base


class VlanMembership(Base):
    """One row per (node, VLAN, interface); VLAN 1 and 99 are never stored."""
    __tablename__ = "vlan_memberships"

    id = Column(Integer, primary_key=True, index=True)
    node_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    vlan_id = Column(Integer, nullable=False)
    interface_id = Column(Integer, ForeignKey("interfaces.id", ondelete="CASCADE"), nullable=False)
    is_tagged = Column(Boolean, nullable=False, default=False)
    name = Column(String(100))
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    node = relationship("Node", back_populates="vlan_memberships")
    interface = relationship("Interface", back_populates="vlan_memberships")

    __table_args__ = (
        Index("ix_vlan_membership_key", "node_id", "vlan_id", "interface_id", unique=True),
    )
