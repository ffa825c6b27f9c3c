from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from netsync.database import Base


class Interface(Base):
    __tablename__ = "interfaces"

    id = Column(Integer, primary_key=True, index=True)
    node_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False)
    inventory_port_id = Column(Integer, nullable=True)   # port_id on the inventory source
    if_index = Column(Integer, nullable=False)
    if_name = Column(String(100))
    if_descr = Column(String(255))
    if_type = Column(String(50))
    if_phys_address = Column(String(20))
    oper_status = Column(String(20))     # up, down
    optical_tx = Column(String(20))      # dBm
    optical_rx = Column(String(20))
    last_change = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    node = relationship("Node", back_populates="interfaces")
    vlan_memberships = relationship("VlanMembership", back_populates="interface", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_interfaces_node_ifindex", "node_id", "if_index", unique=True),
    )
