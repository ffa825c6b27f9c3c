"""LLDP neighbors seen on node ports."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from netsync.database import Base


class LldpNeighbor(Base):
    __tablename__ = "lldp_neighbors"

    id = Column(Integer, primary_key=True, index=True)
    node_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False)
    local_device_name = Column(String(255))
    local_port_description = Column(String(255))
    local_port_if_index = Column(Integer, nullable=True)
    remote_chassis_id_subtype_code = Column(Integer, nullable=True)
    remote_chassis_id_subtype_name = Column(String(50))
    remote_chassis_id = Column(String(255))      # "aa:bb:cc:dd:ee:ff" for macAddress subtype
    remote_port_id_subtype_code = Column(Integer, nullable=True)
    remote_port_id_subtype_name = Column(String(50))
    remote_port_id = Column(String(255))
    remote_port_description = Column(String(255))
    remote_system_name = Column(String(255))
    remote_system_description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    node = relationship("Node", back_populates="lldp_neighbors")

    __table_args__ = (
        Index("ix_lldp_node_local_port", "node_id", "local_port_if_index", unique=True),
    )
