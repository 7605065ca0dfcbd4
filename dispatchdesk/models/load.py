from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.sql import func

from dispatchdesk.database import Base

LOAD_TYPES = ("FULL", "PARTIAL")


class Load(Base):
    __tablename__ = "loads"
    __table_args__ = (
        UniqueConstraint("owner_id", "ref_id", name="uq_loads_owner_ref"),
        CheckConstraint("load_type IN ('FULL', 'PARTIAL')", name="ck_loads_load_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    ref_id = Column(String(64), nullable=False, index=True)  # dispatcher's load number
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)
    pickup_date = Column(Date, nullable=False)
    delivery_date = Column(Date, nullable=False, index=True)
    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    rate = Column(Numeric(10, 2), nullable=False)
    load_type = Column(String(10), nullable=False)
    connected_full_load_id = Column(Integer, ForeignKey("loads.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ref_id": self.ref_id,
            "driver_id": self.driver_id,
            "pickup_date": self.pickup_date.isoformat() if self.pickup_date else None,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "origin": self.origin,
            "destination": self.destination,
            "rate": float(self.rate) if self.rate is not None else None,
            "load_type": self.load_type,
            "connected_full_load_id": self.connected_full_load_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
