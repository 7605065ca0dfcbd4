from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from dispatchdesk.database import Base

BONUS_TYPES = ("automatic", "manual")


class Bonus(Base):
    __tablename__ = "bonuses"
    __table_args__ = (
        CheckConstraint("bonus_type IN ('automatic', 'manual')", name="ck_bonuses_bonus_type"),
    )

    id          = Column(Integer, primary_key=True, index=True)
    owner_id    = Column(String(64), nullable=False, index=True)
    driver_id   = Column(Integer, ForeignKey("drivers.id", ondelete="CASCADE"), nullable=True, index=True)  # NULL = company-wide
    bonus_type  = Column(String(10), nullable=False, index=True)
    amount      = Column(Numeric(10, 2), nullable=False)
    week_start  = Column(Date, nullable=False)
    payout_date = Column(Date, nullable=False, index=True)
    note        = Column(Text, nullable=True)
    created_at  = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "bonus_type": self.bonus_type,
            "amount": float(self.amount) if self.amount is not None else None,
            "week_start": self.week_start.isoformat() if self.week_start else None,
            "payout_date": self.payout_date.isoformat() if self.payout_date else None,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
