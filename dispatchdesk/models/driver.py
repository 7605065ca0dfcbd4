from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from dispatchdesk.database import Base

DRIVER_TYPES = ("company_driver", "owner_operator")
DRIVER_STATUSES = ("active", "inactive")


class Driver(Base):
	__tablename__ = "drivers"
	__table_args__ = (
		CheckConstraint("driver_type IN ('company_driver', 'owner_operator')", name="ck_drivers_driver_type"),
		CheckConstraint("status IN ('active', 'inactive')", name="ck_drivers_status"),
	)

	id = Column(Integer, primary_key=True, index=True)
	owner_id = Column(String(64), nullable=False, index=True)
	driver_name = Column(String, nullable=False)
	driver_type = Column(String(20), nullable=False, default="company_driver")
	status = Column(String(10), nullable=False, default="active")
	truck_number = Column(String(20), nullable=True, index=True)
	created_at = Column(DateTime(timezone=True), server_default=func.now())
	updated_at = Column(
		DateTime(timezone=True),
		server_default=func.now(),
		onupdate=func.now(),
	)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"driver_name": self.driver_name,
			"driver_type": self.driver_type,
			"status": self.status,
			"truck_number": self.truck_number,
			"created_at": self.created_at.isoformat() if self.created_at else None,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
		}
