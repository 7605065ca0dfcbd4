from sqlalchemy import Column, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from dispatchdesk.database import Base


class PrebookNote(Base):
    __tablename__ = "prebook_notes"
    __table_args__ = (
        UniqueConstraint("owner_id", "note_date", name="uq_prebook_notes_owner_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    note_date = Column(Date, nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "note_date": self.note_date.isoformat() if self.note_date else None,
            "note": self.note,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
