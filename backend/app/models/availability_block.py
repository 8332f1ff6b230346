from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Time
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class AvailabilityBlock(Base):
    __tablename__ = "availability_blocks"
    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_availability_block_span"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    block_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    owner = relationship("User", back_populates="availability_blocks", foreign_keys=[owner_id])
