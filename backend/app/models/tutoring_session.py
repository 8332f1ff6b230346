"""Tutoring session model."""

from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Time
from sqlalchemy.orm import relationship

from backend.app.constants.statuses import SessionStatus
from backend.app.core.time import add_minutes, utc_now
from backend.app.db.base_class import Base


class TutoringSession(Base):
    __tablename__ = "tutoring_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    session_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    base_cost = Column(Numeric(10, 2), nullable=False)
    points_spent = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=SessionStatus.REQUESTED.value, index=True)
    cancellation_date = Column(DateTime(timezone=True), nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="booked_sessions", foreign_keys=[user_id])
    owner = relationship("User", back_populates="hosted_sessions", foreign_keys=[owner_id])
    subject = relationship("Subject")

    @property
    def duration_hours(self) -> Decimal:
        return Decimal(self.duration_minutes) / Decimal("60")

    @property
    def end_time(self):
        return add_minutes(self.start_time, self.duration_minutes)
