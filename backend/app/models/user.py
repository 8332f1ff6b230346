from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # Admins own availability and pricing and act on sessions.
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    availability_blocks = relationship(
        "AvailabilityBlock", back_populates="owner", cascade="all, delete-orphan", foreign_keys="AvailabilityBlock.owner_id"
    )
    booked_sessions = relationship("TutoringSession", back_populates="user", foreign_keys="TutoringSession.user_id")
    hosted_sessions = relationship("TutoringSession", back_populates="owner", foreign_keys="TutoringSession.owner_id")
    points_receipts = relationship("PointsReceipt", back_populates="user", foreign_keys="PointsReceipt.user_id")
