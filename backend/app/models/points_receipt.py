"""Append-only points ledger entries."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class PointsReceipt(Base):
    __tablename__ = "points_receipts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    issuer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receipt_date = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    type = Column(String(20), nullable=False)
    # Spent receipts are stored negative.
    amount = Column(Integer, nullable=False)
    reason = Column(String(200), nullable=True)
    reference = Column(String(100), nullable=True, index=True)
    # Set only on receipts that must be unique per reference (session spends).
    unique_reference = Column(String(100), nullable=True, unique=True)
    notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="points_receipts", foreign_keys=[user_id])
