"""Subject and pricing rule models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    pricing_rules = relationship(
        "PricingRule", back_populates="subject", cascade="all, delete-orphan", order_by="PricingRule.id"
    )


class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    min_hours = Column(Numeric(4, 2), nullable=False)
    max_hours = Column(Numeric(4, 2), nullable=False)
    max_point_discount = Column(Numeric(5, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    subject = relationship("Subject", back_populates="pricing_rules")
