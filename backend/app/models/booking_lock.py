from sqlalchemy import Column, Date, ForeignKey, Integer, UniqueConstraint

from backend.app.db.base_class import Base


class BookingLock(Base):
    """One row per owner and day; bumped inside every booking transaction.

    Updating the row serializes concurrent bookings against the same owner
    and day, so the conflict check and the insert act as one step.
    """

    __tablename__ = "booking_locks"
    __table_args__ = (UniqueConstraint("owner_id", "lock_date", name="uq_booking_lock_owner_day"),)

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    lock_date = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)
