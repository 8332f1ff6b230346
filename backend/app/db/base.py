from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.user import User  # noqa: F401
from backend.app.models.subject import Subject, PricingRule  # noqa: F401
from backend.app.models.availability_block import AvailabilityBlock  # noqa: F401
from backend.app.models.tutoring_session import TutoringSession  # noqa: F401
from backend.app.models.points_receipt import PointsReceipt  # noqa: F401
from backend.app.models.booking_lock import BookingLock  # noqa: F401
