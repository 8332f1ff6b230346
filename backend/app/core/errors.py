"""Exceptions raised by the booking and points services."""


class BookingError(Exception):
    code = "BookingError"
    default_message = "Booking failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SubjectNotConfigured(BookingError):
    code = "SubjectNotConfigured"
    default_message = "No pricing rule defined for this subject."


class SubjectNotFound(SubjectNotConfigured):
    code = "SubjectNotFound"
    default_message = "Subject not found."


class InvalidTimeFormat(BookingError):
    code = "InvalidTimeFormat"
    default_message = "Invalid start time format."


class InvalidAmount(BookingError):
    code = "InvalidAmount"
    default_message = "Amount must be a positive number of points."


class InvalidAvailabilityBlock(BookingError):
    code = "InvalidAvailabilityBlock"
    default_message = "Availability block must have a positive duration within one day."


class InvalidPricingRule(BookingError):
    code = "InvalidPricingRule"
    default_message = "Pricing rule is not valid."
