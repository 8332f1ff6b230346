"""Subject pricing: effective rules, subject config and quotes.

The quote functions are pure given a ``SubjectConfig``; the same inputs always
produce the same quote, so the preview shown to a learner and the price
committed with a booking agree.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import List

from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidPricingRule, SubjectNotConfigured, SubjectNotFound
from backend.app.core.settings import get_settings
from backend.app.models.subject import PricingRule, Subject
from backend.app.schemas.booking import Quote, SubjectConfig, SubjectListItem

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def calculate_session_cost(duration_minutes: int | None, rate_per_hour: Decimal | float | None) -> Decimal | None:
    """Compute session cost using Decimal math; return None for invalid inputs."""
    if duration_minutes is None or rate_per_hour is None:
        return None
    if duration_minutes <= 0:
        return None
    rate = Decimal(str(rate_per_hour))
    if rate <= 0:
        return None
    hours = Decimal(duration_minutes) / Decimal("60")
    cost = hours * rate
    return cost.quantize(CENTS, rounding=ROUND_HALF_UP)


def clamp_to_step(value: int, minimum: int, maximum: int, step: int) -> int:
    """Clamp ``value`` into [minimum, maximum] and snap it to the step grid anchored at ``minimum``.

    Half steps round to even, and the result is re-clamped so it never leaves
    the bounds. Clamping an already clamped value returns it unchanged.
    """
    value = min(max(value, minimum), maximum)
    if step <= 0:
        return value
    offset = Decimal(value - minimum) / Decimal(step)
    snapped = int(offset.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)) * step + minimum
    return min(max(snapped, minimum), maximum)


def _hours_to_minutes(hours: Decimal) -> int:
    return int((Decimal(str(hours)) * 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_subjects_for_booking(db: Session) -> List[SubjectListItem]:
    subjects = db.query(Subject).filter(Subject.is_active.is_(True)).order_by(Subject.name).all()
    return [SubjectListItem.model_validate(subject) for subject in subjects]


def create_subject(db: Session, *, name: str) -> Subject:
    subject = Subject(name=name.strip(), is_active=True)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    logger.info("Created subject #%s (%s)", subject.id, subject.name)
    return subject


def set_subject_active(db: Session, *, subject_id: int, is_active: bool) -> Subject | None:
    subject = db.get(Subject, subject_id)
    if subject is None:
        return None
    subject.is_active = is_active
    db.commit()
    db.refresh(subject)
    return subject


def add_pricing_rule(
    db: Session,
    *,
    subject_id: int,
    owner_id: int,
    hourly_rate: Decimal,
    min_hours: Decimal,
    max_hours: Decimal,
    max_point_discount: Decimal = Decimal("0"),
) -> PricingRule:
    """Append a pricing rule; the newest rule for a subject is the effective one."""
    if db.get(Subject, subject_id) is None:
        raise SubjectNotFound()
    hourly_rate = Decimal(str(hourly_rate))
    min_hours = Decimal(str(min_hours))
    max_hours = Decimal(str(max_hours))
    max_point_discount = Decimal(str(max_point_discount))
    if hourly_rate <= 0:
        raise InvalidPricingRule("Hourly rate must be positive.")
    if min_hours <= 0 or min_hours > max_hours:
        raise InvalidPricingRule("Minimum hours must be positive and not exceed maximum hours.")
    if max_point_discount < 0 or max_point_discount > 100:
        raise InvalidPricingRule("Maximum point discount must be between 0 and 100 percent.")

    rule = PricingRule(
        subject_id=subject_id,
        owner_id=owner_id,
        hourly_rate=hourly_rate,
        min_hours=min_hours,
        max_hours=max_hours,
        max_point_discount=max_point_discount,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info("Added pricing rule #%s for subject #%s (rate=%s)", rule.id, subject_id, hourly_rate)
    return rule


def get_effective_pricing_rule(db: Session, subject_id: int) -> PricingRule | None:
    return (
        db.query(PricingRule)
        .filter(PricingRule.subject_id == subject_id)
        .order_by(PricingRule.id.desc())
        .first()
    )


def get_subject_config(db: Session, subject_id: int) -> SubjectConfig | None:
    """Return the booking config for an active subject.

    Returns None when the subject does not exist or is inactive, and raises
    SubjectNotConfigured when it exists without a pricing rule.
    """
    subject = db.query(Subject).filter(Subject.id == subject_id, Subject.is_active.is_(True)).first()
    if subject is None:
        return None
    rule = get_effective_pricing_rule(db, subject_id)
    if rule is None:
        raise SubjectNotConfigured()

    settings = get_settings()
    return SubjectConfig(
        subject_id=subject.id,
        subject_name=subject.name,
        hourly_rate=Decimal(str(rule.hourly_rate)),
        min_duration_minutes=_hours_to_minutes(rule.min_hours),
        max_duration_minutes=_hours_to_minutes(rule.max_hours),
        duration_step_minutes=settings.duration_step_minutes,
        max_discount_percent=max(0, math.floor(Decimal(str(rule.max_point_discount)))),
        discount_step_percent=settings.discount_step_percent,
    )


def require_subject_config(db: Session, subject_id: int) -> SubjectConfig:
    config = get_subject_config(db, subject_id)
    if config is None:
        raise SubjectNotFound()
    return config


def clamp_duration(config: SubjectConfig, duration_minutes: int) -> int:
    return clamp_to_step(
        duration_minutes,
        config.min_duration_minutes,
        config.max_duration_minutes,
        config.duration_step_minutes,
    )


def clamp_discount(config: SubjectConfig, discount_percent: int) -> int:
    return clamp_to_step(discount_percent, 0, config.max_discount_percent, config.discount_step_percent)


def quote_from_config(config: SubjectConfig, duration_minutes: int, discount_percent: int) -> Quote:
    duration = clamp_duration(config, duration_minutes)
    pct = clamp_discount(config, discount_percent)

    # Only the discount is rounded; base and final cost keep full precision.
    base_cost = Decimal(str(config.hourly_rate)) * Decimal(duration) / Decimal("60")
    money_discount = (base_cost * Decimal(pct) / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)

    return Quote(
        duration_minutes=duration,
        base_cost=base_cost,
        discount_percent_applied=pct,
        # One point buys one percent of discount.
        points_to_charge=pct,
        money_discount=money_discount,
        final_cost=base_cost - money_discount,
    )


def calculate_quote(db: Session, subject_id: int, duration_minutes: int, discount_percent: int) -> Quote:
    config = require_subject_config(db, subject_id)
    return quote_from_config(config, duration_minutes, discount_percent)
