"""
Reconciliation of paid Stripe objects against the payments ledger.

Both the client-driven verification endpoint and the webhook go through
`reconcile_payment`, so a payment is credited once whichever arrives first.
"""
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from imagery.models.image_record import ImageRecord
from imagery.models.payment import Payment
from imagery.models.profile import PlanTier, Profile
from imagery.services.credits import add_credits
from imagery.services.pricing import plan_for_amount
import logging

logger = logging.getLogger(__name__)


class UnknownAmountError(Exception):
    def __init__(self, amount):
        super().__init__(f"No plan is priced at {amount}")
        self.amount = amount


@dataclass
class ReconcileResult:
    added_credits: int
    credits: int
    plan: str
    already_processed: bool = False
    unlocked_image_id: str | None = None


def parse_uuid(value) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def find_profile(db: Session, *, user_id=None, client_reference_id=None, customer_id=None) -> Profile | None:
    """Locate the paying profile from whatever the Stripe object carries."""
    for candidate in (user_id, client_reference_id):
        parsed = parse_uuid(candidate)
        if parsed:
            profile = db.get(Profile, parsed)
            if profile:
                return profile
    if customer_id:
        return db.execute(
            select(Profile).where(Profile.stripe_customer_id == customer_id)
        ).scalars().first()
    return None


def unlock_image(db: Session, profile: Profile, image_id) -> ImageRecord | None:
    parsed = parse_uuid(image_id)
    if not parsed:
        return None
    image = db.get(ImageRecord, parsed)
    if not image or image.user_id != profile.id:
        logger.warning(f"Image {image_id} not unlockable for user {profile.id}")
        return None
    image.is_unlocked = True
    return image


def reconcile_payment(
    db: Session,
    profile: Profile,
    *,
    reference: str,
    kind: str,
    amount: int | None,
    currency: str | None = None,
    customer_id: str | None = None,
    image_id=None,
) -> ReconcileResult:
    if db.get(Payment, reference):
        logger.info(f"Payment {reference} was already reconciled")
        return ReconcileResult(0, profile.credits, profile.plan, already_processed=True)

    plan = plan_for_amount(amount)
    if plan is None:
        logger.warning(f"Paid amount {amount} for {reference} does not match any plan")
        raise UnknownAmountError(amount)

    if plan.is_subscription:
        profile.plan = plan.id.value
    if customer_id and not profile.stripe_customer_id:
        profile.stripe_customer_id = customer_id

    unlocked = unlock_image(db, profile, image_id) if image_id else None

    add_credits(db, profile.id, plan.credits)
    db.add(Payment(
        reference=reference,
        user_id=profile.id,
        kind=kind,
        amount_total=amount,
        currency=currency,
        credits_added=plan.credits,
        plan=plan.id.value,
    ))

    try:
        db.commit()
    except IntegrityError:
        # Webhook and verification raced on the same reference
        db.rollback()
        db.refresh(profile)
        logger.info(f"Payment {reference} reconciled concurrently")
        return ReconcileResult(0, profile.credits, profile.plan, already_processed=True)

    db.refresh(profile)
    logger.info(f"Added {plan.credits} credits to user {profile.id} for {reference}. New balance: {profile.credits}")
    return ReconcileResult(
        added_credits=plan.credits,
        credits=profile.credits,
        plan=profile.plan,
        unlocked_image_id=str(unlocked.id) if unlocked else None,
    )


def cancel_subscription(db: Session, profile: Profile) -> None:
    logger.info(f"Subscription ended for user {profile.id}")
    profile.plan = PlanTier.NONE.value
    db.commit()
