import uuid

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from imagery.models.guest_preview import GuestPreview
from imagery.models.profile import Profile, utcnow
from imagery.utils.auth import Identity
import logging

logger = logging.getLogger(__name__)


def get_profile(db: Session, user_id: uuid.UUID) -> Profile | None:
    return db.get(Profile, user_id)


def ensure_profile(db: Session, identity: Identity) -> Profile:
    """Return the caller's profile, creating an empty one on first sight."""
    profile = db.get(Profile, identity.user_id)
    if profile:
        return profile

    logger.info(f"Provisioning profile for user {identity.user_id}")
    profile = Profile(
        id=identity.user_id,
        email=identity.email,
        full_name=identity.name,
        credits=0,
    )
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        # Another request provisioned it first
        db.rollback()
        return db.get(Profile, identity.user_id)
    db.refresh(profile)
    return profile


def consume_credit(db: Session, user_id: uuid.UUID) -> bool:
    """Debit one credit if the balance allows it.

    A single conditional UPDATE, so concurrent debits can never take the
    balance below zero. Returns False when nothing was debited.
    """
    result = db.execute(
        update(Profile)
        .where(Profile.id == user_id, Profile.credits > 0)
        .values(credits=Profile.credits - 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def add_credits(db: Session, user_id: uuid.UUID, amount: int) -> None:
    """Queue a credit increment; the caller commits."""
    db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(credits=Profile.credits + amount)
        .execution_options(synchronize_session=False)
    )


def set_credits(db: Session, user_id: uuid.UUID, credits: int) -> bool:
    result = db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(credits=credits)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def claim_free_preview(db: Session, user_id: uuid.UUID) -> bool:
    result = db.execute(
        update(Profile)
        .where(Profile.id == user_id, Profile.has_used_free_preview.is_(False))
        .values(has_used_free_preview=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def guest_previews_used(db: Session, client_key: str) -> int:
    row = db.get(GuestPreview, client_key)
    return row.count if row else 0


def record_guest_preview(db: Session, client_key: str) -> None:
    result = db.execute(
        update(GuestPreview)
        .where(GuestPreview.client_key == client_key)
        .values(count=GuestPreview.count + 1, last_used_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(GuestPreview(client_key=client_key, count=1))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        db.execute(
            update(GuestPreview)
            .where(GuestPreview.client_key == client_key)
            .values(count=GuestPreview.count + 1, last_used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.commit()
