import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.middleware.auth import get_current_admin
from imagery.models.guest_preview import GuestPreview
from imagery.models.image_record import ImageRecord
from imagery.models.payment import Payment
from imagery.models.profile import PlanTier, Profile
from imagery.schemas import UserCreditsUpdate, UserStatusUpdate
from imagery.services.credits import set_credits
from imagery.services.pricing import get_plan
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

SUBSCRIPTION_TIERS = (PlanTier.BASIC, PlanTier.PRO, PlanTier.ELITE)


def get_profile_or_404(db: Session, user_id: uuid.UUID) -> Profile:
    profile = db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.get("/users")
async def list_users(
    admin: Profile = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    profiles = db.execute(select(Profile).order_by(Profile.joined_at.desc())).scalars().all()
    return {"users": [profile.to_dict() for profile in profiles]}


@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    admin: Profile = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    profile = get_profile_or_404(db, user_id)
    profile.is_active = body.is_active
    db.commit()
    logger.info(f"Admin {admin.id} set active={body.is_active} for user {user_id}")
    return profile.to_dict()


@router.put("/users/{user_id}/credits")
async def update_user_credits(
    user_id: uuid.UUID,
    body: UserCreditsUpdate,
    admin: Profile = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    get_profile_or_404(db, user_id)
    set_credits(db, user_id, body.credits)
    logger.info(f"Admin {admin.id} set credits={body.credits} for user {user_id}")
    return get_profile_or_404(db, user_id).to_dict()


@router.get("/metrics")
async def get_metrics(
    admin: Profile = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    def scalar(statement):
        return db.execute(statement).scalar() or 0

    active_subs = {
        tier.value: scalar(
            select(func.count()).select_from(Profile).where(Profile.plan == tier.value, Profile.is_active.is_(True))
        )
        for tier in SUBSCRIPTION_TIERS
    }
    mrr = sum(get_plan(tier).amount * count for tier, count in active_subs.items())

    return {
        "totalUsers": scalar(select(func.count()).select_from(Profile)),
        "activeSubs": active_subs,
        "mrr": mrr,
        "totalRevenue": scalar(select(func.sum(Payment.amount_total))),
        "oneTimeRevenue": scalar(select(func.sum(Payment.amount_total)).where(Payment.plan == PlanTier.NONE.value)),
        "oneTimeSalesCount": scalar(select(func.count()).select_from(Payment).where(Payment.plan == PlanTier.NONE.value)),
        "creditsSold": scalar(select(func.sum(Payment.credits_added))),
        "totalGenerations": scalar(select(func.count()).select_from(ImageRecord)),
        "freeGenerations": scalar(select(func.count()).select_from(ImageRecord).where(ImageRecord.is_free_preview.is_(True))),
        "guestGenerations": scalar(select(func.sum(GuestPreview.count))),
    }
