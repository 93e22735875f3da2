from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.middleware.auth import get_current_user
from imagery.models.payment import Payment
from imagery.models.profile import Profile
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/profile")
async def read_profile(current_user: Profile = Depends(get_current_user)):
    """Returns the caller's profile, creating it on first sign-in"""
    return current_user.to_dict()


@router.get("/transactions")
async def list_transactions(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payments = db.execute(
        select(Payment)
        .where(Payment.user_id == current_user.id)
        .order_by(Payment.created_at.desc())
    ).scalars().all()
    return {"transactions": [payment.to_dict() for payment in payments]}
