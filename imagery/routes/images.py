import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.middleware.auth import get_current_user
from imagery.models.image_record import ImageRecord
from imagery.models.profile import Profile
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def get_owned_image(image_id: uuid.UUID, current_user: Profile, db: Session) -> ImageRecord:
    image = db.get(ImageRecord, image_id)
    if image is None or image.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Image not found")
    return image


@router.get("/images")
async def list_images(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    images = db.execute(
        select(ImageRecord)
        .where(ImageRecord.user_id == current_user.id)
        .order_by(ImageRecord.created_at.desc())
    ).scalars().all()
    return {"images": [image.to_dict() for image in images]}


@router.get("/images/{image_id}")
async def read_image(
    image_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_owned_image(image_id, current_user, db).to_dict()


@router.delete("/images/{image_id}")
async def delete_image(
    image_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    image = get_owned_image(image_id, current_user, db)
    db.delete(image)
    db.commit()
    logger.info(f"Image {image_id} deleted by user {current_user.id}")
    return {"success": True}
