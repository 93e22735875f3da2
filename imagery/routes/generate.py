from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.middleware.auth import get_optional_identity
from imagery.models.image_record import ImageRecord
from imagery.models.profile import Profile
from imagery.schemas import GenerateRequest
from imagery.services.ai_provider import ERROR_RESPONSES, ProviderError, ProviderErrorKind
from imagery.services.credits import (
    claim_free_preview,
    consume_credit,
    ensure_profile,
    guest_previews_used,
    record_guest_preview,
)
from imagery.utils.auth import Identity
from imagery.utils.images import InvalidImagePayload, decode_image_data, parse_image_payload, to_data_uri
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

INSUFFICIENT_CREDITS_MESSAGE = "Insufficient credits. Please purchase a pack to generate images."
GUEST_LIMIT_MESSAGE = "Free preview used. Please sign up or log in to continue."


def client_key(request: Request) -> str:
    settings = request.app.state.settings
    if settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


def settle_identified(db: Session, profile: Profile, is_free_preview: bool) -> None:
    """Charge an identified caller for a generation that already succeeded.

    The generated image is returned either way; a failed write is logged.
    """
    try:
        if is_free_preview:
            charged = claim_free_preview(db, profile.id)
        else:
            charged = consume_credit(db, profile.id)
        if not charged:
            # A concurrent request spent the last credit or the preview first
            logger.warning(f"Generation for user {profile.id} succeeded but nothing was debited")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to deduct credit after success for user {profile.id}: {str(e)}")


def save_image_record(db: Session, profile: Profile, original: str, generated: str, prompt: str, is_free_preview: bool) -> ImageRecord | None:
    record = ImageRecord(
        user_id=profile.id,
        original_image_base64=original,
        generated_image_base64=generated,
        prompt=prompt,
        is_unlocked=not is_free_preview,
        is_free_preview=is_free_preview,
    )
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
        return record
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to save image record for user {profile.id}: {str(e)}")
        return None


@router.post("/generate")
async def generate(
    body: GenerateRequest,
    request: Request,
    identity: Identity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    if not body.image_base64 or not body.image_base64.strip():
        raise HTTPException(status_code=400, detail="No image provided")
    if not body.prompt or not body.prompt.strip():
        raise HTTPException(status_code=400, detail="No prompt provided")
    prompt = body.prompt.strip()

    settings = request.app.state.settings
    provider = request.app.state.image_provider
    if provider is None:
        logger.error("No AI provider configured")
        raise HTTPException(status_code=500, detail="Server Configuration Error: AI provider is not configured.")

    profile = None
    guest = None
    if identity is not None:
        profile = ensure_profile(db, identity)
        if not profile.is_active:
            raise HTTPException(status_code=403, detail="Account is deactivated. Please contact support.")
        if profile.credits >= 1:
            is_free_preview = False
        elif not profile.has_used_free_preview:
            is_free_preview = True
        else:
            logger.info(f"User {profile.id} has no credits left")
            raise HTTPException(status_code=403, detail=INSUFFICIENT_CREDITS_MESSAGE)
    else:
        guest = client_key(request)
        if guest_previews_used(db, guest) >= settings.GUEST_PREVIEW_LIMIT:
            raise HTTPException(status_code=403, detail=GUEST_LIMIT_MESSAGE)
        is_free_preview = True

    try:
        mime_type, data = parse_image_payload(body.image_base64)
        if len(data) < settings.MIN_IMAGE_PAYLOAD_CHARS:
            raise HTTPException(status_code=400, detail="Image too small.")
        image_bytes = decode_image_data(data)
    except InvalidImagePayload as e:
        raise HTTPException(status_code=400, detail=str(e))

    caller = f"user {profile.id}" if profile is not None else "guest"
    logger.info(f"Processing generation for {caller} with {provider.name}")

    try:
        result = await run_in_threadpool(provider.edit_image, image_bytes, mime_type, prompt)
    except ProviderError as e:
        logger.error(f"Generation failed for {caller}: {e.kind.value} {e.detail}")
        raise HTTPException(status_code=e.status_code, detail=e.user_message)
    except Exception as e:
        logger.exception(f"Unexpected generation error for {caller}: {str(e)}")
        raise HTTPException(status_code=500, detail=ERROR_RESPONSES[ProviderErrorKind.UNKNOWN][1])

    generated = to_data_uri(result.mime_type or mime_type, result.image_base64)
    logger.info(f"AI generation successful for {caller}")

    image_id = None
    credits_remaining = None
    if profile is not None:
        settle_identified(db, profile, is_free_preview)
        record = save_image_record(db, profile, to_data_uri(mime_type, data), generated, prompt, is_free_preview)
        image_id = str(record.id) if record else None
        try:
            db.refresh(profile)
            credits_remaining = profile.credits
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not read balance for user {profile.id}: {str(e)}")
    else:
        try:
            record_guest_preview(db, guest)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record guest preview for {guest}: {str(e)}")

    return {
        "success": True,
        "image": generated,
        "message": result.text or "Transformation successful",
        "imageId": image_id,
        "isFreePreview": is_free_preview,
        "isUnlocked": not is_free_preview if profile is not None else False,
        "creditsRemaining": credits_remaining,
    }
