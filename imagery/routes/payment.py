from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.middleware.auth import get_current_user
from imagery.models.image_record import ImageRecord
from imagery.models.profile import Profile
from imagery.schemas import CheckoutSessionRequest, PaymentIntentRequest, VerifyCheckoutRequest
from imagery.services.checkout import (
    UnknownAmountError,
    cancel_subscription,
    find_profile,
    parse_uuid,
    reconcile_payment,
)
from imagery.services.pricing import get_plan
from imagery.services.stripe_service import (
    PaymentProviderError,
    WebhookSignatureError,
    read_metadata,
    to_checkout_session,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def get_gateway(request: Request):
    gateway = request.app.state.payment_gateway
    if gateway is None:
        logger.error("Stripe settings are missing")
        raise HTTPException(status_code=500, detail="Server configuration error: payments are not configured.")
    return gateway


@router.post("/verify-checkout")
async def verify_checkout(
    body: VerifyCheckoutRequest,
    gateway=Depends(get_gateway),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not body.session_id:
        raise HTTPException(status_code=400, detail="Invalid request")

    logger.info(f"Verifying checkout session {body.session_id} for user {current_user.id}")
    try:
        session = await run_in_threadpool(gateway.retrieve_checkout_session, body.session_id)
    except PaymentProviderError:
        raise HTTPException(status_code=502, detail="Verification failed")

    owner = session.metadata.get("user_id")
    if owner and owner != str(current_user.id):
        logger.warning(f"Session {session.id} belongs to {owner}, not {current_user.id}")
        raise HTTPException(status_code=403, detail="This checkout session belongs to another account.")

    logger.info(f"Payment status: {session.payment_status}")
    if session.payment_status != "paid":
        raise HTTPException(status_code=400, detail="Not paid")

    # The client reference carries the image to unlock unless it is the user id
    image_id = body.image_id
    if not image_id and session.client_reference_id and session.client_reference_id != str(current_user.id):
        image_id = session.client_reference_id

    try:
        result = reconcile_payment(
            db,
            current_user,
            reference=session.id,
            kind="checkout",
            amount=session.amount_total,
            currency=session.currency,
            customer_id=session.customer,
            image_id=image_id,
        )
    except UnknownAmountError:
        raise HTTPException(status_code=400, detail="Unrecognized purchase amount.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving credits: {str(e)}")
        raise HTTPException(status_code=500, detail="Verification failed")

    return {
        "success": True,
        "addedCredits": result.added_credits,
        "credits": result.credits,
        "plan": result.plan,
        "clientReferenceId": session.client_reference_id,
        "unlockedImageId": result.unlocked_image_id,
        "alreadyProcessed": result.already_processed,
    }


@router.post("/create-checkout-session")
async def create_checkout_session(
    body: CheckoutSessionRequest,
    request: Request,
    gateway=Depends(get_gateway),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan = get_plan(body.plan_id)
    if plan is None:
        raise HTTPException(status_code=400, detail="Unknown plan")

    client_reference_id = str(current_user.id)
    if body.image_id:
        image_uuid = parse_uuid(body.image_id)
        image = db.get(ImageRecord, image_uuid) if image_uuid else None
        if image is None or image.user_id != current_user.id:
            raise HTTPException(status_code=404, detail="Image not found")
        client_reference_id = str(image.id)

    frontend_url = request.app.state.settings.FRONTEND_URL
    logger.info(f"Creating checkout session for user {current_user.id}, plan {plan.id.value}")
    try:
        session = await run_in_threadpool(
            gateway.create_checkout_session,
            plan,
            user_id=str(current_user.id),
            email=current_user.email,
            customer_id=current_user.stripe_customer_id,
            client_reference_id=client_reference_id,
            success_url=f"{frontend_url}/#/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{frontend_url}/#/pricing",
        )
    except PaymentProviderError as e:
        raise HTTPException(status_code=502, detail=f"Payment provider error: {str(e)}")

    if not current_user.stripe_customer_id and session.customer:
        current_user.stripe_customer_id = session.customer
        db.commit()
        logger.info(f"Customer ID saved: {session.customer}")

    return {"sessionId": session.id, "url": session.url}


@router.post("/create-payment-intent")
async def create_payment_intent(
    body: PaymentIntentRequest,
    request: Request,
    gateway=Depends(get_gateway),
    current_user: Profile = Depends(get_current_user),
):
    plan = get_plan(body.plan_id)
    if plan is None:
        raise HTTPException(status_code=400, detail="Unknown plan")
    if plan.is_subscription:
        raise HTTPException(status_code=400, detail="Subscriptions must be purchased through checkout")

    try:
        intent = await run_in_threadpool(
            gateway.create_payment_intent,
            plan,
            user_id=str(current_user.id),
            customer_id=current_user.stripe_customer_id,
        )
    except PaymentProviderError as e:
        raise HTTPException(status_code=502, detail=f"Payment provider error: {str(e)}")

    return {
        "clientSecret": intent["client_secret"],
        "amount": plan.amount,
        "credits": plan.credits,
        "publishableKey": request.app.state.settings.STRIPE_PUBLIC_KEY,
    }


def handle_checkout_completed(db: Session, obj) -> None:
    session = to_checkout_session(obj)
    if session.payment_status != "paid":
        logger.info(f"Checkout session {session.id} not paid yet ({session.payment_status})")
        return

    profile = find_profile(
        db,
        user_id=session.metadata.get("user_id"),
        client_reference_id=session.client_reference_id,
        customer_id=session.customer,
    )
    if profile is None:
        logger.error(f"No profile found for checkout session {session.id}")
        return

    image_id = session.client_reference_id if session.client_reference_id != str(profile.id) else None
    try:
        reconcile_payment(
            db,
            profile,
            reference=session.id,
            kind="checkout",
            amount=session.amount_total,
            currency=session.currency,
            customer_id=session.customer,
            image_id=image_id,
        )
    except UnknownAmountError as e:
        logger.error(f"Checkout session {session.id} not credited: {str(e)}")


def handle_payment_intent_succeeded(db: Session, obj) -> None:
    metadata = read_metadata(obj)
    # Intents created by checkout sessions carry no user and are credited there
    if not metadata.get("user_id"):
        return

    profile = find_profile(db, user_id=metadata["user_id"])
    if profile is None:
        logger.error(f"No profile found for payment intent {obj.id}")
        return

    amount = getattr(obj, "amount_received", None) or getattr(obj, "amount", None)
    try:
        reconcile_payment(
            db,
            profile,
            reference=obj.id,
            kind="payment_intent",
            amount=amount,
            currency=getattr(obj, "currency", None),
            customer_id=getattr(obj, "customer", None),
        )
    except UnknownAmountError as e:
        logger.error(f"Payment intent {obj.id} not credited: {str(e)}")


def handle_invoice_paid(db: Session, obj) -> None:
    # The first invoice of a subscription is credited through its checkout session
    if getattr(obj, "billing_reason", None) != "subscription_cycle":
        return

    profile = find_profile(db, customer_id=getattr(obj, "customer", None))
    if profile is None:
        logger.error(f"No profile found for invoice {obj.id}")
        return

    try:
        reconcile_payment(
            db,
            profile,
            reference=obj.id,
            kind="invoice",
            amount=getattr(obj, "amount_paid", None),
            currency=getattr(obj, "currency", None),
        )
    except UnknownAmountError as e:
        logger.error(f"Invoice {obj.id} not credited: {str(e)}")


def handle_subscription_deleted(db: Session, obj) -> None:
    profile = find_profile(db, customer_id=getattr(obj, "customer", None))
    if profile is None:
        logger.error(f"No profile found for subscription {obj.id}")
        return
    cancel_subscription(db, profile)


WEBHOOK_HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "checkout.session.async_payment_succeeded": handle_checkout_completed,
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "invoice.paid": handle_invoice_paid,
    "customer.subscription.deleted": handle_subscription_deleted,
}


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    gateway=Depends(get_gateway),
    db: Session = Depends(get_db),
):
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        event = gateway.construct_event(payload, sig_header)
    except WebhookSignatureError as e:
        logger.error(f"Error constructing Stripe event: {str(e)}")
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    logger.info(f"Stripe event received: {event.type}")
    handler = WEBHOOK_HANDLERS.get(event.type)
    if handler is None:
        return {"status": "success"}

    try:
        handler(db, event.object)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error handling {event.type}: {str(e)}")
        # Non-2xx makes Stripe retry the delivery
        raise HTTPException(status_code=500, detail="Webhook handling failed")

    return {"status": "success"}
