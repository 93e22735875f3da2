from dataclasses import dataclass, field
from typing import Any

import stripe

from imagery.services.pricing import PricingPlan
import logging

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    pass


class WebhookSignatureError(Exception):
    pass


@dataclass
class CheckoutSession:
    id: str
    payment_status: str | None
    amount_total: int | None
    currency: str | None = None
    client_reference_id: str | None = None
    customer: str | None = None
    mode: str | None = None
    url: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass
class WebhookEvent:
    type: str
    object: Any


def read_metadata(obj) -> dict:
    raw = getattr(obj, "metadata", None)
    if not raw:
        return {}
    keys = ("user_id", "plan_id", "image_id")
    return {key: getattr(raw, key, None) for key in keys if getattr(raw, key, None) is not None}


def to_checkout_session(obj) -> CheckoutSession:
    return CheckoutSession(
        id=obj.id,
        payment_status=getattr(obj, "payment_status", None),
        amount_total=getattr(obj, "amount_total", None),
        currency=getattr(obj, "currency", None),
        client_reference_id=getattr(obj, "client_reference_id", None),
        customer=getattr(obj, "customer", None),
        mode=getattr(obj, "mode", None),
        url=getattr(obj, "url", None),
        metadata=read_metadata(obj),
    )


class StripeGateway:
    """Thin wrapper over the Stripe SDK used by the payment routes."""

    def __init__(self, secret_key: str, webhook_secret: str | None = None, currency: str = "usd"):
        self.client = stripe.StripeClient(secret_key)
        self.webhook_secret = webhook_secret
        self.currency = currency

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        try:
            session = self.client.checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving session {session_id}: {str(e)}")
            raise PaymentProviderError(str(e)) from e
        return to_checkout_session(session)

    def create_checkout_session(
        self,
        plan: PricingPlan,
        *,
        user_id: str,
        email: str | None,
        customer_id: str | None,
        client_reference_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        price_data = {
            "currency": self.currency,
            "product_data": {"name": f"Upscale Imagery AI - {plan.name}"},
            "unit_amount": plan.amount,
        }
        if plan.is_subscription:
            price_data["recurring"] = {"interval": "month"}

        params = {
            "line_items": [{"price_data": price_data, "quantity": 1}],
            "mode": "subscription" if plan.is_subscription else "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "metadata": {"user_id": user_id, "plan_id": plan.id.value},
        }
        # Reuse the customer when we know it, otherwise let Stripe create one
        if customer_id:
            params["customer"] = customer_id
        else:
            if email:
                params["customer_email"] = email
            if not plan.is_subscription:
                params["customer_creation"] = "always"

        try:
            session = self.client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {str(e)}")
            raise PaymentProviderError(str(e)) from e
        return to_checkout_session(session)

    def create_payment_intent(self, plan: PricingPlan, *, user_id: str, customer_id: str | None) -> dict:
        params = {
            "amount": plan.amount,
            "currency": self.currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {"user_id": user_id, "plan_id": plan.id.value},
            "description": f"{plan.credits} image edit credits",
        }
        if customer_id:
            params["customer"] = customer_id
        try:
            intent = self.client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise PaymentProviderError(str(e)) from e
        return {"id": intent.id, "client_secret": intent.client_secret}

    def construct_event(self, payload: bytes, sig_header: str | None) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(str(e)) from e
        return WebhookEvent(type=event.type, object=event.data.object)


def build_gateway(settings) -> StripeGateway | None:
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY is not configured, payment routes are disabled")
        return None
    return StripeGateway(
        settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        currency=settings.STRIPE_CURRENCY,
    )
