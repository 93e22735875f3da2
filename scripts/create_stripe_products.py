import os
import sys
import logging

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import stripe

from imagery.config.settings import Settings
from imagery.services.pricing import PLANS

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_stripe_products():
    """Create a catalog product and price per plan.

    Checkout sends inline prices, so this is only needed for the Stripe
    dashboard and customer portal.
    """
    settings = Settings()
    client = stripe.StripeClient(settings.STRIPE_SECRET_KEY)
    created = {}
    for plan in PLANS:
        try:
            product = client.products.create(params={
                "name": f"Upscale Imagery AI - {plan.name}",
                "description": f"{plan.credits} image edit credits",
                "metadata": {"plan_id": plan.id.value},
            })
            price_params = {
                "product": product.id,
                "unit_amount": plan.amount,
                "currency": settings.STRIPE_CURRENCY,
            }
            if plan.is_subscription:
                price_params["recurring"] = {"interval": "month"}
            price = client.prices.create(params=price_params)

            logger.info(f"{plan.id.value}: product {product.id}, price {price.id}")
            created[plan.id.value] = price.id
        except stripe.StripeError as e:
            logger.error(f"Error creating product for {plan.id.value}: {str(e)}")
    return created

if __name__ == "__main__":
    create_stripe_products()
