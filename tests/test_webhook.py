import json

from imagery.models.payment import Payment
from tests.test_data import auth_header, create_test_profile, fresh_profile


def send_event(client, event_type, obj, signature="valid-signature"):
    payload = json.dumps({"type": event_type, "data": {"object": obj}})
    return client.post(
        "/api/stripe-webhook",
        content=payload,
        headers={"Content-Type": "application/json", "Stripe-Signature": signature},
    )


def checkout_object(session_id, amount, **fields):
    obj = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": amount,
        "currency": "usd",
    }
    obj.update(fields)
    return obj


def test_invalid_signature_is_rejected(client, db):
    profile = create_test_profile(db, credits=0)
    obj = checkout_object("cs_test_forged", 3499, metadata={"user_id": str(profile.id)})

    response = send_event(client, "checkout.session.completed", obj, signature="t=1,v1=forged")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid webhook signature"
    assert fresh_profile(db, profile.id).credits == 0


def test_checkout_completed_grants_credits(client, db):
    profile = create_test_profile(db, credits=1)
    obj = checkout_object("cs_test_hook", 999, customer="cus_hook", metadata={"user_id": str(profile.id)})

    response = send_event(client, "checkout.session.completed", obj)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    updated = fresh_profile(db, profile.id)
    assert updated.credits == 26
    assert updated.plan == "BASIC"
    assert updated.stripe_customer_id == "cus_hook"


def test_webhook_and_verification_credit_once(client, db, gateway):
    profile = create_test_profile(db, credits=0)
    gateway.add_session("cs_test_both", 399, metadata={"user_id": str(profile.id)})
    obj = checkout_object("cs_test_both", 399, metadata={"user_id": str(profile.id)})

    send_event(client, "checkout.session.completed", obj)
    send_event(client, "checkout.session.completed", obj)
    response = client.post(
        "/api/verify-checkout",
        json={"sessionId": "cs_test_both"},
        headers=auth_header(profile.id),
    )

    assert response.json()["alreadyProcessed"] is True
    assert fresh_profile(db, profile.id).credits == 5


def test_checkout_found_by_client_reference(client, db):
    profile = create_test_profile(db, credits=0)
    obj = checkout_object("cs_test_ref", 399, client_reference_id=str(profile.id))

    send_event(client, "checkout.session.completed", obj)

    assert fresh_profile(db, profile.id).credits == 5


def test_unpaid_checkout_is_ignored(client, db):
    profile = create_test_profile(db, credits=0)
    obj = checkout_object("cs_test_async", 399, payment_status="unpaid", metadata={"user_id": str(profile.id)})

    response = send_event(client, "checkout.session.completed", obj)

    assert response.status_code == 200
    assert fresh_profile(db, profile.id).credits == 0
    assert db.get(Payment, "cs_test_async") is None


def test_async_payment_success_grants_credits(client, db):
    profile = create_test_profile(db, credits=0)
    obj = checkout_object("cs_test_async_ok", 399, metadata={"user_id": str(profile.id)})

    send_event(client, "checkout.session.async_payment_succeeded", obj)

    assert fresh_profile(db, profile.id).credits == 5


def test_checkout_for_unknown_user_is_acknowledged(client):
    obj = checkout_object("cs_test_orphan", 399, metadata={"user_id": "3f1c2d9e-0000-4000-8000-000000000000"})

    response = send_event(client, "checkout.session.completed", obj)

    assert response.status_code == 200


def test_payment_intent_with_user_grants_credits(client, db):
    profile = create_test_profile(db, credits=0)
    obj = {
        "id": "pi_test_elements",
        "amount": 399,
        "amount_received": 399,
        "currency": "usd",
        "metadata": {"user_id": str(profile.id), "plan_id": "NONE"},
    }

    send_event(client, "payment_intent.succeeded", obj)

    assert fresh_profile(db, profile.id).credits == 5
    assert db.get(Payment, "pi_test_elements").kind == "payment_intent"


def test_payment_intent_without_user_is_ignored(client, db):
    profile = create_test_profile(db, credits=0, stripe_customer_id="cus_checkout")
    obj = {"id": "pi_test_from_checkout", "amount": 399, "currency": "usd", "customer": "cus_checkout", "metadata": {}}

    send_event(client, "payment_intent.succeeded", obj)

    assert fresh_profile(db, profile.id).credits == 0


def test_subscription_renewal_grants_monthly_credits(client, db):
    profile = create_test_profile(db, credits=3, plan="PRO", stripe_customer_id="cus_renew")
    obj = {
        "id": "in_test_cycle",
        "customer": "cus_renew",
        "amount_paid": 1999,
        "currency": "usd",
        "billing_reason": "subscription_cycle",
    }

    send_event(client, "invoice.paid", obj)
    send_event(client, "invoice.paid", obj)

    assert fresh_profile(db, profile.id).credits == 53


def test_first_subscription_invoice_is_left_to_checkout(client, db):
    profile = create_test_profile(db, credits=0, stripe_customer_id="cus_new_sub")
    obj = {
        "id": "in_test_create",
        "customer": "cus_new_sub",
        "amount_paid": 999,
        "currency": "usd",
        "billing_reason": "subscription_create",
    }

    send_event(client, "invoice.paid", obj)

    assert fresh_profile(db, profile.id).credits == 0


def test_subscription_deleted_resets_plan(client, db):
    profile = create_test_profile(db, credits=40, plan="ELITE", stripe_customer_id="cus_cancel")

    send_event(client, "customer.subscription.deleted", {"id": "sub_test", "customer": "cus_cancel"})

    updated = fresh_profile(db, profile.id)
    assert updated.plan == "NONE"
    assert updated.credits == 40


def test_unhandled_event_type_is_acknowledged(client):
    response = send_event(client, "customer.created", {"id": "cus_test"})

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
