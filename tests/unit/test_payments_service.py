from decimal import Decimal
import pytest
from fastapi import HTTPException

from boutique.cart.models import CartLine
from boutique.errors import PaiementIndisponible, PaiementNonConfigure, PaiementRefuse
from boutique.orders import service as orders_service
from boutique.orders.models import ShippingInfo
from boutique.payments import service as payments_service
from boutique.payments.metadata import build_intent_metadata, extract_order_id

SHIPPING = ShippingInfo(address="1 place Vendôme", city="Paris", postal_code="75001")


def _pending_order(store, user):
    store.add_product("p2", "Diadème", "1200.00", stock=5)
    store.put_in_cart(user.id, "p2", 1)
    return orders_service.initiate_order(user, [CartLine(product_id="p2", quantity=1)], SHIPPING)


@pytest.mark.parametrize("amount,cents", [
    (Decimal("1200.00"), 120000),
    (Decimal("19.99"), 1999),
    (Decimal("0.005"), 1),
    (Decimal("10.004"), 1000),
])
def test_to_minor_units(amount, cents):
    assert payments_service.to_minor_units(amount) == cents


def test_metadata_carries_order_and_user(store, user):
    order = _pending_order(store, user)
    assert build_intent_metadata(order) == {"orderId": order.id, "userId": user.id, "itemCount": "1"}


def test_intent_metadata_reaches_stripe(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    assert fake_stripe.intents[session["payment_intent_id"]]["metadata"] == {
        "orderId": order.id,
        "userId": user.id,
        "itemCount": "1",
    }


def test_extract_order_id_fallback():
    assert extract_order_id({"metadata": {"orderId": "o1"}}) == "o1"
    assert extract_order_id({"metadata": {"order_id": "o2"}}) == "o2"
    assert extract_order_id({"metadata": {}}) is None
    assert extract_order_id({}) is None


def test_create_payment_session(fake_stripe):
    session = payments_service.create_payment_session(amount=Decimal("1200.00"), order_id="o1")
    assert session["amount"] == 120000
    assert session["currency"] == "eur"
    assert session["client_secret"].startswith(session["payment_intent_id"])
    assert fake_stripe.intents[session["payment_intent_id"]]["metadata"]["orderId"] == "o1"
    assert fake_stripe.idempotency_keys == ["order-o1-120000"]


def test_create_payment_session_unconfigured():
    with pytest.raises(PaiementNonConfigure):
        payments_service.create_payment_session(amount=Decimal("10.00"), order_id="o1")


def test_create_payment_session_processor_failure(fake_stripe):
    fake_stripe.fail_create = True
    with pytest.raises(PaiementIndisponible):
        payments_service.create_payment_session(amount=Decimal("10.00"), order_id="o1")


def test_checkout_failure_leaves_order_pending(store, user, fake_stripe):
    store.add_product("p1", "Bague", "10.00", stock=1)
    store.put_in_cart(user.id, "p1", 1)
    fake_stripe.fail_create = True

    with pytest.raises(PaiementIndisponible):
        payments_service.start_checkout(user, SHIPPING)

    (row,) = store.orders.values()
    assert (row["status"], row["payment_status"]) == ("pending", "pending")
    assert store.stock("p1") == 1
    assert store.carts[user.id]


def test_simulated_checkout(store, user):
    store.add_product("p2", "Diadème", "1200.00", stock=5)
    store.put_in_cart(user.id, "p2", 1)

    result = payments_service.start_checkout(user, SHIPPING)

    assert result["simulated"] is True
    order = result["order"]
    assert (order.status.value, order.payment_status.value) == ("processing", "paid")
    assert order.payment_reference == "simulated"
    assert store.stock("p2") == 4
    assert user.id not in store.carts


def test_confirm_payment_succeeded(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    fake_stripe.set_status(session["payment_intent_id"], "succeeded")

    result = payments_service.confirm_payment(user, order.id, session["payment_intent_id"])

    assert result["status"] == "succeeded"
    assert result["outcome"] == "finalized"
    assert store.order_row(order.id)["payment_reference"] == session["payment_intent_id"]
    assert store.stock("p2") == 4


def test_confirm_payment_server_side_with_method(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    result = payments_service.confirm_payment(user, order.id, session["payment_intent_id"], payment_method_id="pm_card_visa")
    assert result["outcome"] == "finalized"


def test_confirm_payment_card_declined(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)

    with pytest.raises(PaiementRefuse) as exc:
        payments_service.confirm_payment(user, order.id, session["payment_intent_id"], payment_method_id=fake_stripe.DECLINED_METHOD)

    assert exc.value.status_code == 402
    assert "refusée" in exc.value.detail
    row = store.order_row(order.id)
    assert (row["status"], row["payment_status"]) == ("pending", "pending")
    assert store.stock("p2") == 5
    assert store.carts[user.id]


def test_confirm_payment_still_processing(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    fake_stripe.set_status(session["payment_intent_id"], "requires_action")

    result = payments_service.confirm_payment(user, order.id, session["payment_intent_id"])
    assert result["status"] == "requires_action"
    assert result["client_secret"] == session["client_secret"]
    assert store.order_row(order.id)["payment_status"] == "pending"


def test_confirm_payment_rejects_foreign_intent(store, user, fake_stripe):
    order = _pending_order(store, user)
    other = payments_service.create_payment_session(amount=Decimal("5.00"), order_id="another-order")
    fake_stripe.set_status(other["payment_intent_id"], "succeeded")

    with pytest.raises(HTTPException) as exc:
        payments_service.confirm_payment(user, order.id, other["payment_intent_id"])
    assert exc.value.status_code == 400
    assert store.order_row(order.id)["payment_status"] == "pending"


def test_confirm_payment_other_user(store, user, fake_stripe):
    order = _pending_order(store, user)
    store.order_row(order.id)["user_id"] = "intruder"
    with pytest.raises(HTTPException) as exc:
        payments_service.confirm_payment(user, order.id, "pi_1")
    assert exc.value.status_code == 403


def test_retry_payment_refused_once_paid(store, user, fake_stripe):
    order = _pending_order(store, user)
    orders_service.finalize_order(order.id, source="client", payment_reference="pi_0")
    with pytest.raises(HTTPException) as exc:
        payments_service.retry_payment(user, order.id)
    assert exc.value.status_code == 409


# --- webhook ---

def test_webhook_success_is_idempotent(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    fake_stripe.set_status(session["payment_intent_id"], "succeeded")
    event = fake_stripe.event("payment_intent.succeeded", session["payment_intent_id"])

    first = payments_service.handle_webhook_event(event)
    snapshot = dict(store.order_row(order.id))
    second = payments_service.handle_webhook_event(event)

    assert first == {"received": True, "status": "finalized"}
    assert second == {"received": True, "status": "already_finalized"}
    row = store.order_row(order.id)
    assert (row["status"], row["payment_status"]) == (snapshot["status"], snapshot["payment_status"])
    assert store.stock("p2") == 4
    assert store.cleared == [user.id]


def test_webhook_payment_failed(store, user, fake_stripe):
    order = _pending_order(store, user)
    session = payments_service.retry_payment(user, order.id)
    event = fake_stripe.event("payment_intent.payment_failed", session["payment_intent_id"])

    assert payments_service.handle_webhook_event(event)["status"] == "failed"
    assert payments_service.handle_webhook_event(event)["status"] == "unchanged"
    row = store.order_row(order.id)
    assert (row["status"], row["payment_status"]) == ("pending", "failed")
    assert store.stock("p2") == 5


def test_webhook_ignores_other_events(store):
    assert payments_service.handle_webhook_event({"type": "charge.refunded", "object": {}})["status"] == "ignored"
    assert payments_service.handle_webhook_event({"type": "payment_intent.succeeded", "object": {"metadata": {}}})["status"] == "ignored"


def test_webhook_unknown_order(store):
    event = {"type": "payment_intent.succeeded", "object": {"id": "pi_x", "metadata": {"orderId": "ghost"}}}
    assert payments_service.handle_webhook_event(event) == {"received": True, "status": "unknown_order"}
