"""
Cas d'usage 'orders': initiation de commande, finalisation idempotente du paiement,
historique client et transitions de statut du back-office.

Séquence du tunnel:
  initiate_order (pending/pending, aucun effet sur stock ni panier)
  -> payments.create_payment_session
  -> finalize_order (client, webhook ou simulé), qui applique une seule fois:
     paid/processing, décrément de stock, vidage du panier.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List
import logging

from boutique.orders import repository
from boutique.orders.models import (
    FinalizeOutcome,
    FinalizeResult,
    Order,
    OrderStatus,
    PaymentStatus,
    ShippingInfo,
    can_transition_payment,
    can_transition_status,
)
from boutique.catalog import repository as catalog_repository
from boutique.cart import repository as cart_repository
from boutique.cart.models import CartLine
from boutique.errors import (
    OrderIntrouvable,
    ProduitIndisponible,
    ServiceIndisponible,
    StockInsuffisant,
    TransitionInvalide,
    ValidationMetier,
)
from boutique.utils.security import CurrentUser

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
FINALIZE_ATTEMPTS = 3
PAYABLE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)

# module boutique.orders.service
def aggregate_quantities(lines: Iterable[CartLine]) -> Dict[str, int]:
    """
    Agrège les lignes en {product_id: quantité totale}, ordre d'apparition conservé.
    - Ignore les lignes invalides (id vide, quantité <= 0)
    - ValidationMetier si aucune ligne valide
    """
    quantities: Dict[str, int] = {}
    for line in lines or []:
        product_id = str(line.product_id or "").strip()
        qty = int(line.quantity or 0)
        if not product_id or qty <= 0:
            continue
        quantities[product_id] = quantities.get(product_id, 0) + qty
    if not quantities:
        raise ValidationMetier("Votre panier est vide")
    return quantities

def initiate_order(user: CurrentUser, lines: List[CartLine], shipping: ShippingInfo) -> Order:
    """
    Crée une commande pending/pending à partir des lignes du panier.
    - Vérifie disponibilité et stock de chaque produit AVANT toute écriture
    - total = somme(prix unitaire courant x quantité), prix figé dans order_items.unit_price
    - Aucun décrément de stock ni vidage du panier ici
    """
    quantities = aggregate_quantities(lines)
    products = catalog_repository.get_products_by_ids(quantities.keys())
    if products is None:
        raise ServiceIndisponible()

    item_rows = []
    total = Decimal("0")
    for product_id, qty in quantities.items():
        product = products.get(product_id)
        if product is None or not product.is_available:
            name = product.name if product else product_id
            raise ProduitIndisponible(f"{name} n'est plus disponible")
        if qty > product.stock_quantity:
            raise StockInsuffisant(product.id, product.name, qty, product.stock_quantity)
        unit_price = product.price.quantize(CENT, rounding=ROUND_HALF_UP)
        total += unit_price * qty
        item_rows.append({"product_id": product_id, "quantity": qty, "unit_price": str(unit_price)})

    payload = {
        "user_id": user.id,
        "total_amount": str(total.quantize(CENT)),
        "status": OrderStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
        **shipping.to_row(),
    }
    order = repository.insert_order(payload)
    try:
        items = repository.insert_order_items(order.id, item_rows)
    except ServiceIndisponible:
        # Pas de commande sans lignes
        repository.delete_order(order.id)
        raise
    logger.info("orders.initiate order_id=%s user_id=%s total=%s lines=%s", order.id, user.id, order.total_amount, len(items))
    return order.model_copy(update={"items": items})

def create_order_from_cart(user: CurrentUser, shipping: ShippingInfo) -> Order:
    lines = cart_repository.list_cart_items(user.id, user.token)
    if lines is None:
        raise ServiceIndisponible()
    return initiate_order(user, lines, shipping)

def _apply_payment_side_effects(order: Order) -> None:
    for item in order.items:
        if not catalog_repository.decrement_stock(item.product_id, item.quantity):
            # Paiement encaissé: la commande reste payée, l'écart de stock est traité par l'admin
            logger.warning(
                "orders.finalize stock not decremented order_id=%s product_id=%s quantity=%s",
                order.id, item.product_id, item.quantity,
            )
    if not cart_repository.clear_cart(order.user_id):
        logger.warning("orders.finalize cart not cleared order_id=%s user_id=%s", order.id, order.user_id)

def finalize_order(order_id: str, *, source: str, payment_reference: str) -> FinalizeResult:
    """
    Finalisation idempotente d'un paiement réussi, partagée par la confirmation client,
    le webhook et le paiement simulé.

    La garde est une mise à jour conditionnelle sur l'état lu (payment_status et status):
    seul l'appelant qui l'emporte applique les effets (stock, panier). Les suivants
    obtiennent ALREADY_FINALIZED. Une commande annulée pendant l'attente est marquée
    payée sans effet (PAID_ON_CANCELLED, remboursement manuel).
    """
    for _ in range(FINALIZE_ATTEMPTS):
        order = repository.get_order(order_id)
        if order is None:
            raise OrderIntrouvable()
        if order.payment_status not in PAYABLE_STATUSES:
            logger.info("orders.finalize already done order_id=%s source=%s payment_status=%s", order_id, source, order.payment_status.value)
            return FinalizeResult(outcome=FinalizeOutcome.ALREADY_FINALIZED, order=order)

        # payment_reference: colonne ajoutée par supabase/migrations/*_orders_payment_reference.sql
        changes = {"payment_status": PaymentStatus.PAID.value, "payment_reference": payment_reference}
        if order.status == OrderStatus.PENDING:
            changes["status"] = OrderStatus.PROCESSING.value
        claimed = repository.transition_order(
            order_id,
            changes,
            expected={"payment_status": order.payment_status.value, "status": order.status.value},
        )
        if claimed is None:
            # Un autre chemin a modifié la commande entre la lecture et l'écriture
            continue

        updated = order.model_copy(update={
            "payment_status": PaymentStatus.PAID,
            "payment_reference": payment_reference,
            "status": OrderStatus(changes.get("status", order.status.value)),
        })
        if order.status == OrderStatus.CANCELLED:
            logger.warning("orders.finalize payment on cancelled order order_id=%s source=%s reference=%s", order_id, source, payment_reference)
            return FinalizeResult(outcome=FinalizeOutcome.PAID_ON_CANCELLED, order=updated)

        _apply_payment_side_effects(order)
        logger.info("orders.finalize done order_id=%s source=%s reference=%s", order_id, source, payment_reference)
        return FinalizeResult(outcome=FinalizeOutcome.FINALIZED, order=updated)

    order = repository.get_order(order_id)
    if order is None:
        raise OrderIntrouvable()
    logger.warning("orders.finalize gave up after concurrent updates order_id=%s source=%s", order_id, source)
    return FinalizeResult(outcome=FinalizeOutcome.ALREADY_FINALIZED, order=order)

def mark_payment_failed(order_id: str) -> bool:
    """payment_status -> failed, uniquement depuis pending. Ni status, ni stock, ni panier ne bougent."""
    row = repository.transition_order(
        order_id,
        {"payment_status": PaymentStatus.FAILED.value},
        expected={"payment_status": PaymentStatus.PENDING.value},
    )
    if row is None:
        logger.info("orders.mark_payment_failed no-op order_id=%s", order_id)
        return False
    logger.info("orders.mark_payment_failed order_id=%s", order_id)
    return True

def list_orders(user: CurrentUser) -> List[Order]:
    return repository.list_user_orders(user.id)

def get_user_order(user: CurrentUser, order_id: str) -> Order:
    order = repository.get_order(order_id)
    if order is None or order.user_id != user.id:
        raise OrderIntrouvable()
    return order

def update_order_status(order_id: str, target: OrderStatus) -> Order:
    """Transition manuelle (back-office), contrôlée par ORDER_STATUS_TRANSITIONS."""
    order = repository.get_order(order_id)
    if order is None:
        raise OrderIntrouvable()
    if not can_transition_status(order.status, target):
        raise TransitionInvalide(f"Transition {order.status.value} -> {target.value} non autorisée")
    row = repository.transition_order(order_id, {"status": target.value}, expected={"status": order.status.value})
    if row is None:
        raise TransitionInvalide("La commande a été modifiée entre-temps, rechargez-la")
    return order.model_copy(update={"status": target})

def refund_order(order_id: str) -> Order:
    """Enregistre un remboursement effectué côté Stripe: paid -> refunded."""
    order = repository.get_order(order_id)
    if order is None:
        raise OrderIntrouvable()
    if not can_transition_payment(order.payment_status, PaymentStatus.REFUNDED):
        raise TransitionInvalide(f"Remboursement impossible (paiement {order.payment_status.value})")
    row = repository.transition_order(
        order_id,
        {"payment_status": PaymentStatus.REFUNDED.value},
        expected={"payment_status": PaymentStatus.PAID.value},
    )
    if row is None:
        raise TransitionInvalide("La commande a été modifiée entre-temps, rechargez-la")
    return order.model_copy(update={"payment_status": PaymentStatus.REFUNDED})

def order_to_json(order: Order) -> dict:
    data = order.model_dump(mode="json")
    data["items_total"] = str(order.items_total)
    return data