import logging
import random
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from marketplace.core import config
from marketplace.core.errors import Forbidden, InvalidState, NotFound, ValidationError
from marketplace.domain.actors import AccountStatus, Actor, Role
from marketplace.domain.state_machine import can_view, plan_transition
from marketplace.domain.status import OrderStatus, StatusVariant
from marketplace.models.catalog import DiscountType, Offer, Product
from marketplace.models.notification import NotificationType
from marketplace.models.order import Order, OrderItem, OrderStatusEvent
from marketplace.models.user import User
from marketplace.realtime.notifier import OrderNotifier
from marketplace.services.notification_service import admin_ids, record_notifications

log = logging.getLogger("order_service")

CENT = Decimal("0.01")

# Labels the delivery partner app sends in place of the enum values
ORDER_STATUS_LABELS = {
    "picked up": OrderStatus.PICKED,
    "on the way": OrderStatus.ON_THE_WAY,
    "on the way to customer": OrderStatus.ON_THE_WAY,
}

PAYMENT_METHOD_ALIASES = {
    "cash": "cash",
    "cod": "cash",
    "cashondelivery": "cash",
    "upi": "upi",
    "online": "online",
    "card": "online",
    "credit": "online",
    "debit": "online",
}


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_status(value) -> OrderStatus:
    """Unknown status literals are a validation error, not a permission one."""
    if isinstance(value, OrderStatus):
        return value
    key = str(value or "").strip().lower()
    try:
        return OrderStatus(key)
    except ValueError:
        pass
    status = ORDER_STATUS_LABELS.get(key)
    if status is None:
        raise ValidationError(f"Invalid status value: {value}")
    return status


def normalize_payment_method(value: str) -> str:
    method = PAYMENT_METHOD_ALIASES.get((value or "").strip().lower())
    if not method:
        raise ValidationError(f"Unsupported payment method: {value}")
    return method


def generate_order_number(now: datetime) -> str:
    """ORD-YYMMDD-NNNN with a random 4-digit suffix."""
    return f"ORD-{now:%y%m%d}-{random.randint(1000, 9999)}"


async def _allocate_order_number(now: datetime, conn) -> str:
    for _ in range(config.ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number(now)
        if not await Order.filter(order_number=candidate).using_db(conn).exists():
            return candidate
    raise RuntimeError("Could not allocate a unique order number")


def _as_aware(value: datetime) -> datetime:
    return value if timezone.is_aware(value) else timezone.make_aware(value)


def compute_discount(offer: Offer, subtotal: Decimal, now: datetime) -> Decimal:
    """Discount an offer grants on `subtotal`, or zero when it does not apply."""
    if not offer.is_active:
        return Decimal("0")
    if offer.valid_from and _as_aware(now) < _as_aware(offer.valid_from):
        return Decimal("0")
    if offer.valid_to and _as_aware(now) > _as_aware(offer.valid_to):
        return Decimal("0")
    if offer.min_order_value is not None and subtotal < offer.min_order_value:
        return Decimal("0")

    if offer.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * Decimal(offer.discount_value) / Decimal("100")
        if offer.max_discount is not None and discount > offer.max_discount:
            discount = Decimal(offer.max_discount)
    else:
        discount = Decimal(offer.discount_value)
    return _money(discount)


def price_order(subtotal: Decimal, discount: Decimal = Decimal("0")) -> Dict[str, Decimal]:
    """
    Financial breakdown at placement:
    final_amount = subtotal + delivery_fee + tax_amount - discount, never negative.
    """
    subtotal = _money(subtotal)
    delivery_fee = _money(config.DELIVERY_FEE)
    tax_amount = _money(subtotal * config.TAX_PERCENT / Decimal("100"))
    gross = subtotal + delivery_fee + tax_amount
    discount = min(_money(discount), gross)
    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "tax_amount": tax_amount,
        "discount": discount,
        "final_amount": gross - discount,
    }


async def place_order(
    actor: Actor,
    items: List[Dict],
    delivery_address: Dict,
    payment_method: str,
    notifier: OrderNotifier,
    offer_code: Optional[str] = None,
    delivery_instructions: Optional[str] = None,
) -> Order:
    """
    Creates the order, its line snapshots and the first timeline entry in one
    transaction, then announces it.
    """
    if actor.role != Role.CUSTOMER:
        raise Forbidden("Only customers can place orders")
    if not items:
        raise ValidationError("Order must contain items.")
    for item in items:
        if int(item["quantity"]) < 1:
            raise ValidationError("Item quantity must be at least 1.")
    method = normalize_payment_method(payment_method)

    now = timezone.now()
    async with in_transaction() as conn:
        product_ids = [UUID(str(item["product_id"])) for item in items]
        products = await Product.filter(id__in=product_ids, is_available=True).using_db(conn)
        product_map = {str(p.id): p for p in products}

        lines = []
        restaurants = set()
        subtotal = Decimal("0")
        for item in items:
            pid = str(item["product_id"])
            product = product_map.get(pid)
            if not product:
                raise ValidationError(f"Product {pid} not found or unavailable.")
            qty = int(item["quantity"])
            line_total = _money(product.price * qty)
            subtotal += line_total
            restaurants.add(product.restaurant_id)
            lines.append((product, qty, line_total))

        if len(restaurants) > 1:
            raise ValidationError("All items in an order must come from the same restaurant.")
        restaurant_id = restaurants.pop()

        offer = None
        discount = Decimal("0")
        if offer_code:
            offer = await Offer.get_or_none(code=offer_code).using_db(conn)
            if offer:
                discount = compute_discount(offer, subtotal, now)
            if not discount:
                log.info(f"Offer '{offer_code}' not applicable for customer {actor.id}")
                offer = None

        totals = price_order(subtotal, discount)
        order = await Order.create(
            order_number=await _allocate_order_number(now, conn),
            customer_id=actor.id,
            restaurant_id=restaurant_id,
            status=OrderStatus.PLACED,
            applied_offer=offer,
            applied_offer_code=offer.code if offer else None,
            delivery_address=delivery_address,
            delivery_instructions=delivery_instructions,
            payment_method=method,
            using_db=conn,
            **totals,
        )

        for product, qty, line_total in lines:
            await OrderItem.create(
                order=order,
                product_ref=product.id,
                name=product.name,
                unit_price=product.price,
                quantity=qty,
                line_total=line_total,
                using_db=conn,
            )

        await OrderStatusEvent.create(
            order=order,
            position=1,
            status=OrderStatus.PLACED,
            timestamp=now,
            using_db=conn,
        )
        await record_notifications(
            await admin_ids(conn),
            f"New order placed (Order {order.order_number})",
            conn,
            order_id=order.id,
        )
        await record_notifications(
            [restaurant_id] if restaurant_id else [],
            f"You have received a new order (Order {order.order_number})",
            conn,
            order_id=order.id,
        )

    log.info(f"Order {order.order_number} placed by customer {actor.id} for {order.final_amount}")
    await notifier.order_status_changed(order, now)
    return order


async def apply_transition(
    actor: Actor,
    order_id: UUID,
    target,
    notifier: OrderNotifier,
    note: Optional[str] = None,
) -> Order:
    """
    The single status-change routine used by HTTP and the WebSocket gateway.

    The order row is locked for the transaction and the write is conditional
    on the status that was read, so two racing requests on one order cannot
    both succeed: the loser gets InvalidState.
    """
    target = parse_status(target)

    async with in_transaction() as conn:
        order = await Order.filter(id=order_id).using_db(conn).select_for_update().first()
        if not order:
            raise NotFound("Order not found")

        now = timezone.now()
        plan = plan_transition(actor, order, target, now, note)
        if not plan.changed:
            log.info(f"Order {order.order_number} already {target.value}; nothing to record")
            return order

        updates = dict(plan.updates, updated_at=now)
        updated = await Order.filter(id=order.id, status=plan.previous).using_db(conn).update(**updates)
        if not updated:
            raise InvalidState("Order status changed while this request was processed")

        position = await OrderStatusEvent.filter(order_id=order.id).using_db(conn).count() + 1
        await OrderStatusEvent.create(
            order_id=order.id,
            position=position,
            status=plan.status,
            timestamp=now,
            note=note,
            using_db=conn,
        )
        for field, value in updates.items():
            setattr(order, field, value)

    log.info(f"Order {order.order_number}: {plan.previous.value} -> {plan.status.value} by {actor.role.value} {actor.id}")
    await notifier.order_status_changed(order, now)
    return order


async def cancel_order(actor: Actor, order_id: UUID, notifier: OrderNotifier, reason: Optional[str] = None) -> Order:
    """Cancellation path for customers (own order, early statuses) and admins."""
    if actor.role == Role.CUSTOMER:
        default_reason = "Cancelled by customer"
    elif actor.role == Role.ADMIN:
        default_reason = "Cancelled by admin"
    else:
        raise Forbidden("Only customers and admins can cancel orders")
    return await apply_transition(actor, order_id, OrderStatus.CANCELLED, notifier, note=reason or default_reason)


async def assign_delivery_partner(actor: Actor, order_id: UUID, partner_id: UUID, notifier: OrderNotifier) -> Order:
    if actor.role != Role.ADMIN:
        raise Forbidden("Only admins can assign delivery partners")

    partner = await User.get_or_none(id=partner_id)
    if not partner:
        raise NotFound("Delivery partner not found")
    if partner.role != Role.DELIVERY:
        raise ValidationError("User is not a delivery partner")
    if partner.status != AccountStatus.ACTIVE:
        raise ValidationError("Delivery partner is not active")

    async with in_transaction() as conn:
        order = await Order.filter(id=order_id).using_db(conn).select_for_update().first()
        if not order:
            raise NotFound("Order not found")
        if StatusVariant.from_wire(order.status).is_terminal:
            raise InvalidState(f"Order is already in a final state: {OrderStatus(order.status).value}")

        now = timezone.now()
        updated = await Order.filter(id=order.id, status=order.status).using_db(conn).update(
            delivery_partner_id=partner.id, updated_at=now
        )
        if not updated:
            raise InvalidState("Order status changed while this request was processed")
        order.delivery_partner_id = partner.id
        order.updated_at = now
        await record_notifications(
            [partner.id],
            f"You have been assigned a new delivery order ({order.order_number})",
            conn,
            type=NotificationType.DELIVERY,
            order_id=order.id,
        )

    log.info(f"Order {order.order_number} assigned to delivery partner {partner.id}")
    await notifier.order_assigned(order)
    return order


async def rate_order(
    actor: Actor,
    order_id: UUID,
    food: int,
    delivery: int,
    review: Optional[str] = None,
) -> Order:
    """A delivered order can be rated once, by its customer."""
    for label, score in (("food", food), ("delivery", delivery)):
        if not isinstance(score, int) or isinstance(score, bool) or not 1 <= score <= 5:
            raise ValidationError(f"{label} rating must be an integer between 1 and 5")

    order = await Order.get_or_none(id=order_id)
    if not order:
        raise NotFound("Order not found")
    if actor.role != Role.CUSTOMER or str(order.customer_id) != str(actor.id):
        raise Forbidden("Only the customer who placed the order can rate it")
    if OrderStatus(order.status) != OrderStatus.DELIVERED:
        raise InvalidState("Order can only be rated after delivery")

    now = timezone.now()
    updated = await Order.filter(id=order.id, status=OrderStatus.DELIVERED, rated_at__isnull=True).update(
        rating_food=food, rating_delivery=delivery, review=review, rated_at=now
    )
    if not updated:
        raise InvalidState("Order has already been rated")

    order.rating_food = food
    order.rating_delivery = delivery
    order.review = review
    order.rated_at = now
    return order


async def get_order(actor: Actor, order_id: UUID) -> Order:
    """Fetches an order with its line items for any party attached to it."""
    order = await Order.get_or_none(id=order_id).prefetch_related("items")
    if not order:
        raise NotFound("Order not found")
    if not can_view(actor, order):
        raise Forbidden("You do not have access to this order")
    return order


async def track_order(actor: Actor, order_id: UUID) -> Tuple[Order, List[OrderStatusEvent]]:
    order = await Order.get_or_none(id=order_id)
    if not order:
        raise NotFound("Order not found")
    if not can_view(actor, order):
        raise Forbidden("You do not have access to this order")
    timeline = await OrderStatusEvent.filter(order_id=order.id).order_by("position")
    return order, timeline


async def list_orders(
    actor: Actor,
    status: Optional[OrderStatus] = None,
    customer_id: Optional[UUID] = None,
    restaurant_id: Optional[UUID] = None,
    delivery_partner_id: Optional[UUID] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Order]:
    """Orders visible to the caller's role, newest first. Filters beyond status are admin-only."""
    query = Order.all()
    if actor.role == Role.CUSTOMER:
        query = query.filter(customer_id=actor.id)
    elif actor.role == Role.RESTAURANT:
        query = query.filter(restaurant_id=actor.id)
    elif actor.role == Role.DELIVERY:
        query = query.filter(delivery_partner_id=actor.id)
    else:
        if customer_id:
            query = query.filter(customer_id=customer_id)
        if restaurant_id:
            query = query.filter(restaurant_id=restaurant_id)
        if delivery_partner_id:
            query = query.filter(delivery_partner_id=delivery_partner_id)

    if status:
        query = query.filter(status=status)

    limit = max(1, min(limit, config.MAX_PAGE_SIZE))
    return await query.order_by("-created_at").offset(max(offset, 0)).limit(limit).prefetch_related("items")
