"""Order service: checkout, provider fulfilment, status changes and reviews."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.domain.entities import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderReview,
    OrderStatus,
    ProductType,
    User,
    UserRole,
    utc_now,
)
from songstock.domain.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import (
    OrderRepository,
    OrderReviewRepository,
    ProductRepository,
    ProviderRepository,
)

logger = logging.getLogger(__name__)

_SENT = (OrderItemStatus.SHIPPED, OrderItemStatus.DELIVERED)
_REVIEWABLE = (OrderStatus.DELIVERED, OrderStatus.RECEIVED)


@dataclass
class OrderLine:
    """Requested product and quantity at checkout."""

    product_id: int
    quantity: int


class OrderService:
    """Places orders and moves them through their status life cycle."""

    def __init__(self, session: AsyncSession) -> None:
        self._orders = OrderRepository(session)
        self._products = ProductRepository(session)
        self._providers = ProviderRepository(session)
        self._reviews = OrderReviewRepository(session)

    # Hey future me - stock is taken with a conditional UPDATE per line, all inside the
    # request transaction. If a later line fails the exception rolls back the earlier
    # decrements too, so a half-placed order never survives.
    async def create_order(
        self,
        customer: User,
        lines: list[OrderLine],
        shipping_address: str | None = None,
        notes: str | None = None,
    ) -> Order:
        if customer.role != UserRole.CUSTOMER:
            raise AuthorizationError("Only customers can place orders")
        if not lines:
            raise ValidationException("Order must contain at least one item")

        quantities: dict[int, int] = {}
        for line in lines:
            if line.quantity < 1:
                raise ValidationException("Quantity must be at least 1")
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity

        items: list[OrderItem] = []
        needs_shipping = False
        for product_id, quantity in quantities.items():
            product = await self._products.get_by_id(product_id)
            if product is None or not product.is_active:
                raise EntityNotFoundException("Product", product_id)
            if product.product_type == ProductType.PHYSICAL:
                needs_shipping = True
                if not await self._products.decrement_stock(product_id, quantity):
                    raise BusinessRuleViolation(
                        f"Insufficient stock for product {product.sku}"
                    )
            items.append(
                OrderItem(
                    product_id=product_id,
                    provider_id=product.provider_id,
                    quantity=quantity,
                    unit_price=product.price,
                )
            )

        if needs_shipping and not (shipping_address or "").strip():
            raise ValidationException("Shipping address is required for physical products")

        assert customer.id is not None
        order = Order(
            user_id=customer.id,
            items=items,
            shipping_address=shipping_address,
            notes=notes,
        )
        await self._orders.add(order)
        logger.info(
            "Order %s placed: %d items, total %s",
            order.id,
            len(items),
            order.total_amount,
            extra={"order_id": order.id, "user_id": customer.id},
        )
        return order

    async def get_order(self, caller: User, order_id: int) -> Order:
        """Owner or admin only."""
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        if caller.role != UserRole.ADMIN and order.user_id != caller.id:
            raise AuthorizationError("Not allowed to view this order")
        return order

    async def list_my_orders(self, caller: User) -> list[Order]:
        assert caller.id is not None
        return await self._orders.list_by_user(caller.id)

    async def list_provider_orders(self, caller: User) -> list[Order]:
        return await self._orders.list_by_provider(await self._provider_id_of(caller))

    async def update_status(self, order_id: int, new_status: OrderStatus) -> Order:
        """Admin status change; CANCELLED goes through cancel_order."""
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        if new_status == OrderStatus.CANCELLED:
            return await self._cancel(order)
        if new_status == OrderStatus.REJECTED:
            raise InvalidStateException(
                "Orders are only rejected by their providers rejecting every item"
            )
        if not order.can_transition_to(new_status):
            raise InvalidStateException(
                f"Cannot change order from {order.status.value} to {new_status.value}"
            )
        order.status = new_status
        order.updated_at = utc_now()
        if new_status == OrderStatus.SHIPPED and order.shipped_at is None:
            order.shipped_at = order.updated_at
        elif new_status == OrderStatus.DELIVERED:
            order.delivered_at = order.updated_at
        await self._orders.update(order)
        logger.info("Order %s -> %s", order_id, new_status.value)
        return order

    async def cancel_order(self, caller: User, order_id: int) -> Order:
        order = await self.get_order(caller, order_id)
        return await self._cancel(order)

    async def _cancel(self, order: Order) -> Order:
        if not order.can_transition_to(OrderStatus.CANCELLED):
            raise InvalidStateException(
                f"Cannot cancel an order that is {order.status.value}"
            )
        if any(item.status in _SENT for item in order.items):
            raise InvalidStateException("Cannot cancel an order with shipped items")
        for item in order.live_items:
            await self._restock(item)
        order.status = OrderStatus.CANCELLED
        order.updated_at = utc_now()
        await self._orders.update(order)
        logger.info("Order %s cancelled, stock restored", order.id)
        return order

    async def _restock(self, item: OrderItem) -> None:
        product = await self._products.get_by_id(item.product_id)
        if product is not None and product.product_type == ProductType.PHYSICAL:
            await self._products.increment_stock(item.product_id, item.quantity)

    # =========================================================================
    # PROVIDER FULFILMENT
    # =========================================================================

    async def list_provider_pending_orders(self, caller: User) -> list[Order]:
        """Orders where the caller still has to accept or reject a line."""
        provider_id = await self._provider_id_of(caller)
        return await self._orders.list_by_provider(
            provider_id, item_status=OrderItemStatus.PENDING
        )

    async def _provider_id_of(self, caller: User) -> int:
        assert caller.id is not None
        provider = await self._providers.get_by_user_id(caller.id)
        if provider is None or provider.id is None:
            raise AuthorizationError("Caller has no provider account")
        return provider.id

    # Hey future me - every line action goes through here: the line must belong to the
    # caller's shop, the order must still be open and the line must allow the move.
    async def _load_own_item(
        self, caller: User, item_id: int, target: OrderItemStatus
    ) -> tuple[Order, OrderItem]:
        provider_id = await self._provider_id_of(caller)
        order = await self._orders.get_by_item_id(item_id)
        item = order.find_item(item_id) if order is not None else None
        if order is None or item is None:
            raise EntityNotFoundException("OrderItem", item_id)
        if item.provider_id != provider_id:
            raise AuthorizationError("Order item belongs to another provider")
        if not order.is_open:
            raise InvalidStateException(
                f"Order {order.id} is {order.status.value}, items can no longer change"
            )
        if not item.can_transition_to(target):
            raise InvalidStateException(
                f"Cannot change item from {item.status.value} to {target.value}"
            )
        return order, item

    async def _save_item_change(self, order: Order, item: OrderItem) -> Order:
        now = utc_now()
        order.updated_at = now
        if order.sync_status_from_items(now):
            logger.info("Order %s -> %s", order.id, order.status.value)
        await self._orders.update(order)
        logger.info(
            "Order item %s -> %s",
            item.id,
            item.status.value,
            extra={"order_id": order.id, "provider_id": item.provider_id},
        )
        return order

    async def accept_item(self, caller: User, item_id: int) -> Order:
        order, item = await self._load_own_item(
            caller, item_id, OrderItemStatus.ACCEPTED
        )
        item.status = OrderItemStatus.ACCEPTED
        return await self._save_item_change(order, item)

    async def reject_item(self, caller: User, item_id: int, reason: str) -> Order:
        """Reject a line; physical stock goes back on the shelf."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationException("A rejection reason is required")
        if len(reason) > 500:
            raise ValidationException("Rejection reason must be at most 500 characters")
        order, item = await self._load_own_item(
            caller, item_id, OrderItemStatus.REJECTED
        )
        item.status = OrderItemStatus.REJECTED
        item.rejection_reason = reason
        await self._restock(item)
        return await self._save_item_change(order, item)

    async def ship_item(
        self, caller: User, item_id: int, shipped_at: datetime | None = None
    ) -> Order:
        order, item = await self._load_own_item(
            caller, item_id, OrderItemStatus.SHIPPED
        )
        if shipped_at is not None and shipped_at.tzinfo is None:
            shipped_at = shipped_at.replace(tzinfo=UTC)
        item.status = OrderItemStatus.SHIPPED
        item.shipped_at = shipped_at or utc_now()
        return await self._save_item_change(order, item)

    async def deliver_item(self, caller: User, item_id: int) -> Order:
        order, item = await self._load_own_item(
            caller, item_id, OrderItemStatus.DELIVERED
        )
        item.status = OrderItemStatus.DELIVERED
        item.delivered_at = utc_now()
        return await self._save_item_change(order, item)

    # =========================================================================
    # CUSTOMER CONFIRMATION AND REVIEWS
    # =========================================================================

    async def confirm_received(self, caller: User, order_id: int) -> Order:
        order = await self._own_order(caller, order_id)
        if not order.can_transition_to(OrderStatus.RECEIVED):
            raise InvalidStateException(
                f"Only delivered orders can be confirmed, not {order.status.value}"
            )
        order.status = OrderStatus.RECEIVED
        order.updated_at = utc_now()
        await self._orders.update(order)
        logger.info("Order %s received by customer", order.id)
        return order

    async def _own_order(self, caller: User, order_id: int) -> Order:
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        if order.user_id != caller.id:
            raise AuthorizationError("Order belongs to another customer")
        return order

    async def create_review(
        self, caller: User, order_id: int, rating: int, comment: str | None = None
    ) -> OrderReview:
        """One review per order, once it has been delivered."""
        if not 1 <= rating <= 5:
            raise ValidationException("Rating must be between 1 and 5")
        order = await self._own_order(caller, order_id)
        if order.status not in _REVIEWABLE:
            raise InvalidStateException("Only delivered orders can be reviewed")
        if await self._reviews.exists_for_order(order_id):
            raise DuplicateEntityException("OrderReview", "order_id", order_id)
        assert caller.id is not None
        review = OrderReview(
            order_id=order_id,
            user_id=caller.id,
            rating=rating,
            comment=(comment or "").strip() or None,
        )
        await self._reviews.add(review)
        logger.info("Order %s reviewed with rating %d", order_id, rating)
        return review

    async def get_review(self, caller: User, order_id: int) -> OrderReview:
        """Visible to the customer, admins and providers selling in the order."""
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)
        if caller.role == UserRole.PROVIDER:
            provider_id = await self._provider_id_of(caller)
            if all(item.provider_id != provider_id for item in order.items):
                raise AuthorizationError("Not allowed to view this review")
        elif caller.role != UserRole.ADMIN and order.user_id != caller.id:
            raise AuthorizationError("Not allowed to view this review")
        review = await self._reviews.get_by_order_id(order_id)
        if review is None:
            raise EntityNotFoundException("OrderReview", order_id)
        return review
