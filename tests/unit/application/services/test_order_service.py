"""Tests for OrderService checkout, fulfilment, status life cycle and reviews."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from songstock.application.services.order_service import OrderLine, OrderService
from songstock.domain.entities import OrderItemStatus, OrderStatus, ProductType, UserRole
from songstock.domain.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import ProductRepository


@pytest.fixture
def service(session) -> OrderService:
    return OrderService(session)


@pytest.fixture
async def shop(provider_factory, product_factory):
    seller, provider = await provider_factory("seller")
    vinyl = await product_factory(provider, price=Decimal("40.00"), stock_quantity=3)
    mp3 = await product_factory(
        provider, product_type=ProductType.DIGITAL, price=Decimal("9.99"), stock_quantity=0
    )
    return {"seller": seller, "provider": provider, "vinyl": vinyl, "mp3": mp3}


async def _stock(session, product_id: int) -> int:
    product = await ProductRepository(session).get_by_id(product_id)
    return product.stock_quantity


class TestCreateOrder:
    async def test_places_order_and_takes_stock(
        self, service, session, user_factory, shop
    ) -> None:
        buyer = await user_factory("buyer")

        order = await service.create_order(
            buyer,
            [OrderLine(shop["vinyl"].id, 2), OrderLine(shop["mp3"].id, 1)],
            shipping_address="Calle 1 # 2-3",
        )
        assert order.id is not None
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("89.99")
        assert await _stock(session, shop["vinyl"].id) == 1

    async def test_repeated_lines_are_merged(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(
            buyer,
            [OrderLine(shop["mp3"].id, 1), OrderLine(shop["mp3"].id, 2)],
        )
        assert [(i.product_id, i.quantity) for i in order.items] == [(shop["mp3"].id, 3)]

    async def test_digital_only_order_needs_no_address(
        self, service, session, user_factory, shop
    ) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        assert order.shipping_address is None
        assert await _stock(session, shop["mp3"].id) == 0

    async def test_physical_order_needs_address(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        with pytest.raises(ValidationException, match="Shipping address"):
            await service.create_order(buyer, [OrderLine(shop["vinyl"].id, 1)], "  ")

    async def test_insufficient_stock(self, service, session, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        with pytest.raises(BusinessRuleViolation, match="Insufficient stock"):
            await service.create_order(
                buyer, [OrderLine(shop["vinyl"].id, 4)], shipping_address="Somewhere"
            )
        assert await _stock(session, shop["vinyl"].id) == 3

    async def test_only_customers_order(self, service, shop) -> None:
        with pytest.raises(AuthorizationError):
            await service.create_order(shop["seller"], [OrderLine(shop["mp3"].id, 1)])

    async def test_empty_and_invalid_lines(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        with pytest.raises(ValidationException):
            await service.create_order(buyer, [])
        with pytest.raises(ValidationException):
            await service.create_order(buyer, [OrderLine(shop["mp3"].id, 0)])

    async def test_unknown_product(self, service, user_factory) -> None:
        buyer = await user_factory("buyer")
        with pytest.raises(EntityNotFoundException):
            await service.create_order(buyer, [OrderLine(777, 1)])


class TestViewing:
    async def test_owner_admin_and_stranger(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        stranger = await user_factory("stranger")
        admin = await user_factory("root", role=UserRole.ADMIN)
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])

        assert (await service.get_order(buyer, order.id)).id == order.id
        assert (await service.get_order(admin, order.id)).id == order.id
        with pytest.raises(AuthorizationError):
            await service.get_order(stranger, order.id)

    async def test_order_lists(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])

        assert [o.id for o in await service.list_my_orders(buyer)] == [order.id]
        assert [o.id for o in await service.list_provider_orders(shop["seller"])] == [order.id]


class TestStatusChanges:
    async def test_forward_transitions(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])

        for status in (
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ):
            order = await service.update_status(order.id, status)
        assert order.status == OrderStatus.DELIVERED

        with pytest.raises(InvalidStateException):
            await service.update_status(order.id, OrderStatus.PENDING)

    async def test_cancel_restores_stock(self, service, session, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(
            buyer, [OrderLine(shop["vinyl"].id, 2)], shipping_address="Somewhere"
        )
        assert await _stock(session, shop["vinyl"].id) == 1

        cancelled = await service.cancel_order(buyer, order.id)
        assert cancelled.status == OrderStatus.CANCELLED
        assert await _stock(session, shop["vinyl"].id) == 3

        with pytest.raises(InvalidStateException):
            await service.cancel_order(buyer, order.id)

    async def test_cannot_cancel_shipped_order(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        await service.update_status(order.id, OrderStatus.CONFIRMED)
        await service.update_status(order.id, OrderStatus.PROCESSING)
        await service.update_status(order.id, OrderStatus.SHIPPED)

        with pytest.raises(InvalidStateException):
            await service.update_status(order.id, OrderStatus.CANCELLED)

    async def test_admin_cannot_reject_whole_order(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        with pytest.raises(InvalidStateException, match="providers"):
            await service.update_status(order.id, OrderStatus.REJECTED)


@pytest.fixture
async def two_sellers(shop, provider_factory, product_factory):
    other, other_provider = await provider_factory("other", business_name="Discos Sur")
    other_vinyl = await product_factory(
        other_provider, price=Decimal("30.00"), stock_quantity=5
    )
    return {**shop, "other": other, "other_vinyl": other_vinyl}


async def _split_order(service, buyer, sellers):
    """Order with one line per seller: 2 x vinyl (seller), 1 x other_vinyl (other)."""
    order = await service.create_order(
        buyer,
        [OrderLine(sellers["vinyl"].id, 2), OrderLine(sellers["other_vinyl"].id, 1)],
        shipping_address="Carrera 7 # 12-30",
    )
    mine, theirs = order.items
    return order, mine, theirs


class TestProviderFulfilment:
    async def test_lines_carry_their_provider(self, service, user_factory, two_sellers) -> None:
        buyer = await user_factory("buyer")
        _, mine, theirs = await _split_order(service, buyer, two_sellers)
        assert mine.provider_id == two_sellers["provider"].id
        assert theirs.provider_id != mine.provider_id
        assert {mine.status, theirs.status} == {OrderItemStatus.PENDING}

    async def test_accept_ship_deliver_rolls_up(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        item_id = order.items[0].id
        seller = shop["seller"]

        order = await service.accept_item(seller, item_id)
        assert order.items[0].status == OrderItemStatus.ACCEPTED
        assert order.status == OrderStatus.PENDING

        order = await service.ship_item(seller, item_id)
        assert order.status == OrderStatus.SHIPPED
        assert order.shipped_at == order.items[0].shipped_at

        order = await service.deliver_item(seller, item_id)
        assert order.items[0].status == OrderItemStatus.DELIVERED
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None

        stored = await service.get_order(buyer, order.id)
        assert stored.status == OrderStatus.DELIVERED
        assert stored.items[0].delivered_at is not None

    async def test_order_ships_when_last_live_line_ships(
        self, service, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        order, mine, theirs = await _split_order(service, buyer, two_sellers)
        await service.accept_item(two_sellers["seller"], mine.id)
        shipped_on = datetime(2026, 5, 2, 15, 30)

        order = await service.ship_item(two_sellers["seller"], mine.id, shipped_on)
        assert order.status == OrderStatus.PENDING

        order = await service.reject_item(two_sellers["other"], theirs.id, "Out of print")
        assert order.status == OrderStatus.SHIPPED
        assert order.shipped_at == shipped_on.replace(tzinfo=UTC)
        assert order.total_amount == Decimal("80.00")
        rejected = order.find_item(theirs.id)
        assert rejected.rejection_reason == "Out of print"

    async def test_rejecting_every_line_rejects_order_and_restocks(
        self, service, session, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        order, mine, theirs = await _split_order(service, buyer, two_sellers)
        assert await _stock(session, two_sellers["vinyl"].id) == 1

        await service.reject_item(two_sellers["seller"], mine.id, "Damaged sleeve")
        order = await service.reject_item(two_sellers["other"], theirs.id, "Sold out")

        assert order.status == OrderStatus.REJECTED
        assert await _stock(session, two_sellers["vinyl"].id) == 3
        assert await _stock(session, two_sellers["other_vinyl"].id) == 5
        with pytest.raises(InvalidStateException):
            await service.accept_item(two_sellers["seller"], mine.id)

    async def test_only_the_owning_provider_acts(
        self, service, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        _, mine, _ = await _split_order(service, buyer, two_sellers)
        with pytest.raises(AuthorizationError):
            await service.accept_item(two_sellers["other"], mine.id)
        with pytest.raises(AuthorizationError):
            await service.accept_item(buyer, mine.id)
        with pytest.raises(EntityNotFoundException):
            await service.accept_item(two_sellers["seller"], 9999)

    async def test_line_moves_must_follow_order(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        item_id = order.items[0].id
        with pytest.raises(InvalidStateException):
            await service.ship_item(shop["seller"], item_id)
        with pytest.raises(InvalidStateException):
            await service.deliver_item(shop["seller"], item_id)
        with pytest.raises(ValidationException, match="reason"):
            await service.reject_item(shop["seller"], item_id, "   ")

    async def test_pending_queue_only_lists_undecided_lines(
        self, service, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        order, mine, _ = await _split_order(service, buyer, two_sellers)

        pending = await service.list_provider_pending_orders(two_sellers["seller"])
        assert [o.id for o in pending] == [order.id]

        await service.accept_item(two_sellers["seller"], mine.id)
        assert await service.list_provider_pending_orders(two_sellers["seller"]) == []
        other_pending = await service.list_provider_pending_orders(two_sellers["other"])
        assert [o.id for o in other_pending] == [order.id]

    async def test_cancel_refused_once_a_line_shipped(
        self, service, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        order, mine, _ = await _split_order(service, buyer, two_sellers)
        await service.accept_item(two_sellers["seller"], mine.id)
        await service.ship_item(two_sellers["seller"], mine.id)
        with pytest.raises(InvalidStateException, match="shipped"):
            await service.cancel_order(buyer, order.id)

    async def test_cancel_skips_already_restocked_lines(
        self, service, session, user_factory, two_sellers
    ) -> None:
        buyer = await user_factory("buyer")
        order, _, theirs = await _split_order(service, buyer, two_sellers)
        await service.reject_item(two_sellers["other"], theirs.id, "Sold out")

        await service.cancel_order(buyer, order.id)
        assert await _stock(session, two_sellers["vinyl"].id) == 3
        assert await _stock(session, two_sellers["other_vinyl"].id) == 5


async def _delivered_order(service, buyer, shop):
    order = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
    item_id = order.items[0].id
    await service.accept_item(shop["seller"], item_id)
    await service.ship_item(shop["seller"], item_id)
    return await service.deliver_item(shop["seller"], item_id)


class TestReceiptAndReviews:
    async def test_confirm_received(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        stranger = await user_factory("stranger")
        pending = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        with pytest.raises(InvalidStateException, match="delivered"):
            await service.confirm_received(buyer, pending.id)

        order = await _delivered_order(service, buyer, shop)
        with pytest.raises(AuthorizationError):
            await service.confirm_received(stranger, order.id)

        received = await service.confirm_received(buyer, order.id)
        assert received.status == OrderStatus.RECEIVED
        with pytest.raises(InvalidStateException):
            await service.confirm_received(buyer, order.id)

    async def test_review_once_delivered(self, service, user_factory, shop) -> None:
        buyer = await user_factory("buyer")
        pending = await service.create_order(buyer, [OrderLine(shop["mp3"].id, 1)])
        with pytest.raises(InvalidStateException):
            await service.create_review(buyer, pending.id, 5)

        order = await _delivered_order(service, buyer, shop)
        with pytest.raises(ValidationException, match="Rating"):
            await service.create_review(buyer, order.id, 6)

        review = await service.create_review(buyer, order.id, 4, "  Great pressing  ")
        assert review.id is not None
        assert review.comment == "Great pressing"
        with pytest.raises(DuplicateEntityException):
            await service.create_review(buyer, order.id, 5)

    async def test_received_order_can_still_be_reviewed(
        self, service, user_factory, shop
    ) -> None:
        buyer = await user_factory("buyer")
        order = await _delivered_order(service, buyer, shop)
        await service.confirm_received(buyer, order.id)
        review = await service.create_review(buyer, order.id, 5)
        assert review.rating == 5

    async def test_review_visibility(
        self, service, user_factory, provider_factory, shop
    ) -> None:
        buyer = await user_factory("buyer")
        admin = await user_factory("root", role=UserRole.ADMIN)
        outsider, _ = await provider_factory("outsider")
        order = await _delivered_order(service, buyer, shop)

        with pytest.raises(EntityNotFoundException):
            await service.get_review(buyer, order.id)

        await service.create_review(buyer, order.id, 3, "Arrived late")
        for caller in (buyer, admin, shop["seller"]):
            assert (await service.get_review(caller, order.id)).rating == 3
        with pytest.raises(AuthorizationError):
            await service.get_review(outsider, order.id)
