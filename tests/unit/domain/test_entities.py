"""Tests for domain entity behaviour (stock flags, order transitions, verification)."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from songstock.domain.entities import (
    InvitationStatus,
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    Product,
    ProductType,
    Provider,
    ProviderInvitation,
    User,
    VerificationStatus,
    utc_now,
)


def _product(product_type: ProductType, stock: int, threshold: int = 5) -> Product:
    return Product(
        album_id=1,
        provider_id=1,
        category_id=1,
        sku="SKU",
        product_type=product_type,
        price=Decimal("10"),
        stock_quantity=stock,
        low_stock_threshold=threshold,
    )


class TestProductStock:
    def test_digital_is_always_in_stock_and_never_low(self) -> None:
        product = _product(ProductType.DIGITAL, stock=0)
        assert product.in_stock is True
        assert product.is_low_stock is False

    def test_physical_low_stock_at_threshold(self) -> None:
        assert _product(ProductType.PHYSICAL, stock=5).is_low_stock is True
        assert _product(ProductType.PHYSICAL, stock=6).is_low_stock is False

    def test_physical_out_of_stock(self) -> None:
        assert _product(ProductType.PHYSICAL, stock=0).in_stock is False


class TestOrder:
    def test_total_is_sum_of_subtotals(self) -> None:
        order = Order(
            user_id=1,
            items=[
                OrderItem(product_id=1, quantity=2, unit_price=Decimal("10.50")),
                OrderItem(product_id=2, quantity=1, unit_price=Decimal("4.00")),
            ],
        )
        assert order.total_amount == Decimal("25.00")

    def test_empty_order_total_is_zero(self) -> None:
        assert Order(user_id=1).total_amount == Decimal("0")

    def test_allowed_transitions(self) -> None:
        order = Order(user_id=1)
        assert order.can_transition_to(OrderStatus.CONFIRMED)
        assert order.can_transition_to(OrderStatus.CANCELLED)
        assert not order.can_transition_to(OrderStatus.SHIPPED)

    def test_delivered_only_moves_to_received(self) -> None:
        order = Order(user_id=1, status=OrderStatus.DELIVERED)
        allowed = [s for s in OrderStatus if order.can_transition_to(s)]
        assert allowed == [OrderStatus.RECEIVED]

    @pytest.mark.parametrize(
        "status", [OrderStatus.RECEIVED, OrderStatus.CANCELLED, OrderStatus.REJECTED]
    )
    def test_terminal_states(self, status: OrderStatus) -> None:
        order = Order(user_id=1, status=status)
        assert not any(order.can_transition_to(s) for s in OrderStatus)
        assert order.is_open is False

    def test_rejected_lines_do_not_count_towards_total(self) -> None:
        order = Order(
            user_id=1,
            items=[
                OrderItem(product_id=1, quantity=2, unit_price=Decimal("10.50")),
                OrderItem(
                    product_id=2,
                    quantity=1,
                    unit_price=Decimal("4.00"),
                    status=OrderItemStatus.REJECTED,
                ),
            ],
        )
        assert order.total_amount == Decimal("21.00")

    def test_shipped_cannot_be_cancelled(self) -> None:
        order = Order(user_id=1, status=OrderStatus.SHIPPED)
        assert not order.can_transition_to(OrderStatus.CANCELLED)


class TestOrderItemRollUp:
    @staticmethod
    def _order(*statuses: OrderItemStatus) -> Order:
        return Order(
            user_id=1,
            status=OrderStatus.CONFIRMED,
            items=[
                OrderItem(
                    id=n,
                    product_id=n,
                    quantity=1,
                    unit_price=Decimal("1.00"),
                    status=status,
                )
                for n, status in enumerate(statuses, start=1)
            ],
        )

    def test_item_transitions(self) -> None:
        item = OrderItem(product_id=1, quantity=1, unit_price=Decimal("1"))
        assert item.can_transition_to(OrderItemStatus.ACCEPTED)
        assert item.can_transition_to(OrderItemStatus.REJECTED)
        assert not item.can_transition_to(OrderItemStatus.SHIPPED)
        item.status = OrderItemStatus.SHIPPED
        assert not item.can_transition_to(OrderItemStatus.REJECTED)

    def test_partial_progress_leaves_order_alone(self) -> None:
        order = self._order(OrderItemStatus.SHIPPED, OrderItemStatus.ACCEPTED)
        assert order.sync_status_from_items() is False
        assert order.status == OrderStatus.CONFIRMED

    def test_all_live_lines_shipped_ships_order_at_latest_time(self) -> None:
        order = self._order(
            OrderItemStatus.SHIPPED, OrderItemStatus.SHIPPED, OrderItemStatus.REJECTED
        )
        early = datetime(2026, 3, 1, tzinfo=UTC)
        late = datetime(2026, 3, 4, tzinfo=UTC)
        order.items[0].shipped_at = late
        order.items[1].shipped_at = early
        assert order.sync_status_from_items() is True
        assert order.status == OrderStatus.SHIPPED
        assert order.shipped_at == late

    def test_all_live_lines_delivered_delivers_order(self) -> None:
        order = self._order(OrderItemStatus.DELIVERED, OrderItemStatus.REJECTED)
        order.status = OrderStatus.SHIPPED
        now = datetime(2026, 3, 9, tzinfo=UTC)
        assert order.sync_status_from_items(now) is True
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at == now

    def test_every_line_rejected_rejects_order(self) -> None:
        order = self._order(OrderItemStatus.REJECTED, OrderItemStatus.REJECTED)
        assert order.sync_status_from_items() is True
        assert order.status == OrderStatus.REJECTED
        assert order.find_item(2) is order.items[1]
        assert order.find_item(99) is None


class TestProviderVerification:
    def test_verify_stamps_date(self) -> None:
        provider = Provider(user_id=1, business_name="Shop")
        provider.set_verification_status(VerificationStatus.VERIFIED)
        assert provider.verification_date is not None

    def test_back_to_pending_keeps_previous_date(self) -> None:
        provider = Provider(user_id=1, business_name="Shop")
        provider.set_verification_status(VerificationStatus.REJECTED)
        stamped = provider.verification_date
        provider.set_verification_status(VerificationStatus.PENDING)
        assert provider.verification_date == stamped


class TestInvitation:
    def test_expired_invitation_is_not_usable(self) -> None:
        invitation = ProviderInvitation(
            email="a@example.com",
            business_name="Shop",
            invitation_token="t",
            expires_at=utc_now() - timedelta(seconds=1),
        )
        assert invitation.is_expired()
        assert not invitation.is_usable()

    def test_completed_invitation_is_not_usable(self) -> None:
        invitation = ProviderInvitation(
            email="a@example.com",
            business_name="Shop",
            invitation_token="t",
            expires_at=utc_now() + timedelta(days=1),
            status=InvitationStatus.COMPLETED,
        )
        assert not invitation.is_usable()


def test_full_name_joins_names() -> None:
    user = User(username="ana", email="ana@example.com", first_name="Ana", last_name="Gómez")
    assert user.full_name == "Ana Gómez"
