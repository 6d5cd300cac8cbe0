"""Order API endpoints."""

from fastapi import APIRouter, Depends, status

from songstock.api.dependencies import (
    get_current_user,
    get_order_service,
    require_admin,
    require_customer,
    require_roles,
)
from songstock.api.schemas.products import (
    ItemRejectIn,
    ItemShipIn,
    OrderIn,
    OrderOut,
    OrderStatusIn,
    ReviewIn,
    ReviewOut,
)
from songstock.application.services import OrderLine, OrderService
from songstock.domain.entities import Order, User, UserRole

router = APIRouter(prefix="/orders", tags=["Orders"])


def _out(order: Order) -> OrderOut:
    return OrderOut.model_validate(order, from_attributes=True)


@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderIn,
    customer: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    lines = [OrderLine(product_id=i.product_id, quantity=i.quantity) for i in payload.items]
    order = await service.create_order(
        customer, lines, payload.shipping_address, payload.notes
    )
    return _out(order)


@router.get("/me", response_model=list[OrderOut])
async def my_orders(
    caller: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> list[OrderOut]:
    return [_out(o) for o in await service.list_my_orders(caller)]


@router.get("/provider", response_model=list[OrderOut])
async def provider_orders(
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> list[OrderOut]:
    return [_out(o) for o in await service.list_provider_orders(caller)]


@router.get("/provider/pending", response_model=list[OrderOut])
async def provider_pending_orders(
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> list[OrderOut]:
    """Orders with lines the provider still has to accept or reject."""
    return [_out(o) for o in await service.list_provider_pending_orders(caller)]


# Hey future me - item routes live under /items/ so they never clash with /{order_id}.
@router.post("/items/{item_id}/accept", response_model=OrderOut)
async def accept_item(
    item_id: int,
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.accept_item(caller, item_id))


@router.post("/items/{item_id}/reject", response_model=OrderOut)
async def reject_item(
    item_id: int,
    payload: ItemRejectIn,
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.reject_item(caller, item_id, payload.reason))


@router.post("/items/{item_id}/ship", response_model=OrderOut)
async def ship_item(
    item_id: int,
    payload: ItemShipIn | None = None,
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    shipped_at = payload.shipped_at if payload else None
    return _out(await service.ship_item(caller, item_id, shipped_at))


@router.post("/items/{item_id}/deliver", response_model=OrderOut)
async def deliver_item(
    item_id: int,
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.deliver_item(caller, item_id))


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    caller: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.get_order(caller, order_id))


@router.patch(
    "/{order_id}/status", response_model=OrderOut, dependencies=[Depends(require_admin)]
)
async def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.update_status(order_id, payload.status))


@router.post("/{order_id}/cancel", response_model=OrderOut)
async def cancel_order(
    order_id: int,
    caller: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.cancel_order(caller, order_id))


@router.post("/{order_id}/confirm-received", response_model=OrderOut)
async def confirm_received(
    order_id: int,
    customer: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
) -> OrderOut:
    return _out(await service.confirm_received(customer, order_id))


@router.post(
    "/{order_id}/review", response_model=ReviewOut, status_code=status.HTTP_201_CREATED
)
async def create_review(
    order_id: int,
    payload: ReviewIn,
    customer: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
) -> ReviewOut:
    review = await service.create_review(
        customer, order_id, payload.rating, payload.comment
    )
    return ReviewOut.model_validate(review, from_attributes=True)


@router.get("/{order_id}/review", response_model=ReviewOut)
async def get_review(
    order_id: int,
    caller: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> ReviewOut:
    review = await service.get_review(caller, order_id)
    return ReviewOut.model_validate(review, from_attributes=True)
