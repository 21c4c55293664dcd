from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Response, status

from auth import get_current_user_id
from constants import OrderStatus
from schemas import OrderCreate, OrderListResponse, OrderResponse, OrderUpdate
from services import orders_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user_id: str = Depends(get_current_user_id),
) -> OrderResponse:
    return await orders_service.create_order(user_id, payload)


@router.get("", response_model=None)
async def list_orders(
    customer_id: Optional[str] = None,
    order_status: Optional[OrderStatus] = None,
    exclude_delivered: bool = False,
    order_number: Optional[int] = Query(default=None, ge=0),
    ticket_number: Optional[int] = Query(default=None, gt=0),
    include_delivered: bool = False,
    limit: Optional[int] = Query(default=None, ge=1),
    skip: Optional[int] = Query(default=None, ge=0),
    search: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
) -> Union[OrderResponse, List[OrderResponse], OrderListResponse]:
    if order_number is not None:
        return await orders_service.get_order_by_pickup_number(
            order_number, exclude_delivered=not include_delivered
        )
    if ticket_number is not None:
        return await orders_service.get_order_by_ticket_number(
            ticket_number, exclude_delivered=not include_delivered
        )
    if customer_id:
        return await orders_service.get_orders_by_customer(
            customer_id, status=order_status, exclude_delivered=exclude_delivered
        )
    return await orders_service.get_all_orders(
        include_delivered=include_delivered, limit=limit, skip=skip, search=search
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def read_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
) -> OrderResponse:
    return await orders_service.get_order_by_id(order_id)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    patch: OrderUpdate,
    user_id: str = Depends(get_current_user_id),
) -> OrderResponse:
    return await orders_service.update_order(order_id, user_id, patch)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
) -> Response:
    await orders_service.delete_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
