import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from config import settings
from constants import (
    PLACEHOLDER_ORDER_NUMBER,
    TICKET_SEARCH_MAX_DIGITS,
    OrderStatus,
    OrderType,
)
from db import transaction
from errors import ItemNotFoundError, OrderNotFoundError, ValidationError
from models import Order
from repositories import items_repository, orders_repository
from schemas import OrderCreate, OrderListResponse, OrderResponse, OrderUpdate
from services import items_service, pricing, storage_service
from services.order_enrichment import enrich_orders

logger = logging.getLogger("laundry-panel")


TICKET_COUNTER = "ticket"


def _ticket_floor(session: Session) -> int:
    start = settings.ticket_number_start
    current = orders_repository.max_ticket_number(session, start)
    return max(start - 1, current or 0)


def _next_ticket_number(session: Session) -> int:
    counter = orders_repository.lock_ticket_counter(session, TICKET_COUNTER)
    floor = _ticket_floor(session)
    if counter is None:
        counter = orders_repository.insert_ticket_counter(session, TICKET_COUNTER, floor)
    # Tickets patched in by hand can run ahead of the counter.
    counter.last_value = max(counter.last_value, floor) + 1
    session.flush()
    return counter.last_value


def ensure_ticket_counter() -> None:
    with transaction() as session:
        if orders_repository.lock_ticket_counter(session, TICKET_COUNTER) is None:
            orders_repository.insert_ticket_counter(
                session, TICKET_COUNTER, _ticket_floor(session)
            )


def _create_items(session: Session, payload: OrderCreate) -> List[str]:
    if payload.type == OrderType.PRESSING:
        quantity = payload.items.quantity
        return [
            items_service.create_pressing_item(
                session, quantity, pricing.pressing_total(quantity)
            )
        ]
    return [
        items_service.create_cleaning_item(
            session,
            item.name,
            item.quantity,
            pricing.cleaning_line_total(item.price, item.quantity),
        )
        for item in payload.items
    ]


def _validate_items(payload: OrderCreate) -> None:
    if pricing.items_match_type(payload.type, payload.items):
        return
    if payload.type == OrderType.PRESSING:
        raise ValidationError("Pressing orders take a single item with a quantity")
    raise ValidationError("Cleaning orders take a non-empty list of items")


def _resolve_main_version(session: Session, order_id: str) -> Order:
    order = orders_repository.fetch_order(session, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    main = orders_repository.fetch_main_version(session, order.original_id)
    if main is None:
        raise OrderNotFoundError(order_id)
    return main


def _create_order(user_id: str, payload: OrderCreate) -> OrderResponse:
    _validate_items(payload)
    total = pricing.order_total(payload)
    garments = pricing.garment_count(payload)

    with transaction() as session:
        item_ids = _create_items(session, payload)
        record: Dict[str, Any] = {
            "order_type": payload.type,
            "customer_id": payload.customer_id,
            "payment_method": payload.payment_method,
            "payment_status": payload.payment_status,
            "status": payload.status,
            "total": total,
            "total_paid": Decimal(str(payload.total_paid)),
            "ticket_number": _next_ticket_number(session),
            "storage_id": None,
            "main_order_id": None,
            "is_main_order": True,
            "version": 1,
            "created_by": user_id,
        }
        if payload.order_number is not None:
            order = orders_repository.insert_order(
                session, {**record, "order_number": payload.order_number}
            )
        else:
            order = orders_repository.insert_order(
                session, {**record, "order_number": PLACEHOLDER_ORDER_NUMBER}
            )
            allocation = storage_service.allocate(session, garments, order.id)
            orders_repository.set_allocation(
                session, order, allocation.rack_id, allocation.pickup_number
            )
        items_repository.insert_links(session, order.id, payload.type, item_ids)
        logger.info(
            "Created %s order %s with pickup number %s (ticket %s)",
            payload.type.value,
            order.id,
            order.order_number,
            order.ticket_number,
        )
        return enrich_orders(session, [order])[0]


def _update_order(order_id: str, user_id: str, patch: OrderUpdate) -> OrderResponse:
    with transaction() as session:
        latest = _resolve_main_version(session, order_id)
        if patch.type is not None and patch.type != latest.order_type:
            raise ValidationError(
                "Cannot change order type. Please create a new order instead."
            )

        original_id = latest.original_id
        new_status = patch.status if patch.status is not None else latest.status
        was_released = storage_service.is_released(latest.status)
        will_be_released = storage_service.is_released(new_status)
        if was_released and not will_be_released:
            raise ValidationError("Delivered orders cannot be reopened")
        if not was_released and will_be_released:
            storage_service.release(session, original_id)

        original_links = items_repository.fetch_links(session, [original_id])
        next_version = orders_repository.max_version(session, original_id) + 1

        orders_repository.clear_main_flags(session, original_id)
        new_order = orders_repository.insert_order(
            session,
            {
                "order_type": latest.order_type,
                "customer_id": patch.customer_id or latest.customer_id,
                "payment_method": patch.payment_method or latest.payment_method,
                "payment_status": patch.payment_status or latest.payment_status,
                "status": new_status,
                "total": latest.total,
                "total_paid": (
                    Decimal(str(patch.total_paid))
                    if patch.total_paid is not None
                    else latest.total_paid
                ),
                "order_number": latest.order_number,
                "ticket_number": patch.ticket_number or latest.ticket_number,
                "storage_id": latest.storage_id,
                "main_order_id": original_id,
                "is_main_order": True,
                "version": next_version,
                "created_by": user_id,
            },
        )
        items_repository.insert_links(
            session,
            new_order.id,
            latest.order_type,
            [link.item_id for link in original_links],
        )
        logger.info(
            "Order %s moved to version %s (status %s)",
            original_id,
            next_version,
            new_status.value,
        )
        return enrich_orders(session, [new_order])[0]


def _release_best_effort(session: Session, original_id: str) -> None:
    try:
        with session.begin_nested():
            storage_service.release(session, original_id)
    except Exception as exc:
        logger.warning("Release of order %s failed during delete: %s", original_id, exc)


def _delete_item(session: Session, item_type: OrderType, item_id: str) -> None:
    try:
        if item_type == OrderType.PRESSING:
            items_service.delete_pressing_item(session, item_id)
        else:
            items_service.delete_cleaning_item(session, item_id)
    except ItemNotFoundError:
        logger.info("Item %s already removed", item_id)


def _delete_order(order_id: str) -> None:
    with transaction() as session:
        order = orders_repository.fetch_order(session, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        original_id = order.original_id
        main = orders_repository.fetch_main_version(session, original_id)
        # Only a pure history row leaves the chain (and its allocation) in place.
        whole_chain = order.main_order_id is None or order.is_main_order or main is None

        if whole_chain:
            current_status = main.status if main is not None else order.status
            if not storage_service.is_released(current_status):
                _release_best_effort(session, original_id)
            doomed = [version.id for version in orders_repository.fetch_chain(session, original_id)]
        else:
            doomed = [order.id]

        links = items_repository.fetch_links(session, doomed)
        for version_id in doomed:
            items_repository.delete_links(session, version_id)
        items = {link.item_id: link.item_type for link in links}
        for item_id, item_type in items.items():
            # Items are shared across versions of a chain.
            if items_repository.count_item_links(session, item_id):
                continue
            _delete_item(session, item_type, item_id)

        if whole_chain:
            orders_repository.delete_chain(session, original_id)
            logger.info("Deleted order %s with %s versions", original_id, len(doomed))
        else:
            orders_repository.delete_order(session, order.id)
            logger.info("Deleted history version %s of order %s", order.id, original_id)


def _get_order_by_id(order_id: str) -> OrderResponse:
    with transaction() as session:
        main = _resolve_main_version(session, order_id)
        return enrich_orders(session, [main])[0]


def ticket_prefix_ranges(search: str) -> List[Tuple[int, int]]:
    text = search.strip()
    if not text.isdigit() or int(text) <= 0:
        return []
    prefix = int(text)
    ranges = []
    for digits in range(len(text), TICKET_SEARCH_MAX_DIGITS + 1):
        scale = 10 ** (digits - len(text))
        ranges.append((prefix * scale, prefix * scale + scale - 1))
    return ranges


def _get_all_orders(
    include_delivered: bool = False,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
    search: Optional[str] = None,
) -> OrderListResponse:
    ranges = ticket_prefix_ranges(search) if search else []
    if search and not ranges:
        raise ValidationError("Search must be a positive ticket number prefix")
    with transaction() as session:
        total = orders_repository.count_main_versions(
            session, include_delivered=include_delivered, ticket_ranges=ranges
        )
        orders = orders_repository.fetch_main_versions(
            session,
            include_delivered=include_delivered,
            ticket_ranges=ranges,
            newest_ticket_first=True,
            limit=limit,
            skip=skip,
        )
        return OrderListResponse(orders=enrich_orders(session, orders), total=total)


def _get_orders_by_customer(
    customer_id: str,
    status: Optional[OrderStatus] = None,
    exclude_delivered: bool = False,
) -> List[OrderResponse]:
    with transaction() as session:
        orders = orders_repository.fetch_main_versions(
            session,
            customer_id=customer_id,
            status=status,
            include_delivered=not exclude_delivered,
        )
        return enrich_orders(session, orders)


def _get_order_by_pickup_number(
    order_number: int, exclude_delivered: bool = True
) -> OrderResponse:
    with transaction() as session:
        order = orders_repository.fetch_main_by_number(
            session, order_number=order_number, include_delivered=not exclude_delivered
        )
        if order is None:
            raise OrderNotFoundError(f"pickup number {order_number}")
        return enrich_orders(session, [order])[0]


def _get_order_by_ticket_number(
    ticket_number: int, exclude_delivered: bool = True
) -> OrderResponse:
    with transaction() as session:
        order = orders_repository.fetch_main_by_number(
            session, ticket_number=ticket_number, include_delivered=not exclude_delivered
        )
        if order is None:
            raise OrderNotFoundError(f"ticket number {ticket_number}")
        return enrich_orders(session, [order])[0]


async def create_order(user_id: str, payload: OrderCreate) -> OrderResponse:
    return await asyncio.to_thread(_create_order, user_id, payload)


async def update_order(order_id: str, user_id: str, patch: OrderUpdate) -> OrderResponse:
    return await asyncio.to_thread(_update_order, order_id, user_id, patch)


async def delete_order(order_id: str) -> None:
    await asyncio.to_thread(_delete_order, order_id)


async def get_order_by_id(order_id: str) -> OrderResponse:
    return await asyncio.to_thread(_get_order_by_id, order_id)


async def get_all_orders(
    include_delivered: bool = False,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
    search: Optional[str] = None,
) -> OrderListResponse:
    return await asyncio.to_thread(
        _get_all_orders, include_delivered, limit, skip, search
    )


async def get_orders_by_customer(
    customer_id: str,
    status: Optional[OrderStatus] = None,
    exclude_delivered: bool = False,
) -> List[OrderResponse]:
    return await asyncio.to_thread(
        _get_orders_by_customer, customer_id, status, exclude_delivered
    )


async def get_order_by_pickup_number(
    order_number: int, exclude_delivered: bool = True
) -> OrderResponse:
    return await asyncio.to_thread(
        _get_order_by_pickup_number, order_number, exclude_delivered
    )


async def get_order_by_ticket_number(
    ticket_number: int, exclude_delivered: bool = True
) -> OrderResponse:
    return await asyncio.to_thread(
        _get_order_by_ticket_number, ticket_number, exclude_delivered
    )
