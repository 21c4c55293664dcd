from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from constants import OrderType
from models import CleaningItem, Order, OrderItem, PressingItem, Rack
from repositories import items_repository, orders_repository
from schemas import (
    CleaningItemResponse,
    OrderResponse,
    OrderVersionResponse,
    PressingItemResponse,
)
from services import items_service
from services.storage_service import format_rack

OrderItems = Union[PressingItemResponse, List[CleaningItemResponse], None]


def format_version(order: Order) -> OrderVersionResponse:
    return OrderVersionResponse(**_version_fields(order))


def _version_fields(order: Order) -> Dict[str, object]:
    return {
        "id": order.id,
        "type": order.order_type,
        "customer_id": order.customer_id,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "status": order.status,
        "total": order.total,
        "total_paid": order.total_paid,
        "order_number": order.order_number,
        "ticket_number": order.ticket_number,
        "storage_id": order.storage_id,
        "main_order_id": order.main_order_id,
        "is_main_order": order.is_main_order,
        "version": order.version,
        "created_by": order.created_by,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def _format_pressing(item: PressingItem) -> PressingItemResponse:
    return PressingItemResponse(
        id=item.id, quantity=item.quantity, total=item.total, created_at=item.created_at
    )


def _format_cleaning(item: CleaningItem) -> CleaningItemResponse:
    return CleaningItemResponse(
        id=item.id,
        name=item.name,
        quantity=item.quantity,
        total=item.total,
        created_at=item.created_at,
    )


def project_items(
    order_type: OrderType,
    links: Sequence[OrderItem],
    pressing: Dict[str, PressingItem],
    cleaning: Dict[str, CleaningItem],
) -> OrderItems:
    if order_type == OrderType.PRESSING:
        for link in links:
            item = pressing.get(link.item_id)
            if link.item_type == OrderType.PRESSING and item is not None:
                return _format_pressing(item)
        return None
    return [
        _format_cleaning(cleaning[link.item_id])
        for link in links
        if link.item_type == OrderType.CLEANING and link.item_id in cleaning
    ]


def _fetch_racks(session: Session, rack_ids: Sequence[str]) -> Dict[str, Rack]:
    if not rack_ids:
        return {}
    stmt = select(Rack).where(Rack.id.in_(list(rack_ids)))
    return {rack.id: rack for rack in session.scalars(stmt)}


def enrich_orders(
    session: Session,
    orders: Sequence[Order],
    *,
    with_history: bool = True,
) -> List[OrderResponse]:
    if not orders:
        return []

    links_by_order: Dict[str, List[OrderItem]] = defaultdict(list)
    for link in items_repository.fetch_links(session, [order.id for order in orders]):
        links_by_order[link.order_id].append(link)

    all_links = [link for links in links_by_order.values() for link in links]
    pressing = items_service.get_pressing_items(
        session,
        [link.item_id for link in all_links if link.item_type == OrderType.PRESSING],
    )
    cleaning = items_service.get_cleaning_items(
        session,
        [link.item_id for link in all_links if link.item_type == OrderType.CLEANING],
    )

    history_by_chain: Dict[str, List[Order]] = defaultdict(list)
    if with_history:
        original_ids = list({order.original_id for order in orders})
        for version in orders_repository.fetch_chains(session, original_ids):
            history_by_chain[version.original_id].append(version)

    racks = _fetch_racks(
        session, list({order.storage_id for order in orders if order.storage_id})
    )

    enriched: List[OrderResponse] = []
    for order in orders:
        rack: Optional[Rack] = racks.get(order.storage_id) if order.storage_id else None
        history = [
            format_version(version)
            for version in history_by_chain.get(order.original_id, [])
            if version.id != order.id and not version.is_main_order
        ]
        enriched.append(
            OrderResponse(
                **_version_fields(order),
                storage=format_rack(rack) if rack is not None else None,
                items=project_items(
                    order.order_type, links_by_order.get(order.id, []), pressing, cleaning
                ),
                order_history=history,
            )
        )
    return enriched
