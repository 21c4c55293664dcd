from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement

from constants import OrderStatus
from models import Order, TicketCounter


def fetch_order(session: Session, order_id: str) -> Optional[Order]:
    return session.get(Order, order_id)


def insert_order(session: Session, record: Dict[str, Any]) -> Order:
    order = Order(**record)
    session.add(order)
    session.flush()
    return order


def set_allocation(
    session: Session, order: Order, rack_id: str, order_number: int
) -> Order:
    order.storage_id = rack_id
    order.order_number = order_number
    session.flush()
    return order


def _chain_filter(original_id: str) -> ColumnElement[bool]:
    return or_(Order.id == original_id, Order.main_order_id == original_id)


def fetch_chain(session: Session, original_id: str) -> List[Order]:
    stmt = (
        select(Order)
        .where(_chain_filter(original_id))
        .order_by(Order.version.desc(), Order.created_at.desc())
    )
    return list(session.scalars(stmt))


def fetch_chains(session: Session, original_ids: Sequence[str]) -> List[Order]:
    if not original_ids:
        return []
    ids = list(original_ids)
    stmt = (
        select(Order)
        .where(or_(Order.id.in_(ids), Order.main_order_id.in_(ids)))
        .order_by(Order.version.desc(), Order.created_at.desc())
    )
    return list(session.scalars(stmt))


def fetch_main_version(session: Session, original_id: str) -> Optional[Order]:
    stmt = (
        select(Order)
        .where(_chain_filter(original_id), Order.is_main_order.is_(True))
        .order_by(Order.version.desc())
        .limit(1)
    )
    return session.scalars(stmt).first()


def clear_main_flags(session: Session, original_id: str) -> int:
    result = session.execute(
        update(Order)
        .where(_chain_filter(original_id), Order.is_main_order.is_(True))
        .values(is_main_order=False)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


def max_version(session: Session, original_id: str) -> int:
    stmt = select(func.max(Order.version)).where(_chain_filter(original_id))
    return session.scalar(stmt) or 0


def max_ticket_number(session: Session, floor: int) -> Optional[int]:
    stmt = select(func.max(Order.ticket_number)).where(Order.ticket_number >= floor)
    return session.scalar(stmt)


def delete_order(session: Session, order_id: str) -> bool:
    result = session.execute(delete(Order).where(Order.id == order_id))
    return result.rowcount > 0


def _main_versions_query(
    *,
    include_delivered: bool = True,
    status: Optional[OrderStatus] = None,
    customer_id: Optional[str] = None,
    order_number: Optional[int] = None,
    ticket_number: Optional[int] = None,
    ticket_ranges: Sequence[Tuple[int, int]] = (),
):
    stmt = select(Order).where(Order.is_main_order.is_(True))
    if not include_delivered:
        stmt = stmt.where(Order.status != OrderStatus.DELIVERED)
    elif status is not None:
        stmt = stmt.where(Order.status == status)
    if customer_id is not None:
        stmt = stmt.where(Order.customer_id == customer_id)
    if order_number is not None:
        stmt = stmt.where(Order.order_number == order_number)
    if ticket_number is not None:
        stmt = stmt.where(Order.ticket_number == ticket_number)
    if ticket_ranges:
        stmt = stmt.where(
            or_(
                *(
                    Order.ticket_number.between(low, high)
                    for low, high in ticket_ranges
                )
            )
        )
    return stmt


def fetch_main_versions(
    session: Session,
    *,
    include_delivered: bool = True,
    status: Optional[OrderStatus] = None,
    customer_id: Optional[str] = None,
    ticket_ranges: Sequence[Tuple[int, int]] = (),
    newest_ticket_first: bool = False,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
) -> List[Order]:
    stmt = _main_versions_query(
        include_delivered=include_delivered,
        status=status,
        customer_id=customer_id,
        ticket_ranges=ticket_ranges,
    )
    if newest_ticket_first:
        stmt = stmt.order_by(Order.ticket_number.desc(), Order.created_at.desc())
    else:
        stmt = stmt.order_by(Order.created_at.desc(), Order.ticket_number.desc())
    if skip:
        stmt = stmt.offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt))


def count_main_versions(
    session: Session,
    *,
    include_delivered: bool = True,
    ticket_ranges: Sequence[Tuple[int, int]] = (),
) -> int:
    query = _main_versions_query(
        include_delivered=include_delivered, ticket_ranges=ticket_ranges
    ).subquery()
    return session.scalar(select(func.count()).select_from(query)) or 0


def fetch_main_by_number(
    session: Session,
    *,
    order_number: Optional[int] = None,
    ticket_number: Optional[int] = None,
    include_delivered: bool = False,
) -> Optional[Order]:
    stmt = _main_versions_query(
        include_delivered=include_delivered,
        order_number=order_number,
        ticket_number=ticket_number,
    ).order_by(Order.created_at.desc())
    return session.scalars(stmt.limit(1)).first()


def delete_chain(session: Session, original_id: str) -> int:
    later = session.execute(delete(Order).where(Order.main_order_id == original_id))
    first = session.execute(delete(Order).where(Order.id == original_id))
    return later.rowcount + first.rowcount


def lock_ticket_counter(session: Session, name: str) -> Optional[TicketCounter]:
    stmt = select(TicketCounter).where(TicketCounter.name == name).with_for_update()
    return session.scalars(stmt).first()


def insert_ticket_counter(session: Session, name: str, last_value: int) -> TicketCounter:
    counter = TicketCounter(name=name, last_value=last_value)
    session.add(counter)
    session.flush()
    return counter
