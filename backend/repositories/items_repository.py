from decimal import Decimal
from typing import Collection, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from constants import OrderType
from models import CleaningItem, OrderItem, PressingItem


def insert_pressing_item(session: Session, quantity: int, total: Decimal) -> PressingItem:
    item = PressingItem(quantity=quantity, total=total)
    session.add(item)
    session.flush()
    return item


def insert_cleaning_item(
    session: Session, name: str, quantity: int, total: Decimal
) -> CleaningItem:
    item = CleaningItem(name=name, quantity=quantity, total=total)
    session.add(item)
    session.flush()
    return item


def fetch_pressing_item(session: Session, item_id: str) -> Optional[PressingItem]:
    return session.get(PressingItem, item_id)


def fetch_cleaning_item(session: Session, item_id: str) -> Optional[CleaningItem]:
    return session.get(CleaningItem, item_id)


def fetch_pressing_items(session: Session, item_ids: Collection[str]) -> List[PressingItem]:
    if not item_ids:
        return []
    stmt = select(PressingItem).where(PressingItem.id.in_(list(item_ids)))
    return list(session.scalars(stmt))


def fetch_cleaning_items(session: Session, item_ids: Collection[str]) -> List[CleaningItem]:
    if not item_ids:
        return []
    stmt = select(CleaningItem).where(CleaningItem.id.in_(list(item_ids)))
    return list(session.scalars(stmt))


def delete_pressing_item(session: Session, item_id: str) -> bool:
    result = session.execute(delete(PressingItem).where(PressingItem.id == item_id))
    return result.rowcount > 0


def delete_cleaning_item(session: Session, item_id: str) -> bool:
    result = session.execute(delete(CleaningItem).where(CleaningItem.id == item_id))
    return result.rowcount > 0


def insert_links(
    session: Session, order_id: str, item_type: OrderType, item_ids: Collection[str]
) -> List[OrderItem]:
    links = [
        OrderItem(
            order_id=order_id, item_type=item_type, item_id=item_id, position=position
        )
        for position, item_id in enumerate(item_ids)
    ]
    session.add_all(links)
    session.flush()
    return links


def fetch_links(session: Session, order_ids: Collection[str]) -> List[OrderItem]:
    if not order_ids:
        return []
    stmt = (
        select(OrderItem)
        .where(OrderItem.order_id.in_(list(order_ids)))
        .order_by(OrderItem.order_id, OrderItem.position)
    )
    return list(session.scalars(stmt))


def delete_links(session: Session, order_id: str) -> int:
    result = session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
    return result.rowcount


def count_item_links(session: Session, item_id: str) -> int:
    stmt = select(func.count()).select_from(OrderItem).where(OrderItem.item_id == item_id)
    return session.scalar(stmt) or 0
