from decimal import Decimal
from typing import Collection, Dict, List

from sqlalchemy.orm import Session

from constants import OrderType
from errors import ItemNotFoundError
from models import CleaningItem, OrderItem, PressingItem
from repositories import items_repository


def create_pressing_item(session: Session, quantity: int, total: Decimal) -> str:
    return items_repository.insert_pressing_item(session, quantity, total).id


def create_cleaning_item(
    session: Session, name: str, quantity: int, total: Decimal
) -> str:
    return items_repository.insert_cleaning_item(session, name, quantity, total).id


def get_pressing_item(session: Session, item_id: str) -> PressingItem:
    item = items_repository.fetch_pressing_item(session, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def get_cleaning_item(session: Session, item_id: str) -> CleaningItem:
    item = items_repository.fetch_cleaning_item(session, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def get_pressing_items(
    session: Session, item_ids: Collection[str]
) -> Dict[str, PressingItem]:
    return {
        item.id: item
        for item in items_repository.fetch_pressing_items(session, set(item_ids))
    }


def get_cleaning_items(
    session: Session, item_ids: Collection[str]
) -> Dict[str, CleaningItem]:
    return {
        item.id: item
        for item in items_repository.fetch_cleaning_items(session, set(item_ids))
    }


def delete_pressing_item(session: Session, item_id: str) -> None:
    if not items_repository.delete_pressing_item(session, item_id):
        raise ItemNotFoundError(item_id)


def delete_cleaning_item(session: Session, item_id: str) -> None:
    if not items_repository.delete_cleaning_item(session, item_id):
        raise ItemNotFoundError(item_id)


def linked_garment_count(session: Session, links: List[OrderItem]) -> int:
    pressing_ids = [link.item_id for link in links if link.item_type == OrderType.PRESSING]
    cleaning_ids = [link.item_id for link in links if link.item_type == OrderType.CLEANING]
    pressing = get_pressing_items(session, pressing_ids)
    cleaning = get_cleaning_items(session, cleaning_ids)
    # A pressing order carries a single item; only the first linked row counts.
    pressing_count = next(
        (pressing[item_id].quantity for item_id in pressing_ids if item_id in pressing),
        0,
    )
    return pressing_count + sum(
        cleaning[item_id].quantity for item_id in cleaning_ids if item_id in cleaning
    )
