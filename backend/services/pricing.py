from decimal import Decimal
from typing import Iterable, Sequence

from constants import (
    PRESSING_BLOCK_PRICE,
    PRESSING_BLOCK_SIZE,
    PRESSING_UNIT_PRICE,
    OrderType,
)
from schemas import CleaningItemInput, OrderCreate, PressingItemsInput


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def pressing_total(quantity: int) -> Decimal:
    if quantity <= 0:
        return Decimal(0)
    blocks, remainder = divmod(quantity, PRESSING_BLOCK_SIZE)
    return Decimal(blocks * PRESSING_BLOCK_PRICE + remainder * PRESSING_UNIT_PRICE)


def cleaning_line_total(price, quantity: int) -> Decimal:
    if quantity <= 0:
        return Decimal(0)
    return _to_decimal(price) * quantity


def cleaning_total(items: Iterable[CleaningItemInput]) -> Decimal:
    return sum(
        (cleaning_line_total(item.price, item.quantity) for item in items),
        Decimal(0),
    )


def garment_count(order_input: OrderCreate) -> int:
    if order_input.type == OrderType.PRESSING:
        return order_input.items.quantity
    return sum(item.quantity for item in order_input.items)


def order_total(order_input: OrderCreate) -> Decimal:
    if order_input.type == OrderType.PRESSING:
        return pressing_total(order_input.items.quantity)
    return cleaning_total(order_input.items)


def items_match_type(
    order_type: OrderType,
    items: PressingItemsInput | Sequence[CleaningItemInput],
) -> bool:
    if order_type == OrderType.PRESSING:
        return isinstance(items, PressingItemsInput)
    return isinstance(items, list) and len(items) > 0 and all(
        isinstance(item, CleaningItemInput) for item in items
    )
