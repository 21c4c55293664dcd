import asyncio
import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.orm import Session

from constants import OrderStatus
from db import transaction
from errors import (
    CapacityExhaustedError,
    NumberRangeExhaustedError,
    RackNotFoundError,
    ValidationError,
)
from models import Rack
from repositories import items_repository, orders_repository, storage_repository
from schemas import RackResponse, StorageSummaryResponse
from services import items_service

logger = logging.getLogger("laundry-panel")


@dataclass(frozen=True)
class Allocation:
    rack_id: str
    pickup_number: int


@dataclass(frozen=True)
class RackLayout:
    rack_number: int
    total_capacity: int
    from_range: int
    to_range: int


def is_released(status: OrderStatus) -> bool:
    return status == OrderStatus.DELIVERED


def _first_free_number(rack: Rack, active_numbers: set[int]) -> int | None:
    for number in range(rack.from_range, rack.to_range + 1):
        if number not in active_numbers:
            return number
    return None


def allocate(session: Session, garment_count: int, order_id: str) -> Allocation:
    if garment_count < 0:
        raise ValidationError("Garment count cannot be negative")

    racks = storage_repository.fetch_racks_for_allocation(session)
    rack = next(
        (r for r in racks if r.used_capacity + garment_count <= r.total_capacity),
        None,
    )
    if rack is None:
        raise CapacityExhaustedError(garment_count)

    active_numbers = storage_repository.fetch_active_numbers(session, rack)
    pickup_number = _first_free_number(rack, active_numbers)
    if pickup_number is None:
        raise NumberRangeExhaustedError(rack.rack_number)

    storage_repository.adjust_used_capacity(session, rack.id, garment_count)
    storage_repository.insert_allocation(session, rack.id, order_id, pickup_number)
    logger.info(
        "Allocated pickup number %s on rack %s for order %s (%s garments)",
        pickup_number,
        rack.rack_number,
        order_id,
        garment_count,
    )
    return Allocation(rack_id=rack.id, pickup_number=pickup_number)


def release(session: Session, order_id: str) -> bool:
    order = orders_repository.fetch_order(session, order_id)
    if order is None or not order.storage_id:
        return False
    allocation = storage_repository.fetch_allocation(session, order_id)
    if allocation is None:
        return False

    rack = storage_repository.fetch_rack(session, allocation.rack_id, for_update=True)
    if rack is None:
        raise RackNotFoundError(allocation.rack_id)
    links = items_repository.fetch_links(session, [order_id])
    garment_count = items_service.linked_garment_count(session, links)
    delta = min(garment_count, rack.used_capacity)
    storage_repository.adjust_used_capacity(session, rack.id, -delta)
    storage_repository.delete_allocation(session, allocation)
    logger.info(
        "Released pickup number %s for order %s (%s garments)",
        allocation.pickup_number,
        order_id,
        garment_count,
    )
    return True


def allocate_storage(garment_count: int, order_id: str) -> Allocation:
    with transaction() as session:
        return allocate(session, garment_count, order_id)


def release_order(order_id: str) -> bool:
    with transaction() as session:
        return release(session, order_id)


def parse_rack_layout(raw: str) -> List[RackLayout]:
    layouts: List[RackLayout] = []
    for chunk in raw.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            number, capacity, number_range = chunk.split(":")
            range_start, range_end = number_range.split("-")
            layout = RackLayout(
                rack_number=int(number),
                total_capacity=int(capacity),
                from_range=int(range_start),
                to_range=int(range_end),
            )
        except ValueError as exc:
            raise ValidationError(f"Invalid rack layout entry: {chunk!r}") from exc
        if layout.total_capacity < 0 or layout.from_range > layout.to_range:
            raise ValidationError(f"Invalid rack layout entry: {chunk!r}")
        layouts.append(layout)
    return layouts


def _ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start <= b_end and b_start <= a_end


def seed_racks(layouts: List[RackLayout]) -> int:
    created = 0
    with transaction() as session:
        existing = storage_repository.fetch_all_racks(session)
        known_numbers = {rack.rack_number for rack in existing}
        ranges = [(rack.from_range, rack.to_range) for rack in existing]
        for layout in layouts:
            if layout.rack_number in known_numbers:
                continue
            if any(
                _ranges_overlap(layout.from_range, layout.to_range, start, end)
                for start, end in ranges
            ):
                raise ValidationError(
                    f"Rack {layout.rack_number} range overlaps an existing rack"
                )
            storage_repository.insert_rack(
                session,
                layout.rack_number,
                layout.total_capacity,
                layout.from_range,
                layout.to_range,
            )
            known_numbers.add(layout.rack_number)
            ranges.append((layout.from_range, layout.to_range))
            created += 1
    if created:
        logger.info("Seeded %s storage racks", created)
    return created


def format_rack(rack: Rack) -> RackResponse:
    return RackResponse(
        id=rack.id,
        rack_number=rack.rack_number,
        total_capacity=rack.total_capacity,
        used_capacity=rack.used_capacity,
        free_capacity=rack.total_capacity - rack.used_capacity,
        from_range=rack.from_range,
        to_range=rack.to_range,
    )


def list_racks() -> List[RackResponse]:
    with transaction() as session:
        return [format_rack(rack) for rack in storage_repository.fetch_all_racks(session)]


def _summarize(racks: List[RackResponse]) -> StorageSummaryResponse:
    total = sum(rack.total_capacity for rack in racks)
    used = sum(rack.used_capacity for rack in racks)
    usage = round(used / total * 100, 2) if total else 0.0
    return StorageSummaryResponse(
        total_capacity=total,
        used_capacity=used,
        free_capacity=total - used,
        usage_percentage=usage,
        racks=racks,
    )


async def get_storage_summary() -> StorageSummaryResponse:
    racks = await asyncio.to_thread(list_racks)
    return _summarize(racks)
