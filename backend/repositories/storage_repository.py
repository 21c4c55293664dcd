from typing import List, Optional, Set

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from models import ActiveAllocation, Rack


def fetch_racks_for_allocation(session: Session) -> List[Rack]:
    stmt = (
        select(Rack)
        .order_by(Rack.used_capacity.asc(), Rack.rack_number.asc())
        .with_for_update()
    )
    return list(session.scalars(stmt))


def fetch_all_racks(session: Session) -> List[Rack]:
    return list(session.scalars(select(Rack).order_by(Rack.rack_number)))


def fetch_rack(session: Session, rack_id: str, *, for_update: bool = False) -> Optional[Rack]:
    stmt = select(Rack).where(Rack.id == rack_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalars(stmt).first()


def fetch_active_numbers(session: Session, rack: Rack) -> Set[int]:
    stmt = select(ActiveAllocation.pickup_number).where(
        ActiveAllocation.rack_id == rack.id,
        ActiveAllocation.pickup_number >= rack.from_range,
        ActiveAllocation.pickup_number <= rack.to_range,
    )
    return set(session.scalars(stmt))


def fetch_allocation(session: Session, order_id: str) -> Optional[ActiveAllocation]:
    stmt = select(ActiveAllocation).where(ActiveAllocation.order_id == order_id)
    return session.scalars(stmt).first()


def insert_allocation(
    session: Session, rack_id: str, order_id: str, pickup_number: int
) -> ActiveAllocation:
    allocation = ActiveAllocation(
        rack_id=rack_id, order_id=order_id, pickup_number=pickup_number
    )
    session.add(allocation)
    session.flush()
    return allocation


def delete_allocation(session: Session, allocation: ActiveAllocation) -> None:
    session.delete(allocation)
    session.flush()


def adjust_used_capacity(session: Session, rack_id: str, delta: int) -> None:
    # Relative update so the counter never round-trips through Python.
    session.execute(
        update(Rack)
        .where(Rack.id == rack_id)
        .values(used_capacity=Rack.used_capacity + delta)
        .execution_options(synchronize_session=False)
    )
    session.get(Rack, rack_id, populate_existing=True)


def insert_rack(
    session: Session,
    rack_number: int,
    total_capacity: int,
    from_range: int,
    to_range: int,
) -> Rack:
    rack = Rack(
        rack_number=rack_number,
        total_capacity=total_capacity,
        used_capacity=0,
        from_range=from_range,
        to_range=to_range,
    )
    session.add(rack)
    session.flush()
    return rack
