import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from constants import OrderStatus, OrderType, PaymentMethod, PaymentStatus
from db import Base

MONEY = Numeric(10, 2)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class Rack(TimestampMixin, Base):
    __tablename__ = "racks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    rack_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    used_capacity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    from_range: Mapped[int] = mapped_column(Integer, nullable=False)
    to_range: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("used_capacity >= 0", name="ck_racks_used_non_negative"),
        CheckConstraint(
            "used_capacity <= total_capacity", name="ck_racks_used_within_total"
        ),
        CheckConstraint("from_range <= to_range", name="ck_racks_range_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<Rack number={self.rack_number} used={self.used_capacity}/"
            f"{self.total_capacity} range={self.from_range}-{self.to_range}>"
        )


class ActiveAllocation(Base):
    __tablename__ = "active_allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    pickup_number: Mapped[int] = mapped_column(Integer, nullable=False)
    order_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    rack_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("racks.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("rack_id", "pickup_number", name="uq_allocation_rack_number"),
    )

    def __repr__(self) -> str:
        return (
            f"<ActiveAllocation number={self.pickup_number} "
            f"order={self.order_id} rack={self.rack_id}>"
        )


class Order(TimestampMixin, Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    order_type: Mapped[OrderType] = mapped_column(
        SAEnum(OrderType, native_enum=False, length=16), nullable=False
    )
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, native_enum=False, length=16), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, native_enum=False, length=16), nullable=False
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, native_enum=False, length=16), nullable=False
    )
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(MONEY, default=0, nullable=False)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    ticket_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    storage_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("racks.id"), nullable=True
    )
    main_order_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_main_order: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_orders_main_status", "is_main_order", "status"),
        # One ticket per chain: later versions repeat their original's ticket.
        Index(
            "uq_orders_original_ticket",
            "ticket_number",
            unique=True,
            sqlite_where=text("main_order_id IS NULL"),
            postgresql_where=text("main_order_id IS NULL"),
        ),
    )

    @property
    def original_id(self) -> str:
        return self.main_order_id or self.id

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} type={self.order_type.value} "
            f"number={self.order_number} v{self.version} main={self.is_main_order}>"
        )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    order_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_type: Mapped[OrderType] = mapped_column(
        SAEnum(OrderType, native_enum=False, length=16), nullable=False
    )
    # Points at pressing_items or cleaning_items depending on item_type.
    item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class PressingItem(TimestampMixin, Base):
    __tablename__ = "pressing_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)


class CleaningItem(TimestampMixin, Base):
    __tablename__ = "cleaning_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)


class TicketCounter(Base):
    """Last ticket number handed out; locked with SELECT ... FOR UPDATE."""

    __tablename__ = "ticket_counters"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False)
