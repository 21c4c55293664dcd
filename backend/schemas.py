from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from constants import OrderStatus, OrderType, PaymentMethod, PaymentStatus


class PressingItemsInput(BaseModel):
    quantity: int = Field(..., gt=0, description="Number of garments to press")


class CleaningItemInput(BaseModel):
    name: str = Field(..., min_length=1, description="Catalog option name")
    quantity: int = Field(..., gt=0)
    price: float = Field(
        ..., ge=0, description="Unit price chosen within the option's range"
    )


class OrderCreate(BaseModel):
    type: OrderType
    customer_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: OrderStatus = OrderStatus.PENDING
    total_paid: float = Field(default=0, ge=0)
    order_number: Optional[int] = Field(
        default=None,
        ge=0,
        description="Explicit pickup number; skips rack allocation",
    )
    items: Union[PressingItemsInput, List[CleaningItemInput]]


class OrderUpdate(BaseModel):
    type: Optional[OrderType] = None
    customer_id: Optional[str] = Field(default=None, min_length=1)
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    status: Optional[OrderStatus] = None
    total_paid: Optional[float] = Field(default=None, ge=0)
    ticket_number: Optional[int] = Field(default=None, gt=0)


class PressingItemResponse(BaseModel):
    id: str
    quantity: int
    total: float
    created_at: Optional[datetime]


class CleaningItemResponse(BaseModel):
    id: str
    name: str
    quantity: int
    total: float
    created_at: Optional[datetime]


class RackResponse(BaseModel):
    id: str
    rack_number: int
    total_capacity: int
    used_capacity: int
    free_capacity: int
    from_range: int
    to_range: int


class StorageSummaryResponse(BaseModel):
    total_capacity: int
    used_capacity: int
    free_capacity: int
    usage_percentage: float
    racks: List[RackResponse]


class OrderVersionResponse(BaseModel):
    id: str
    type: OrderType
    customer_id: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    total: float
    total_paid: float
    order_number: int
    ticket_number: int
    storage_id: Optional[str]
    main_order_id: Optional[str]
    is_main_order: bool
    version: int
    created_by: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class OrderResponse(OrderVersionResponse):
    storage: Optional[RackResponse] = None
    items: Union[PressingItemResponse, List[CleaningItemResponse], None] = None
    order_history: List[OrderVersionResponse] = []


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int
