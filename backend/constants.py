from enum import Enum


class OrderType(str, Enum):
    PRESSING = "PRESSING"
    CLEANING = "CLEANING"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"


# Pressing is charged per unit, except that every full block of 12 units
# costs 140 instead of 12 * 14.
PRESSING_UNIT_PRICE = 14
PRESSING_BLOCK_SIZE = 12
PRESSING_BLOCK_PRICE = 140

TICKET_NUMBER_START = 31001
# Ticket prefix search expands up to this many digits.
TICKET_SEARCH_MAX_DIGITS = 6

# Pickup number stored on an order row until the allocator assigns one.
PLACEHOLDER_ORDER_NUMBER = 0
