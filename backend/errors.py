from typing import Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationRequiredError(AppError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    resource = "Resource"

    def __init__(self, identifier: Optional[str] = None) -> None:
        message = (
            f"{self.resource} not found: {identifier}"
            if identifier
            else f"{self.resource} not found"
        )
        super().__init__(message)
        self.identifier = identifier


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"
    resource = "Order"


class RackNotFoundError(NotFoundError):
    code = "RACK_NOT_FOUND"
    resource = "Rack"


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"
    resource = "Item"


class AllocationError(AppError):
    status_code = 409
    code = "ALLOCATION_FAILED"


class CapacityExhaustedError(AllocationError):
    code = "NO_CAPACITY_AVAILABLE"

    def __init__(self, garment_count: int) -> None:
        super().__init__(
            f"No storage rack has room for {garment_count} garments"
        )
        self.garment_count = garment_count


class NumberRangeExhaustedError(AllocationError):
    code = "NO_NUMBER_AVAILABLE"

    def __init__(self, rack_number: int) -> None:
        super().__init__(
            f"No pickup numbers left in the range of rack {rack_number}"
        )
        self.rack_number = rack_number
