from rest_framework import status
from rest_framework.exceptions import APIException


class BusinessRuleError(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Business rule violated."
    default_code = "business_rule_violation"

    def __init__(self, detail=None, code=None, data=None):
        super().__init__(detail=detail, code=code)
        self.data = data or {}


class InvalidFormulaError(BusinessRuleError):
    default_detail = "Formula is not valid."
    default_code = "invalid_formula"


class InvalidTransitionError(BusinessRuleError):
    default_detail = "Illegal status transition."
    default_code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move a production run from '{current}' to '{target}'.",
            data={"current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class InsufficientStockError(BusinessRuleError):
    """Raised when the available batches cannot cover a requested quantity.

    ``shortages`` holds one entry per short product with the requested and
    available quantities, so callers can report every missing material at once.
    """

    default_detail = "Insufficient stock."
    default_code = "insufficient_stock"

    def __init__(self, shortages: list[dict], detail: str | None = None):
        if detail is None:
            if len(shortages) == 1:
                item = shortages[0]
                location = f" in {item['warehouse']}" if item.get("warehouse") else ""
                detail = (
                    f"Insufficient stock for {item['product']}{location}. "
                    f"Requested: {item['requested']}, Available: {item['available']}"
                )
            else:
                detail = f"Insufficient stock for {len(shortages)} products."
        super().__init__(detail, data={"shortages": shortages})
        self.shortages = shortages
