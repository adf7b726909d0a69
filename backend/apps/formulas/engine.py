"""Percentage-based formula arithmetic.

Everything in this module is pure: it reads formula items and returns new
values without touching the database, so the production processor and the API
can share the same rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from apps.core.config import ProductionConfig, get_production_config
from apps.core.exceptions import InvalidFormulaError

HUNDRED = Decimal("100")
QUANTITY_STEP = Decimal("0.001")


@dataclass(frozen=True)
class Requirement:
    product: Any
    percentage: Decimal
    quantity: Decimal

    @property
    def product_id(self):
        return getattr(self.product, "pk", self.product)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidFormulaError(f"'{value}' is not a number.") from exc


def formula_items(formula) -> list:
    items = getattr(formula, "items", formula)
    if hasattr(items, "all"):
        items = items.all()
    return sorted(items, key=lambda item: getattr(item, "sequence", 0))


def _percentage_of(item) -> Decimal:
    if isinstance(item, dict):
        return to_decimal(item.get("percentage", 0))
    return to_decimal(item.percentage)


def total_percentage(items: Iterable) -> Decimal:
    return sum((_percentage_of(item) for item in items), Decimal("0"))


def is_valid(formula, config: ProductionConfig | None = None) -> bool:
    config = config or get_production_config()
    items = formula_items(formula)
    if not items:
        return False
    return abs(total_percentage(items) - HUNDRED) < config.percentage_tolerance


def calculate_requirements(formula, total_quantity) -> list[Requirement]:
    total = to_decimal(total_quantity)
    return [
        Requirement(
            product=item.product,
            percentage=to_decimal(item.percentage),
            quantity=to_decimal(item.percentage) / HUNDRED * total,
        )
        for item in formula_items(formula)
    ]


def planned_quantities(requirements: list[Requirement]) -> list[Decimal]:
    """Round requirement quantities to the stock precision.

    The rounding remainder lands on the largest component, so the planned
    quantities add up to the sum of the unrounded requirements rounded to the
    same precision.
    """
    if not requirements:
        return []
    rounded = [req.quantity.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP) for req in requirements]
    expected = sum((req.quantity for req in requirements), Decimal("0")).quantize(
        QUANTITY_STEP, rounding=ROUND_HALF_UP
    )
    drift = expected - sum(rounded, Decimal("0"))
    if drift:
        largest = max(range(len(rounded)), key=lambda index: rounded[index])
        rounded[largest] += drift
    return rounded


def validate_items(items: list[dict], config: ProductionConfig | None = None) -> Decimal:
    """Check raw ``{"product", "percentage"}`` rows before they are saved.

    Returns the percentage total. Raises ``InvalidFormulaError`` with the
    offending total when the mix does not add up to 100%.
    """
    config = config or get_production_config()
    if not items:
        raise InvalidFormulaError("Formula must have at least one item.")

    seen = set()
    for item in items:
        product = item.get("product")
        product_id = getattr(product, "pk", product)
        if product_id in seen:
            raise InvalidFormulaError("Each product can only appear once in a formula.")
        seen.add(product_id)
        if _percentage_of(item) <= 0:
            raise InvalidFormulaError("Formula percentages must be greater than 0.")

    total = total_percentage(items)
    if abs(total - HUNDRED) >= config.percentage_tolerance:
        raise InvalidFormulaError(
            f"Formula percentages must total 100%. Current total: {total}%",
            data={"total_percentage": total},
        )
    return total
