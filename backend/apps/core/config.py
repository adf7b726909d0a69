from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class ProductionConfig:
    """Tunables for the formula engine, the stock ledger and production runs.

    Built once from Django settings and handed to the services explicitly, so
    tests can run the same code with a different tolerance or prefix.
    """

    percentage_tolerance: Decimal = Decimal("0.01")
    formula_code_prefix: str = "FRM"
    production_number_prefix: str = "PRD"
    max_loss_percentage: Decimal = Decimal("5")
    expiry_warning_days: int = 30


def get_production_config() -> ProductionConfig:
    return ProductionConfig(
        percentage_tolerance=Decimal(str(getattr(settings, "FORMULA_PERCENTAGE_TOLERANCE", "0.01"))),
        formula_code_prefix=getattr(settings, "FORMULA_CODE_PREFIX", "FRM"),
        production_number_prefix=getattr(settings, "PRODUCTION_NUMBER_PREFIX", "PRD"),
        max_loss_percentage=Decimal(str(getattr(settings, "MAX_LOSS_PERCENTAGE", "5"))),
        expiry_warning_days=int(getattr(settings, "EXPIRY_WARNING_DAYS", 30)),
    )
