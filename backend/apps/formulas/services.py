import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.core.config import ProductionConfig, get_production_config
from apps.core.exceptions import BusinessRuleError, InvalidFormulaError
from apps.core.numbering import create_numbered
from apps.formulas import engine
from apps.formulas.models import Formula, FormulaItem

logger = logging.getLogger(__name__)

OPEN_RUN_STATUSES = ("planned", "in_progress")


def generate_formula_code(config: ProductionConfig | None = None) -> str:
    config = config or get_production_config()
    prefix = f"{config.formula_code_prefix}-{timezone.localdate():%Y%m%d}-"
    last = (
        Formula.objects.filter(formula_code__startswith=prefix)
        .order_by("-formula_code")
        .values_list("formula_code", flat=True)
        .first()
    )
    sequence = int(last.rsplit("-", 1)[-1]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def is_frozen(formula: Formula) -> bool:
    return formula.production_runs.filter(status="completed").exists()


def _replace_items(formula: Formula, items: list[dict]) -> None:
    formula.items.all().delete()
    FormulaItem.objects.bulk_create(
        [
            FormulaItem(
                formula=formula,
                product=item["product"],
                percentage=item["percentage"],
                sequence=index + 1,
            )
            for index, item in enumerate(items)
        ]
    )


def create_formula(data: dict, config: ProductionConfig | None = None) -> Formula:
    config = config or get_production_config()
    items = list(data.pop("items", []))
    engine.validate_items(items, config)

    with transaction.atomic():
        formula = create_numbered(Formula, "formula_code", lambda: generate_formula_code(config), **data)
        _replace_items(formula, items)

    logger.info("Created formula %s with %d items", formula.formula_code, len(items))
    return formula


def update_formula(formula: Formula, data: dict, config: ProductionConfig | None = None) -> Formula:
    config = config or get_production_config()
    items = data.pop("items", None)

    with transaction.atomic():
        formula = Formula.objects.select_for_update().get(pk=formula.pk)
        for field, value in data.items():
            setattr(formula, field, value)
        formula.save()

        if items is not None:
            if is_frozen(formula):
                raise BusinessRuleError(
                    "Formula items cannot change once the formula has been used by a completed production run."
                )
            engine.validate_items(list(items), config)
            _replace_items(formula, list(items))
            logger.info("Replaced items of formula %s", formula.formula_code)

    return formula


def delete_formula(formula: Formula, reason: str) -> bool:
    """Delete an unused formula, or retire it when runs still reference it.

    Returns True when the row was removed.
    """
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("A reason is required to delete a formula.")
    if formula.production_runs.filter(status__in=OPEN_RUN_STATUSES).exists():
        raise BusinessRuleError("Cannot delete formula that is in use by planned or in-progress production runs.")

    if formula.production_runs.exists():
        _record_status_change(formula, False, reason)
        formula.is_active = False
        formula.save(update_fields=["is_active", "metadata", "updated_at"])
        logger.info("Retired formula %s: %s", formula.formula_code, reason)
        return False

    code = formula.formula_code
    formula.delete()
    logger.info("Deleted formula %s: %s", code, reason)
    return True


def _record_status_change(formula: Formula, active: bool, reason: str) -> None:
    metadata = dict(formula.metadata or {})
    history = list(metadata.get("status_history", []))
    history.append({"is_active": active, "reason": reason, "at": timezone.now().isoformat()})
    metadata["status_history"] = history
    formula.metadata = metadata


def toggle_active(formula: Formula, active: bool, reason: str) -> Formula:
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("A reason is required to change the formula status.")
    _record_status_change(formula, active, reason)
    formula.is_active = active
    formula.save(update_fields=["is_active", "metadata", "updated_at"])
    return formula


def clone_formula(formula: Formula, overrides: dict | None = None, config: ProductionConfig | None = None) -> Formula:
    overrides = overrides or {}
    data = {
        "name": overrides.get("name") or f"{formula.name} (Copy)",
        "customer": overrides.get("customer", formula.customer),
        "finished_product": overrides.get("finished_product", formula.finished_product),
        "description": overrides.get("description", formula.description),
        "is_active": overrides.get("is_active", True),
        "items": [
            {"product": item.product, "percentage": item.percentage}
            for item in engine.formula_items(formula)
        ],
    }
    return create_formula(data, config)


def mark_used(formula: Formula) -> None:
    Formula.objects.filter(pk=formula.pk).update(
        usage_count=F("usage_count") + 1,
        last_used_at=timezone.now(),
    )


def available_for_customer(customer_id):
    return Formula.objects.active().for_customer(customer_id).prefetch_related("items__product")


def requirements_for(formula: Formula, total_quantity, config: ProductionConfig | None = None):
    config = config or get_production_config()
    if not engine.is_valid(formula, config):
        raise InvalidFormulaError("Formula percentages do not total 100%.")
    return engine.calculate_requirements(formula, total_quantity)
