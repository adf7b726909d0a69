"""Production run lifecycle.

A run is planned from a formula, consumes its raw materials FIFO when it
starts, and posts the finished good into a new batch when it completes.
Cancelling an in-progress run puts the consumed quantities back into the
batches they came from. Every stock change goes through ``apps.inventory.ledger``.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from apps.core.config import ProductionConfig, get_production_config
from apps.core.exceptions import (
    BusinessRuleError,
    InsufficientStockError,
    InvalidFormulaError,
    InvalidTransitionError,
)
from apps.core.numbering import create_numbered
from apps.formulas import engine
from apps.formulas import services as formula_services
from apps.inventory import ledger
from apps.inventory.models import BatchSource, InventoryBatch, MovementType
from apps.production.models import ProductionLoss, ProductionRun, ProductionRunItem, RunStatus, efficiency

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

TRANSITIONS = {
    RunStatus.PLANNED: (RunStatus.IN_PROGRESS, RunStatus.CANCELLED),
    RunStatus.IN_PROGRESS: (RunStatus.COMPLETED, RunStatus.CANCELLED),
}


def _check_transition(run: ProductionRun, target: str) -> None:
    if target not in TRANSITIONS.get(run.status, ()):
        raise InvalidTransitionError(run.status, target)


def _lock(run: ProductionRun) -> ProductionRun:
    return ProductionRun.objects.select_for_update().get(pk=run.pk)


def generate_production_number(config: ProductionConfig | None = None) -> str:
    config = config or get_production_config()
    prefix = f"{config.production_number_prefix}{timezone.localdate():%Y%m%d}"
    last = (
        ProductionRun.objects.filter(production_number__startswith=prefix)
        .order_by("-production_number")
        .values_list("production_number", flat=True)
        .first()
    )
    sequence = int(last[-4:]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def _build_items(run: ProductionRun, config: ProductionConfig) -> None:
    requirements = formula_services.requirements_for(run.formula, run.target_quantity, config)
    quantities = engine.planned_quantities(requirements)
    ProductionRunItem.objects.bulk_create(
        [
            ProductionRunItem(
                production_run=run,
                product=requirement.product,
                percentage=requirement.percentage,
                planned_quantity=quantity,
                unit_of_measure=requirement.product.unit_of_measure,
                unit_cost=requirement.product.cost_price,
                total_cost=(quantity * requirement.product.cost_price).quantize(CENT),
            )
            for requirement, quantity in zip(requirements, quantities)
        ]
    )


def _ensure_batch_number_free(batch_number: str | None) -> None:
    if batch_number and InventoryBatch.objects.filter(batch_number=batch_number).exists():
        raise BusinessRuleError(f"Batch number {batch_number} is already in use.")


def plan(
    formula,
    warehouse,
    target_quantity,
    *,
    production_date: date | None = None,
    batch_number: str | None = None,
    expiry_date: date | None = None,
    notes: str | None = None,
    config: ProductionConfig | None = None,
) -> ProductionRun:
    config = config or get_production_config()
    target_quantity = ledger.to_quantity(target_quantity)
    if target_quantity <= 0:
        raise BusinessRuleError("Target quantity must be greater than 0.")
    if not formula.is_active:
        raise BusinessRuleError(f"Formula {formula.formula_code} is inactive.")
    if not engine.is_valid(formula, config):
        raise InvalidFormulaError("Formula percentages do not total 100%.")
    if not warehouse.is_active:
        raise BusinessRuleError(f"Warehouse {warehouse.code} is inactive.")
    _ensure_batch_number_free(batch_number)

    with transaction.atomic():
        run = create_numbered(
            ProductionRun,
            "production_number",
            lambda: generate_production_number(config),
            formula=formula,
            finished_product=formula.finished_product,
            warehouse=warehouse,
            production_date=production_date or timezone.localdate(),
            target_quantity=target_quantity,
            batch_number=batch_number,
            expiry_date=expiry_date,
            notes=notes,
        )
        _build_items(run, config)
        formula_services.mark_used(formula)

    logger.info(
        "Planned %s: %s of formula %s in %s",
        run.production_number,
        target_quantity,
        formula.formula_code,
        warehouse.code,
    )
    return run


def update_plan(run: ProductionRun, data: dict, config: ProductionConfig | None = None) -> ProductionRun:
    config = config or get_production_config()
    with transaction.atomic():
        run = _lock(run)
        if run.status != RunStatus.PLANNED:
            raise BusinessRuleError("Only planned production runs can be edited.")

        if "batch_number" in data and data["batch_number"] != run.batch_number:
            _ensure_batch_number_free(data["batch_number"])

        target = data.pop("target_quantity", None)
        for field, value in data.items():
            setattr(run, field, value)

        rebuild = False
        if target is not None:
            target = ledger.to_quantity(target)
            if target <= 0:
                raise BusinessRuleError("Target quantity must be greater than 0.")
            rebuild = target != run.target_quantity
            run.target_quantity = target
        run.save()

        if rebuild:
            run.items.all().delete()
            _build_items(run, config)
            logger.info("Recalculated %s for target %s", run.production_number, target)

    return run


def delete_planned(run: ProductionRun) -> None:
    with transaction.atomic():
        run = _lock(run)
        if run.status != RunStatus.PLANNED:
            raise BusinessRuleError("Only planned production runs can be deleted.")
        number = run.production_number
        run.delete()
    logger.info("Deleted planned run %s", number)


def check_materials(run: ProductionRun, on_date: date | None = None) -> dict:
    materials = []
    for item in run.items.select_related("product"):
        available = ledger.available_quantity(item.product, run.warehouse, on_date)
        materials.append(
            {
                "item_id": str(item.id),
                "product": str(item.product_id),
                "product_name": item.product.name,
                "required": item.planned_quantity,
                "available": available,
                "shortage": max(item.planned_quantity - available, ZERO),
                "sufficient": available >= item.planned_quantity,
            }
        )
    return {
        "production_run": str(run.id),
        "materials": materials,
        "all_sufficient": all(material["sufficient"] for material in materials),
    }


def _movement_cost(movements) -> Decimal:
    return sum((movement.quantity * (movement.unit_cost or ZERO) for movement in movements), ZERO)


def _describe(run: ProductionRun) -> str:
    return f"Production run {run.production_number}"


def start(run: ProductionRun) -> ProductionRun:
    """Consume every planned component FIFO and move the run to in_progress.

    Nothing is consumed unless all components are covered; the error lists
    every short component.
    """
    with transaction.atomic():
        run = _lock(run)
        _check_transition(run, RunStatus.IN_PROGRESS)
        items = list(run.items.select_related("product"))

        shortages = ledger.find_shortages([(item.product, item.planned_quantity) for item in items], run.warehouse)
        if shortages:
            raise InsufficientStockError(shortages)

        for item in items:
            movements = ledger.consume_fifo(
                item.product,
                run.warehouse,
                item.planned_quantity,
                movement_type=MovementType.PRODUCTION_OUT,
                reference=run,
                reason=_describe(run),
            )
            cost = _movement_cost(movements)
            if item.planned_quantity > 0:
                item.unit_cost = (cost / item.planned_quantity).quantize(CENT, rounding=ROUND_HALF_UP)
            item.total_cost = cost.quantize(CENT, rounding=ROUND_HALF_UP)
            item.save(update_fields=["unit_cost", "total_cost", "updated_at"])

        run.status = RunStatus.IN_PROGRESS
        run.started_at = timezone.now()
        run.save(update_fields=["status", "started_at", "updated_at"])

    logger.info("Started %s with %d components", run.production_number, len(items))
    return run


def _create_loss(run: ProductionRun, data: dict) -> ProductionLoss:
    quantity = ledger.to_quantity(data["quantity"])
    if quantity <= 0:
        raise BusinessRuleError("Loss quantity must be greater than 0.")
    reason = (data.get("reason") or "").strip()
    if not reason:
        raise BusinessRuleError("A reason is required to record a loss.")
    product = data.get("product")
    estimated_value = data.get("estimated_value")
    if estimated_value is None:
        estimated_value = (quantity * product.cost_price).quantize(CENT) if product is not None else ZERO
    return ProductionLoss.objects.create(
        production_run=run,
        product=product,
        loss_type=data["loss_type"],
        quantity=quantity,
        estimated_value=estimated_value,
        reason=reason,
        corrective_action=data.get("corrective_action"),
    )


def record_loss(run: ProductionRun, data: dict) -> ProductionLoss:
    with transaction.atomic():
        run = _lock(run)
        if run.status != RunStatus.IN_PROGRESS:
            raise BusinessRuleError("Losses can only be recorded for in-progress production runs.")
        loss = _create_loss(run, data)
    logger.info("Recorded %s loss of %s on %s", loss.loss_type, loss.quantity, run.production_number)
    return loss


def _return_to_batches(run: ProductionRun, item: ProductionRunItem, quantity: Decimal) -> list:
    """Put back part of what ``start`` consumed, latest batch first."""
    movements = []
    remaining = quantity
    consumed = (
        ledger.movements_for(run)
        .filter(product=item.product, movement_type=MovementType.PRODUCTION_OUT)
        .select_related("batch")
        .order_by("-created_at", "-reference_number")
    )
    for movement in consumed:
        if remaining <= 0:
            break
        back = min(movement.quantity, remaining)
        movements.append(
            ledger.receive(
                movement.batch,
                back,
                movement_type=MovementType.ADJUSTMENT_IN,
                reference=run,
                reason=f"{_describe(run)}: unused material returned",
            )
        )
        remaining -= back
    return movements


def _settle_item(run: ProductionRun, item: ProductionRunItem, used: Decimal) -> None:
    difference = used - item.planned_quantity
    cost = item.total_cost
    if difference > 0:
        movements = ledger.consume_fifo(
            item.product,
            run.warehouse,
            difference,
            movement_type=MovementType.PRODUCTION_OUT,
            reference=run,
            reason=f"{_describe(run)}: additional usage",
        )
        cost += _movement_cost(movements)
    elif difference < 0:
        movements = _return_to_batches(run, item, -difference)
        cost -= _movement_cost(movements)

    item.actual_quantity = used
    item.variance = difference
    item.total_cost = max(cost, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    if used > 0:
        item.unit_cost = (item.total_cost / used).quantize(CENT, rounding=ROUND_HALF_UP)
    item.save(update_fields=["actual_quantity", "variance", "unit_cost", "total_cost", "updated_at"])


def _output_batch_number(run: ProductionRun) -> str:
    candidate = run.batch_number or run.production_number
    if InventoryBatch.objects.filter(batch_number=candidate).exists():
        return ledger.generate_batch_number(run.production_number)
    return candidate


def complete(
    run: ProductionRun,
    actual_output,
    *,
    losses: list[dict] | None = None,
    item_usage: list[dict] | None = None,
    wastage_quantity=None,
    notes: str | None = None,
    config: ProductionConfig | None = None,
) -> ProductionRun:
    """Close an in-progress run and post its output into stock.

    ``item_usage`` rows (``{"item_id", "quantity_used"}``) settle the difference
    against the quantity consumed at start: extra usage is consumed FIFO and
    leftovers go back to the batches they came from.
    """
    config = config or get_production_config()
    actual_output = ledger.to_quantity(actual_output)
    if actual_output < 0:
        raise BusinessRuleError("Actual output cannot be negative.")

    with transaction.atomic():
        run = _lock(run)
        _check_transition(run, RunStatus.COMPLETED)

        for loss in losses or []:
            _create_loss(run, loss)

        if wastage_quantity is None:
            wastage = run.losses.aggregate(total=Sum("quantity"))["total"] or ZERO
        else:
            wastage = ledger.to_quantity(wastage_quantity)
        if wastage > run.target_quantity:
            raise BusinessRuleError(
                f"Wastage {wastage} cannot exceed the target quantity {run.target_quantity}.",
                data={"wastage_quantity": str(wastage), "target_quantity": str(run.target_quantity)},
            )
        wastage_percentage = ZERO
        if run.target_quantity > 0:
            wastage_percentage = (wastage / run.target_quantity * 100).quantize(CENT, rounding=ROUND_HALF_UP)
        if wastage_percentage > config.max_loss_percentage:
            logger.warning(
                "%s wastage %s%% exceeds the %s%% limit",
                run.production_number,
                wastage_percentage,
                config.max_loss_percentage,
            )

        items = {str(item.id): item for item in run.items.select_related("product")}
        usage = {}
        for row in item_usage or []:
            item_id = str(row["item_id"])
            if item_id not in items:
                raise BusinessRuleError(f"Item {item_id} does not belong to {run.production_number}.")
            quantity = ledger.to_quantity(row["quantity_used"])
            if quantity < 0:
                raise BusinessRuleError("quantity_used cannot be negative.")
            usage[item_id] = quantity

        for item_id, item in items.items():
            _settle_item(run, item, usage.get(item_id, item.planned_quantity))

        now = timezone.now()
        run.actual_output = actual_output
        run.wastage_quantity = wastage
        run.wastage_percentage = wastage_percentage
        run.completed_at = now
        run.duration_minutes = int((now - run.started_at).total_seconds() // 60) if run.started_at else None
        if notes:
            run.notes = notes
        run.status = RunStatus.COMPLETED

        if run.finished_product_id and actual_output > 0:
            material_cost = sum((item.total_cost for item in items.values()), ZERO)
            movement = ledger.receive(
                None,
                actual_output,
                movement_type=MovementType.PRODUCTION_IN,
                product=run.finished_product,
                warehouse=run.warehouse,
                unit_cost=(material_cost / actual_output).quantize(CENT, rounding=ROUND_HALF_UP),
                batch_number=_output_batch_number(run),
                production_date=run.production_date,
                expiry_date=run.expiry_date,
                source_type=BatchSource.PRODUCTION,
                source_id=run.id,
                reference=run,
                reason=_describe(run),
            )
            run.output_batch = movement.batch
            run.batch_number = movement.batch.batch_number

        run.save()

    logger.info(
        "Completed %s: output %s of %s (efficiency %s%%)",
        run.production_number,
        actual_output,
        run.target_quantity,
        run.efficiency_percentage,
    )
    return run


def cancel(run: ProductionRun, reason: str) -> ProductionRun:
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("A reason is required to cancel a production run.")

    with transaction.atomic():
        run = _lock(run)
        _check_transition(run, RunStatus.CANCELLED)

        reversed_count = 0
        if run.status == RunStatus.IN_PROGRESS:
            consumed = (
                ledger.movements_for(run)
                .filter(movement_type=MovementType.PRODUCTION_OUT)
                .select_related("batch")
            )
            for movement in consumed:
                ledger.receive(
                    movement.batch,
                    movement.quantity,
                    movement_type=MovementType.ADJUSTMENT_IN,
                    reference=run,
                    reason=f"{_describe(run)} cancelled: {reason}",
                )
                reversed_count += 1

        run.status = RunStatus.CANCELLED
        run.cancelled_at = timezone.now()
        run.cancellation_reason = reason
        run.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])

    logger.info("Cancelled %s (%d movements reversed): %s", run.production_number, reversed_count, reason)
    return run


def summary(start_date: date | None = None, end_date: date | None = None) -> dict:
    today = timezone.localdate()
    if start_date is None:
        start_date = today.replace(day=1)
    if end_date is None:
        next_month = (today.replace(day=28) + timedelta(days=4)).replace(day=1)
        end_date = next_month - timedelta(days=1)

    runs = ProductionRun.objects.between(start_date, end_date)
    completed = runs.filter(status=RunStatus.COMPLETED)
    totals = completed.aggregate(output=Sum("actual_output"), wastage=Sum("wastage_quantity"))
    efficiencies = [
        efficiency(actual, target)
        for actual, target in completed.values_list("actual_output", "target_quantity")
        if target and target > 0
    ]
    average_efficiency = ZERO
    if efficiencies:
        average_efficiency = (sum(efficiencies, ZERO) / len(efficiencies)).quantize(CENT, rounding=ROUND_HALF_UP)

    by_status = {row["status"]: row["count"] for row in runs.values("status").annotate(count=Count("id")).order_by()}
    return {
        "start_date": start_date,
        "end_date": end_date,
        "total_runs": runs.count(),
        "completed_runs": completed.count(),
        "total_output": totals["output"] or ZERO,
        "total_wastage": totals["wastage"] or ZERO,
        "average_efficiency": average_efficiency,
        "by_status": by_status,
        "planned_count": ProductionRun.objects.filter(status=RunStatus.PLANNED).count(),
        "in_progress_count": ProductionRun.objects.filter(status=RunStatus.IN_PROGRESS).count(),
    }
