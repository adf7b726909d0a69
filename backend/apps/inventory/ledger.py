"""Append-only stock ledger.

Every change to a batch quantity goes through ``consume`` or ``receive`` so the
batch, the warehouse ``StockLevel`` and the ``StockMovement`` row are written in
the same transaction. Callers that touch several batches wrap their work in
``transaction.atomic()``; the helpers here lock the rows they modify.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import DecimalField, F, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.core.exceptions import InsufficientStockError
from apps.inventory.models import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    BatchStatus,
    InventoryBatch,
    MovementType,
    StockLevel,
    StockMovement,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
QUANTITY_STEP = Decimal("0.001")


@dataclass(frozen=True)
class Allocation:
    batch: InventoryBatch
    quantity: Decimal


def to_quantity(value) -> Decimal:
    quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    return quantity.quantize(QUANTITY_STEP)


def reference_of(reference) -> tuple[str | None, str | None]:
    """Turn a source document into the ``(reference_type, reference_id)`` pair."""
    if reference is None:
        return None, None
    if isinstance(reference, tuple):
        reference_type, reference_id = reference
        return reference_type, str(reference_id) if reference_id is not None else None
    return reference._meta.model_name, str(reference.pk)


def movements_for(reference):
    reference_type, reference_id = reference_of(reference)
    return StockMovement.objects.for_reference(reference_type, reference_id)


def generate_reference_number() -> str:
    return f"MOV-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:10].upper()}"


def generate_batch_number(prefix: str = "BAT") -> str:
    return f"{prefix}-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def _adjust_stock_level(product_id, warehouse_id, delta: Decimal) -> StockLevel:
    level, _ = StockLevel.objects.select_for_update().get_or_create(
        product_id=product_id,
        warehouse_id=warehouse_id,
        defaults={"quantity": ZERO},
    )
    level.quantity = max(level.quantity + delta, ZERO)
    level.save(update_fields=["quantity", "updated_at"])
    return level


def _sync(target: InventoryBatch, source: InventoryBatch) -> None:
    target.current_quantity = source.current_quantity
    target.status = source.status
    target.updated_at = source.updated_at


def _write_movement(
    batch: InventoryBatch,
    movement_type: str,
    quantity: Decimal,
    before: Decimal,
    after: Decimal,
    *,
    unit_cost: Decimal | None,
    reference,
    reason: str | None,
    notes: str | None,
    from_warehouse=None,
    to_warehouse=None,
) -> StockMovement:
    reference_type, reference_id = reference_of(reference)
    cost = batch.unit_cost if unit_cost is None else unit_cost
    return StockMovement.objects.create(
        reference_number=generate_reference_number(),
        product_id=batch.product_id,
        warehouse_id=batch.warehouse_id,
        batch=batch,
        movement_type=movement_type,
        quantity=quantity,
        unit_cost=cost,
        total_value=(cost * quantity).quantize(Decimal("0.01")) if cost is not None else None,
        quantity_before=before,
        quantity_after=after,
        reference_type=reference_type,
        reference_id=reference_id,
        from_warehouse=from_warehouse,
        to_warehouse=to_warehouse,
        reason=reason,
        notes=notes,
    )


def consume(
    batch: InventoryBatch,
    quantity,
    *,
    movement_type: str = MovementType.PRODUCTION_OUT,
    reference=None,
    reason: str | None = None,
    notes: str | None = None,
    to_warehouse=None,
) -> StockMovement | None:
    """Take ``quantity`` out of ``batch`` and log the outbound movement.

    The batch never goes below zero: a request larger than the remaining
    quantity is clamped and the batch is marked depleted. Non-positive
    quantities are ignored and return None.
    """
    if movement_type not in OUTBOUND_TYPES:
        raise ValueError(f"{movement_type} is not an outbound movement type.")
    quantity = to_quantity(quantity)
    if quantity <= 0:
        return None

    with transaction.atomic():
        locked = InventoryBatch.objects.select_for_update().get(pk=batch.pk)
        before = locked.current_quantity
        after = before - quantity
        if after <= 0:
            after = ZERO
            locked.status = BatchStatus.DEPLETED
        taken = before - after
        if taken < quantity:
            logger.warning(
                "Clamped %s on batch %s: requested %s, only %s left",
                movement_type,
                locked.batch_number,
                quantity,
                before,
            )
        locked.current_quantity = after
        locked.save(update_fields=["current_quantity", "status", "updated_at"])
        _adjust_stock_level(locked.product_id, locked.warehouse_id, -taken)
        movement = _write_movement(
            locked,
            movement_type,
            taken,
            before,
            after,
            unit_cost=None,
            reference=reference,
            reason=reason,
            notes=notes,
            from_warehouse=locked.warehouse if to_warehouse is not None else None,
            to_warehouse=to_warehouse,
        )

    _sync(batch, locked)
    logger.info("%s %s from batch %s (%s -> %s)", movement_type, taken, locked.batch_number, before, after)
    return movement


def receive(
    batch: InventoryBatch | None,
    quantity,
    *,
    movement_type: str = MovementType.PURCHASE_IN,
    product=None,
    warehouse=None,
    unit_cost=None,
    batch_number: str | None = None,
    production_date: date | None = None,
    expiry_date: date | None = None,
    source_type: str | None = None,
    source_id=None,
    reference=None,
    reason: str | None = None,
    notes: str | None = None,
    from_warehouse=None,
) -> StockMovement | None:
    """Put ``quantity`` into an existing batch or into a new one.

    Pass ``batch=None`` together with ``product`` and ``warehouse`` to open a
    new batch whose initial and current quantity equal ``quantity``. A depleted
    batch becomes active again once it holds stock.
    """
    if movement_type not in INBOUND_TYPES:
        raise ValueError(f"{movement_type} is not an inbound movement type.")
    quantity = to_quantity(quantity)
    if quantity <= 0:
        return None

    with transaction.atomic():
        if batch is None:
            if product is None or warehouse is None:
                raise ValueError("product and warehouse are required to open a new batch.")
            locked = InventoryBatch.objects.create(
                batch_number=batch_number or generate_batch_number(),
                product=product,
                warehouse=warehouse,
                production_date=production_date,
                expiry_date=expiry_date,
                initial_quantity=quantity,
                current_quantity=quantity,
                unit_cost=unit_cost if unit_cost is not None else ZERO,
                source_type=source_type,
                source_id=str(source_id) if source_id is not None else None,
                status=BatchStatus.ACTIVE,
                notes=notes,
            )
            before = ZERO
        else:
            locked = InventoryBatch.objects.select_for_update().get(pk=batch.pk)
            before = locked.current_quantity
            locked.current_quantity = before + quantity
            if locked.status == BatchStatus.DEPLETED and locked.current_quantity > 0:
                locked.status = BatchStatus.ACTIVE
            locked.save(update_fields=["current_quantity", "status", "updated_at"])

        _adjust_stock_level(locked.product_id, locked.warehouse_id, quantity)
        movement = _write_movement(
            locked,
            movement_type,
            quantity,
            before,
            locked.current_quantity,
            unit_cost=Decimal(str(unit_cost)) if unit_cost is not None else None,
            reference=reference,
            reason=reason,
            notes=notes,
            from_warehouse=from_warehouse,
            to_warehouse=locked.warehouse if from_warehouse is not None else None,
        )

    if batch is not None:
        _sync(batch, locked)
    logger.info(
        "%s %s into batch %s (%s -> %s)",
        movement_type,
        quantity,
        locked.batch_number,
        before,
        locked.current_quantity,
    )
    return movement


def available_batches(product, warehouse, on_date: date | None = None, lock: bool = False):
    """Active, unexpired batches with stock, oldest expiry first.

    Batches without an expiry date come last; ties fall back to production
    date, then arrival order.
    """
    on_date = on_date or timezone.localdate()
    queryset = (
        InventoryBatch.objects.filter(
            product=product,
            warehouse=warehouse,
            status=BatchStatus.ACTIVE,
            current_quantity__gt=0,
        )
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=on_date))
        .order_by(
            F("expiry_date").asc(nulls_last=True),
            F("production_date").asc(nulls_last=True),
            "created_at",
            "batch_number",
        )
    )
    if lock:
        queryset = queryset.select_for_update()
    return queryset


def available_quantity(product, warehouse, on_date: date | None = None) -> Decimal:
    return available_batches(product, warehouse, on_date).aggregate(
        total=Coalesce(
            Sum("current_quantity"),
            Value(ZERO),
            output_field=DecimalField(max_digits=15, decimal_places=3),
        )
    )["total"]


def shortage_for(product, warehouse, requested: Decimal, available: Decimal) -> dict:
    return {
        "product": getattr(product, "name", str(product)),
        "product_id": str(getattr(product, "pk", product)),
        "warehouse": getattr(warehouse, "name", None),
        "requested": requested,
        "available": available,
        "shortage": requested - available,
    }


def allocate_fifo(product, warehouse, quantity, on_date: date | None = None, lock: bool = False) -> list[Allocation]:
    """Split ``quantity`` across the FIFO batches without changing them.

    Raises ``InsufficientStockError`` instead of returning a partial plan.
    """
    requested = to_quantity(quantity)
    remaining = requested
    allocations: list[Allocation] = []
    for batch in available_batches(product, warehouse, on_date, lock=lock):
        if remaining <= 0:
            break
        take = min(batch.current_quantity, remaining)
        allocations.append(Allocation(batch=batch, quantity=take))
        remaining -= take

    if remaining > 0:
        available = requested - remaining
        logger.warning(
            "Short on %s in %s: requested %s, available %s",
            getattr(product, "name", product),
            getattr(warehouse, "name", warehouse),
            requested,
            available,
        )
        raise InsufficientStockError([shortage_for(product, warehouse, requested, available)])
    return allocations


def consume_fifo(
    product,
    warehouse,
    quantity,
    *,
    movement_type: str = MovementType.PRODUCTION_OUT,
    reference=None,
    reason: str | None = None,
    notes: str | None = None,
    on_date: date | None = None,
    to_warehouse=None,
) -> list[StockMovement]:
    with transaction.atomic():
        allocations = allocate_fifo(product, warehouse, quantity, on_date=on_date, lock=True)
        movements = []
        for allocation in allocations:
            movement = consume(
                allocation.batch,
                allocation.quantity,
                movement_type=movement_type,
                reference=reference,
                reason=reason,
                notes=notes,
                to_warehouse=to_warehouse,
            )
            if movement is not None:
                movements.append(movement)
    return movements


def find_shortages(requirements, warehouse, on_date: date | None = None) -> list[dict]:
    """Compare ``(product, quantity)`` pairs against available stock.

    Quantities for the same product are summed before the comparison.
    """
    wanted: dict = {}
    products: dict = {}
    for product, quantity in requirements:
        wanted[product.pk] = wanted.get(product.pk, ZERO) + to_quantity(quantity)
        products[product.pk] = product

    shortages = []
    for product_id, requested in wanted.items():
        product = products[product_id]
        available = available_quantity(product, warehouse, on_date)
        if available < requested:
            shortages.append(shortage_for(product, warehouse, requested, available))
    return shortages


def expire_batches(on_date: date | None = None) -> int:
    on_date = on_date or timezone.localdate()
    expired = InventoryBatch.objects.filter(status=BatchStatus.ACTIVE, expiry_date__lt=on_date).update(
        status=BatchStatus.EXPIRED
    )
    if expired:
        logger.info("Marked %d batches expired as of %s", expired, on_date)
    return expired
