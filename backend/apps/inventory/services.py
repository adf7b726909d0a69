import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import BusinessRuleError, InsufficientStockError
from apps.inventory import ledger
from apps.inventory.models import BatchSource, BatchStatus, InventoryBatch, MovementType, StockReceipt

logger = logging.getLogger(__name__)

WRITE_OFF_TYPES = (MovementType.LOSS, MovementType.DRYING)


def create_receipt(data: dict) -> StockReceipt:
    """Book a supplier delivery: one ``purchase_in`` batch per line."""
    lines = list(data.pop("lines", []))
    if not lines:
        raise BusinessRuleError("A stock receipt needs at least one line.")

    with transaction.atomic():
        receipt = StockReceipt.objects.create(**data)
        for line in lines:
            ledger.receive(
                None,
                line["quantity"],
                movement_type=MovementType.PURCHASE_IN,
                product=line["product"],
                warehouse=receipt.warehouse,
                unit_cost=line.get("unit_cost"),
                batch_number=line.get("batch_number"),
                production_date=line.get("production_date"),
                expiry_date=line.get("expiry_date"),
                source_type=BatchSource.PURCHASE,
                source_id=receipt.id,
                reference=receipt,
                notes=line.get("notes"),
            )

    logger.info(
        "Received %s with %d lines into %s",
        receipt.reference_number,
        len(lines),
        receipt.warehouse.code,
    )
    return receipt


def receipt_batches(receipt: StockReceipt):
    return InventoryBatch.objects.filter(source_type=BatchSource.PURCHASE, source_id=str(receipt.id)).select_related(
        "product"
    )


def _ensure_covers(batch: InventoryBatch, quantity: Decimal) -> None:
    if quantity > batch.current_quantity:
        raise InsufficientStockError(
            [
                ledger.shortage_for(
                    batch.product,
                    batch.warehouse,
                    ledger.to_quantity(quantity),
                    batch.current_quantity,
                )
            ]
        )


def adjust_stock(
    *,
    direction: str,
    quantity,
    reason: str,
    batch: InventoryBatch | None = None,
    product=None,
    warehouse=None,
    unit_cost=None,
    expiry_date=None,
    notes: str | None = None,
):
    if not reason:
        raise BusinessRuleError("A reason is required for stock adjustments.")
    quantity = ledger.to_quantity(quantity)
    if quantity <= 0:
        raise BusinessRuleError("Adjustment quantity must be greater than 0.")

    if direction == "out":
        if batch is None:
            raise BusinessRuleError("Outbound adjustments need a batch.")
        with transaction.atomic():
            batch = InventoryBatch.objects.select_for_update().get(pk=batch.pk)
            _ensure_covers(batch, quantity)
            movement = ledger.consume(
                batch,
                quantity,
                movement_type=MovementType.ADJUSTMENT_OUT,
                reference=("adjustment", batch.id),
                reason=reason,
                notes=notes,
            )
    else:
        reference_id = batch.id if batch is not None else uuid.uuid4()
        movement = ledger.receive(
            batch,
            quantity,
            movement_type=MovementType.ADJUSTMENT_IN,
            product=product,
            warehouse=warehouse,
            unit_cost=unit_cost,
            expiry_date=expiry_date,
            source_type=BatchSource.ADJUSTMENT,
            source_id=reference_id,
            reference=("adjustment", reference_id),
            reason=reason,
            notes=notes,
        )

    logger.info("Adjusted %s %s by %s: %s", movement.product_id, direction, quantity, reason)
    return movement


def transfer_stock(*, product, from_warehouse, to_warehouse, quantity, notes: str | None = None) -> list:
    """Move stock FIFO between warehouses.

    Each source batch produces a ``transfer_out`` and a new destination batch
    with the same cost and dates, linked by a shared transfer reference.
    """
    if from_warehouse.pk == to_warehouse.pk:
        raise BusinessRuleError("Source and destination warehouses must differ.")
    if not to_warehouse.is_active:
        raise BusinessRuleError(f"Warehouse {to_warehouse.code} is inactive.")

    transfer_id = f"TRF-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"
    reference = ("transfer", transfer_id)
    movements = []

    with transaction.atomic():
        for allocation in ledger.allocate_fifo(product, from_warehouse, quantity, lock=True):
            source = allocation.batch
            movements.append(
                ledger.consume(
                    source,
                    allocation.quantity,
                    movement_type=MovementType.TRANSFER_OUT,
                    reference=reference,
                    notes=notes,
                    to_warehouse=to_warehouse,
                )
            )
            movements.append(
                ledger.receive(
                    None,
                    allocation.quantity,
                    movement_type=MovementType.TRANSFER_IN,
                    product=product,
                    warehouse=to_warehouse,
                    unit_cost=source.unit_cost,
                    production_date=source.production_date,
                    expiry_date=source.expiry_date,
                    source_type=BatchSource.TRANSFER,
                    source_id=source.id,
                    reference=reference,
                    notes=notes,
                    from_warehouse=from_warehouse,
                )
            )

    logger.info(
        "Transfer %s moved %s of %s from %s to %s",
        transfer_id,
        quantity,
        product.sku,
        from_warehouse.code,
        to_warehouse.code,
    )
    return movements


def write_off(batch: InventoryBatch, quantity, movement_type: str, reason: str, notes: str | None = None):
    if movement_type not in WRITE_OFF_TYPES:
        raise BusinessRuleError(f"Unsupported write-off type '{movement_type}'.")
    if not reason:
        raise BusinessRuleError("A reason is required to write off stock.")
    quantity = ledger.to_quantity(quantity)
    if quantity <= 0:
        raise BusinessRuleError("Write-off quantity must be greater than 0.")

    with transaction.atomic():
        batch = InventoryBatch.objects.select_for_update().get(pk=batch.pk)
        if batch.status != BatchStatus.ACTIVE and batch.status != BatchStatus.EXPIRED:
            raise BusinessRuleError(f"Cannot write off stock from a {batch.status} batch.")
        _ensure_covers(batch, quantity)
        movement = ledger.consume(
            batch,
            quantity,
            movement_type=movement_type,
            reference=("writeoff", batch.id),
            reason=reason,
            notes=notes,
        )

    logger.info("Wrote off %s from batch %s (%s)", quantity, batch.batch_number, movement_type)
    return movement
