from datetime import date, timedelta
from decimal import Decimal

from django.core.management import call_command
from django.db.models import Sum
from django.test import TestCase

from apps.catalog.models import Product
from apps.core.exceptions import InsufficientStockError
from apps.core.models import Warehouse
from apps.inventory import ledger
from apps.inventory.models import BatchStatus, InventoryBatch, MovementType, StockLevel, StockMovement


class LedgerTestMixin:
    def setUp(self):
        self.warehouse = Warehouse.objects.create(name="Main", code="MAIN")
        self.product = Product.objects.create(sku="MAIZE", name="Maize", cost_price=Decimal("200.00"))
        self.today = date(2026, 3, 1)

    def make_batch(self, quantity, number, expiry=None, unit_cost="200.00", produced=None):
        movement = ledger.receive(
            None,
            Decimal(quantity),
            product=self.product,
            warehouse=self.warehouse,
            unit_cost=Decimal(unit_cost),
            batch_number=number,
            expiry_date=expiry,
            production_date=produced,
        )
        return movement.batch

    def assert_stock_level_matches_batches(self):
        level = StockLevel.objects.get(product=self.product, warehouse=self.warehouse)
        total = InventoryBatch.objects.filter(product=self.product, warehouse=self.warehouse).aggregate(
            total=Sum("current_quantity")
        )["total"]
        self.assertEqual(level.quantity, total)


class ReceiveAndConsumeTests(LedgerTestMixin, TestCase):
    def test_receive_opens_batch_and_logs_inbound_movement(self):
        batch = self.make_batch("100", "B-1")

        self.assertEqual(batch.initial_quantity, Decimal("100.000"))
        self.assertEqual(batch.current_quantity, Decimal("100.000"))
        movement = StockMovement.objects.get()
        self.assertEqual(movement.movement_type, MovementType.PURCHASE_IN)
        self.assertEqual(movement.quantity_before, Decimal("0"))
        self.assertEqual(movement.quantity_after, Decimal("100.000"))
        self.assertEqual(movement.total_value, Decimal("20000.00"))
        self.assert_stock_level_matches_batches()

    def test_consume_records_before_after_snapshot(self):
        batch = self.make_batch("100", "B-1")

        movement = ledger.consume(batch, Decimal("40"), reference=("test", "1"))

        self.assertEqual(movement.quantity, Decimal("40.000"))
        self.assertEqual(movement.quantity_before, Decimal("100.000"))
        self.assertEqual(movement.quantity_after, Decimal("60.000"))
        self.assertEqual(movement.reference_type, "test")
        self.assertEqual(batch.current_quantity, Decimal("60.000"))
        self.assert_stock_level_matches_batches()

    def test_consume_clamps_at_zero_and_depletes(self):
        batch = self.make_batch("10", "B-1")

        movement = ledger.consume(batch, Decimal("15"))

        batch.refresh_from_db()
        self.assertEqual(batch.current_quantity, Decimal("0"))
        self.assertEqual(batch.status, BatchStatus.DEPLETED)
        self.assertEqual(movement.quantity, Decimal("10.000"))
        self.assert_stock_level_matches_batches()

    def test_consume_ignores_non_positive_quantity(self):
        batch = self.make_batch("10", "B-1")

        self.assertIsNone(ledger.consume(batch, 0))
        self.assertEqual(StockMovement.objects.count(), 1)

    def test_receive_reactivates_depleted_batch(self):
        batch = self.make_batch("10", "B-1")
        ledger.consume(batch, Decimal("10"))

        ledger.receive(batch, Decimal("4"), movement_type=MovementType.ADJUSTMENT_IN)

        batch.refresh_from_db()
        self.assertEqual(batch.status, BatchStatus.ACTIVE)
        self.assertEqual(batch.current_quantity, Decimal("4.000"))
        self.assert_stock_level_matches_batches()

    def test_direction_must_match_movement_type(self):
        batch = self.make_batch("10", "B-1")

        with self.assertRaises(ValueError):
            ledger.consume(batch, 1, movement_type=MovementType.PURCHASE_IN)
        with self.assertRaises(ValueError):
            ledger.receive(batch, 1, movement_type=MovementType.SALE_OUT)

    def test_movements_cannot_be_changed_or_deleted(self):
        self.make_batch("10", "B-1")
        movement = StockMovement.objects.get()

        movement.notes = "edited"
        with self.assertRaises(TypeError):
            movement.save()
        with self.assertRaises(TypeError):
            movement.delete()
        with self.assertRaises(TypeError):
            StockMovement.objects.all().update(notes="edited")
        with self.assertRaises(TypeError):
            StockMovement.objects.all().delete()


class FifoTests(LedgerTestMixin, TestCase):
    def test_available_batches_order_by_expiry_with_no_expiry_last(self):
        no_expiry = self.make_batch("10", "B-NONE")
        late = self.make_batch("10", "B-LATE", expiry=self.today + timedelta(days=60))
        early = self.make_batch("10", "B-EARLY", expiry=self.today + timedelta(days=5))

        batches = list(ledger.available_batches(self.product, self.warehouse, self.today))

        self.assertEqual([batch.pk for batch in batches], [early.pk, late.pk, no_expiry.pk])

    def test_expired_and_inactive_batches_are_skipped(self):
        self.make_batch("10", "B-OLD", expiry=self.today - timedelta(days=1))
        quarantined = self.make_batch("10", "B-Q")
        InventoryBatch.objects.filter(pk=quarantined.pk).update(status=BatchStatus.QUARANTINE)
        good = self.make_batch("7", "B-OK", expiry=self.today + timedelta(days=1))

        self.assertEqual(ledger.available_quantity(self.product, self.warehouse, self.today), Decimal("7.000"))
        self.assertEqual(list(ledger.available_batches(self.product, self.warehouse, self.today)), [good])

    def test_allocate_fifo_splits_across_batches(self):
        first = self.make_batch("30", "B-1", expiry=self.today + timedelta(days=1))
        second = self.make_batch("50", "B-2", expiry=self.today + timedelta(days=2))

        allocations = ledger.allocate_fifo(self.product, self.warehouse, Decimal("45"), self.today)

        self.assertEqual(
            [(allocation.batch.pk, allocation.quantity) for allocation in allocations],
            [(first.pk, Decimal("30.000")), (second.pk, Decimal("15.000"))],
        )

    def test_allocate_fifo_raises_when_short(self):
        self.make_batch("30", "B-1")

        with self.assertRaises(InsufficientStockError) as ctx:
            ledger.allocate_fifo(self.product, self.warehouse, Decimal("31"), self.today)

        shortage = ctx.exception.data["shortages"][0]
        self.assertEqual(shortage["requested"], Decimal("31.000"))
        self.assertEqual(shortage["available"], Decimal("30.000"))

    def test_consume_fifo_depletes_oldest_first(self):
        first = self.make_batch("30", "B-1", expiry=self.today + timedelta(days=1))
        second = self.make_batch("50", "B-2", expiry=self.today + timedelta(days=2))

        movements = ledger.consume_fifo(self.product, self.warehouse, Decimal("45"), on_date=self.today)

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(len(movements), 2)
        self.assertEqual(first.status, BatchStatus.DEPLETED)
        self.assertEqual(second.current_quantity, Decimal("35.000"))
        self.assert_stock_level_matches_batches()

    def test_consume_fifo_changes_nothing_when_short(self):
        batch = self.make_batch("30", "B-1")

        with self.assertRaises(InsufficientStockError):
            ledger.consume_fifo(self.product, self.warehouse, Decimal("50"), on_date=self.today)

        batch.refresh_from_db()
        self.assertEqual(batch.current_quantity, Decimal("30.000"))
        self.assertEqual(StockMovement.objects.count(), 1)

    def test_find_shortages_sums_repeated_products(self):
        self.make_batch("30", "B-1")

        shortages = ledger.find_shortages([(self.product, 20), (self.product, 15)], self.warehouse, self.today)

        self.assertEqual(len(shortages), 1)
        self.assertEqual(shortages[0]["requested"], Decimal("35.000"))


class ExpiryTests(LedgerTestMixin, TestCase):
    def test_expire_batches_marks_only_past_expiry(self):
        old = self.make_batch("10", "B-OLD", expiry=self.today - timedelta(days=1))
        fresh = self.make_batch("10", "B-NEW", expiry=self.today)

        expired = ledger.expire_batches(self.today)

        old.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(expired, 1)
        self.assertEqual(old.status, BatchStatus.EXPIRED)
        self.assertEqual(fresh.status, BatchStatus.ACTIVE)

    def test_expire_batches_command(self):
        old = self.make_batch("10", "B-OLD", expiry=self.today - timedelta(days=1))

        call_command("expire_batches", "--date", self.today.isoformat(), verbosity=0)

        old.refresh_from_db()
        self.assertEqual(old.status, BatchStatus.EXPIRED)
